"""
Combining per-tree leaf values into a forest-level estimate.

For a test point, every tree contributes the value vector of the leaf the
point falls into. The forest estimate is the plain average over the trees
whose leaf is not empty.
"""

import numpy as np

from forestvar.exceptions import InsufficientDataError
from forestvar.prediction.values import PredictionValues


def average_leaf_values(leaf_values: PredictionValues) -> np.ndarray:
    """
    Average the non-empty rows of a per-point table.

    Parameters
    ----------
    leaf_values : PredictionValues
        One row per tree for a single test point.

    Returns
    -------
    np.ndarray
        Mean of the non-empty rows, of length ``leaf_values.num_types``.

    Raises
    ------
    InsufficientDataError
        If every row is empty.

    Examples
    --------
    >>> table = PredictionValues.from_rows([[1.0, 0.0], None, [0.5, 0.5]], 2)
    >>> average_leaf_values(table)
    array([0.75, 0.25])
    """
    non_empty = ~leaf_values.empty_mask
    num_non_empty = int(non_empty.sum())
    if num_non_empty == 0:
        raise InsufficientDataError(
            f"all {leaf_values.num_nodes} leaves are empty",
            num_nodes=leaf_values.num_nodes,
        )
    return leaf_values.values[non_empty].sum(axis=0) / num_non_empty
