"""
Leaf-level class probability estimates.

Each leaf of a classification tree is summarized by the weighted share of
its training samples falling in each class. These vectors are computed once,
after the forest is grown, and looked up for every test point afterwards.
"""

import logging
from typing import Sequence
import numpy as np

from forestvar.config import WEIGHT_SUM_TOLERANCE, validate_num_classes
from forestvar.prediction.values import PredictionValues

logger = logging.getLogger(__name__)


def compute_leaf_class_probabilities(
    leaf_samples: Sequence[Sequence[int]],
    data,
    num_classes: int,
) -> PredictionValues:
    """
    Compute the weighted class distribution of every leaf.

    Parameters
    ----------
    leaf_samples : sequence of sequences of int
        For each leaf, the indices of the training samples it contains.
        A leaf may contain no samples.
    data : TrainingData
        Any object exposing ``get_outcome(sample)`` and
        ``get_weight(sample)``.
    num_classes : int
        Number of outcome classes.

    Returns
    -------
    PredictionValues
        One row per leaf with ``num_classes`` columns. Rows of leaves with
        no samples, or whose weights sum to at most ``WEIGHT_SUM_TOLERANCE``
        in absolute value, are flagged empty.

    Raises
    ------
    InvalidConfigurationError
        If num_classes < 1.
    ValueError
        If a sample's outcome is outside ``[0, num_classes)``.
    IndexError
        If a sample index is outside the training data.

    Notes
    -----
    For a leaf L with total weight W = sum_{i in L} w_i, the value for
    class k is:

        p_k = sum_{i in L, y_i = k} w_i / W

    so non-empty rows sum to one.

    Examples
    --------
    >>> from forestvar.prediction.data import TrainingData
    >>> data = TrainingData([0, 0, 1])
    >>> table = compute_leaf_class_probabilities([[0, 1, 2], []], data, 2)
    >>> table.values[0], table.is_empty(1)
    (array([0.66666667, 0.33333333]), True)
    """
    num_classes = validate_num_classes(num_classes)
    num_leaves = len(leaf_samples)

    values = np.zeros((num_leaves, num_classes), dtype=np.float64)
    empty = np.zeros(num_leaves, dtype=bool)

    for leaf, samples in enumerate(leaf_samples):
        if len(samples) == 0:
            empty[leaf] = True
            continue

        class_totals = values[leaf]
        weight_sum = 0.0
        for sample in samples:
            sample_class = data.get_outcome(sample)
            if not 0 <= sample_class < num_classes:
                raise ValueError(
                    f"outcome {sample_class} of sample {sample} is outside "
                    f"[0, {num_classes})"
                )
            weight = data.get_weight(sample)
            class_totals[sample_class] += weight
            weight_sum += weight

        # Too little weight to normalize by
        if abs(weight_sum) <= WEIGHT_SUM_TOLERANCE:
            empty[leaf] = True
            continue

        class_totals /= weight_sum

    logger.debug(
        "Aggregated %d leaves into %d classes, %d flagged empty",
        num_leaves,
        num_classes,
        int(empty.sum()),
    )
    return PredictionValues(values, empty)
