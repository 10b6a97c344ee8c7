"""
Grouped (half-sample) jackknife variance for class probability forests.

Trees are grown in CI groups: contiguous blocks of ``ci_group_size`` trees
that share a subsample of the training data. For a test point, every tree
contributes the class distribution of the leaf the point falls into. The
spread of the CI-group means around the forest average estimates the
sampling variance of the forest prediction, once corrected for the noise
added by averaging over only a few trees per group.
"""

import logging
from typing import NamedTuple, Optional, Sequence, Union
import numpy as np

from forestvar.config import validate_ci_group_size
from forestvar.exceptions import InsufficientDataError
from forestvar.prediction.values import PredictionValues
from forestvar.variance.debiasing import ObjectiveBayesDebiaser

logger = logging.getLogger(__name__)


class JackknifeComponents(NamedTuple):
    """
    Intermediate sums of the grouped jackknife, one entry per class.

    Attributes
    ----------
    num_good_groups : int
        Number of CI groups without empty rows.
    psi_squared : np.ndarray
        Sum of squared pseudo-values over all rows of good groups.
    psi_grouped_squared : np.ndarray
        Sum of squared group-mean pseudo-values over good groups.
    var_between : np.ndarray
        Mean squared group-mean pseudo-value.
    var_total : np.ndarray
        Mean squared pseudo-value per row.
    group_noise : np.ndarray
        Estimated inflation of var_between from the finite group size.
    """

    num_good_groups: int
    psi_squared: np.ndarray
    psi_grouped_squared: np.ndarray
    var_between: np.ndarray
    var_total: np.ndarray
    group_noise: np.ndarray


def compute_jackknife_components(
    average: Union[Sequence[float], np.ndarray],
    leaf_values: PredictionValues,
    ci_group_size: int,
) -> JackknifeComponents:
    """
    Compute the between-group and total pseudo-value variances.

    Parameters
    ----------
    average : array-like of float
        Forest-wide class probability estimate for the test point, of
        length ``leaf_values.num_types``.
    leaf_values : PredictionValues
        One row per tree, in tree order, holding the class distribution of
        the leaf the test point fell into.
    ci_group_size : int
        Number of consecutive trees in each CI group, at least 2.

    Returns
    -------
    JackknifeComponents
        Per-class sums and variances.

    Raises
    ------
    InvalidConfigurationError
        If ci_group_size < 2.
    ValueError
        If ``average`` does not have one entry per class.
    InsufficientDataError
        If every CI group contains an empty row.

    Notes
    -----
    Rows are partitioned into ``num_nodes // ci_group_size`` contiguous
    groups; trailing rows that do not fill a whole group are dropped. A
    group is used only if none of its rows is empty. For row i with
    pseudo-value psi_i = value_i - average, and G good groups of size m:

        var_between = (1 / G) * sum_g (mean_{i in g} psi_i)^2
        var_total   = (1 / (G * m)) * sum_g sum_{i in g} psi_i^2
        group_noise = (var_total - var_between) / (m - 1)
    """
    ci_group_size = validate_ci_group_size(ci_group_size)
    average = np.asarray(average, dtype=np.float64)
    if average.shape != (leaf_values.num_types,):
        raise ValueError(
            f"average must have {leaf_values.num_types} entries, got shape {average.shape}"
        )

    num_groups = leaf_values.num_nodes // ci_group_size
    num_grouped_rows = num_groups * ci_group_size
    if num_grouped_rows != leaf_values.num_nodes:
        logger.warning(
            "num_nodes=%d is not a multiple of ci_group_size=%d; "
            "ignoring the last %d rows",
            leaf_values.num_nodes,
            ci_group_size,
            leaf_values.num_nodes - num_grouped_rows,
        )

    values = leaf_values.values[:num_grouped_rows].reshape(
        num_groups, ci_group_size, leaf_values.num_types
    )
    empty = leaf_values.empty_mask[:num_grouped_rows].reshape(num_groups, ci_group_size)
    good_groups = ~empty.any(axis=1)
    num_good_groups = int(good_groups.sum())

    logger.debug(
        "Grouped jackknife over %d groups of size %d: %d good, %d skipped",
        num_groups,
        ci_group_size,
        num_good_groups,
        num_groups - num_good_groups,
    )

    if num_good_groups == 0:
        raise InsufficientDataError(
            f"no CI group of size {ci_group_size} is free of empty leaves "
            f"among {leaf_values.num_nodes} rows",
            num_nodes=leaf_values.num_nodes,
            ci_group_size=ci_group_size,
        )

    # Pseudo-values of the good groups, shape (num_good_groups, ci_group_size, num_types)
    psi = values[good_groups] - average
    psi_squared = np.sum(psi * psi, axis=(0, 1))
    group_psi = psi.sum(axis=1) / ci_group_size
    psi_grouped_squared = np.sum(group_psi * group_psi, axis=0)

    var_between = psi_grouped_squared / num_good_groups
    var_total = psi_squared / (num_good_groups * ci_group_size)

    # Amount by which var_between is inflated from using small groups
    group_noise = (var_total - var_between) / (ci_group_size - 1)

    return JackknifeComponents(
        num_good_groups=num_good_groups,
        psi_squared=psi_squared,
        psi_grouped_squared=psi_grouped_squared,
        var_between=var_between,
        var_total=var_total,
        group_noise=group_noise,
    )


def compute_grouped_jackknife_variance(
    average: Union[Sequence[float], np.ndarray],
    leaf_values: PredictionValues,
    ci_group_size: int,
    debiaser: Optional[ObjectiveBayesDebiaser] = None,
) -> np.ndarray:
    """
    Estimate the variance of each class probability of a forest prediction.

    Parameters
    ----------
    average : array-like of float
        Forest-wide class probability estimate for the test point.
    leaf_values : PredictionValues
        One row per tree, in tree order, holding the class distribution of
        the leaf the test point fell into.
    ci_group_size : int
        Number of consecutive trees in each CI group, at least 2.
    debiaser : ObjectiveBayesDebiaser, optional
        Any object with a ``debias(var_between, group_noise,
        num_good_groups)`` method returning a nonnegative float. Defaults
        to ``ObjectiveBayesDebiaser()``.

    Returns
    -------
    np.ndarray
        Nonnegative variance estimate for each class.

    Raises
    ------
    InvalidConfigurationError
        If ci_group_size < 2.
    InsufficientDataError
        If every CI group contains an empty row.

    Notes
    -----
    The naive correction ``var_between - group_noise`` is unbiased but can
    go negative when there are few groups; the debiaser shrinks it toward
    zero instead.

    Examples
    --------
    >>> table = PredictionValues.from_rows(
    ...     [[0.9, 0.1], [0.7, 0.3], [0.2, 0.8], [0.4, 0.6]], num_types=2
    ... )
    >>> variance = compute_grouped_jackknife_variance([0.55, 0.45], table, 2)
    >>> bool((variance >= 0).all())
    True
    """
    if debiaser is None:
        debiaser = ObjectiveBayesDebiaser()

    components = compute_jackknife_components(average, leaf_values, ci_group_size)

    variance_estimates = np.zeros(leaf_values.num_types, dtype=np.float64)
    for cls in range(leaf_values.num_types):
        variance_estimates[cls] = debiaser.debias(
            float(components.var_between[cls]),
            float(components.group_noise[cls]),
            float(components.num_good_groups),
        )

    return variance_estimates
