"""
Confidence intervals for forest class probabilities.

Combines point predictions with grouped jackknife variances into normal
approximation intervals, for a single test point or a batch of them.
"""

import logging
from typing import Optional, Sequence, Tuple, Union
import numpy as np
import pandas as pd
from scipy.stats import norm

from forestvar.config import (
    DEFAULT_CI_GROUP_SIZE,
    DEFAULT_CONFIDENCE_LEVEL,
    validate_confidence_level,
)

logger = logging.getLogger(__name__)


def compute_confidence_interval(
    prediction: Union[Sequence[float], np.ndarray],
    variance: Union[Sequence[float], np.ndarray],
    confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute two-sided normal confidence intervals.

    Parameters
    ----------
    prediction : array-like of float
        Point estimates.
    variance : array-like of float
        Nonnegative variance of each estimate.
    confidence_level : float, default=0.95
        Coverage of the interval, in (0, 1).

    Returns
    -------
    tuple of (np.ndarray, np.ndarray)
        - lower: prediction - z * sqrt(variance)
        - upper: prediction + z * sqrt(variance)

    Notes
    -----
    z is the (1 + confidence_level) / 2 quantile of the standard normal.
    Bounds are not clipped to [0, 1].

    Examples
    --------
    >>> lower, upper = compute_confidence_interval([0.5], [0.01])
    >>> print(f"[{lower[0]:.3f}, {upper[0]:.3f}]")
    [0.304, 0.696]
    """
    confidence_level = validate_confidence_level(confidence_level)
    prediction = np.asarray(prediction, dtype=np.float64)
    variance = np.asarray(variance, dtype=np.float64)
    if prediction.shape != variance.shape:
        raise ValueError(
            f"prediction and variance must have the same shape. "
            f"Got prediction: {prediction.shape}, variance: {variance.shape}"
        )
    if np.any(variance < 0):
        raise ValueError("variance must be nonnegative")

    z_score = norm.ppf(0.5 + confidence_level / 2)
    half_width = z_score * np.sqrt(variance)

    return prediction - half_width, prediction + half_width


def predict_with_variance(
    strategy,
    averages: Union[Sequence[Sequence[float]], np.ndarray],
    leaf_value_tables: Sequence,
    ci_group_size: int = DEFAULT_CI_GROUP_SIZE,
    confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
    classes: Optional[Sequence] = None,
    index: Optional[pd.Index] = None,
) -> pd.DataFrame:
    """
    Predict class probabilities with variances and intervals for a batch.

    Parameters
    ----------
    strategy : ProbabilityPredictionStrategy
        Strategy providing ``predict`` and ``compute_variance``.
    averages : array-like of shape (n_points, num_classes)
        Combined leaf values of each test point.
    leaf_value_tables : sequence of PredictionValues
        Per-tree leaf values of each test point.
    ci_group_size : int, default=2
        Number of consecutive trees in each CI group.
    confidence_level : float, default=0.95
        Coverage of the intervals.
    classes : sequence, optional
        Class labels used as column names. Defaults to 0..num_classes-1.
    index : pd.Index, optional
        Row labels. Defaults to a RangeIndex.

    Returns
    -------
    pd.DataFrame
        Columns form a MultiIndex of (statistic, class) with statistics
        'prediction', 'variance', 'lower' and 'upper'.

    Examples
    --------
    >>> from forestvar.prediction.values import PredictionValues
    >>> from forestvar.strategy import ProbabilityPredictionStrategy
    >>> strategy = ProbabilityPredictionStrategy(num_classes=2)
    >>> table = PredictionValues.from_rows(
    ...     [[0.9, 0.1], [0.7, 0.3], [0.2, 0.8], [0.4, 0.6]], num_types=2
    ... )
    >>> frame = predict_with_variance(strategy, [[0.55, 0.45]], [table])
    >>> frame["prediction"]
          0     1
    0  0.55  0.45
    """
    averages = np.atleast_2d(np.asarray(averages, dtype=np.float64))
    if averages.shape[0] != len(leaf_value_tables):
        raise ValueError(
            f"averages and leaf_value_tables must have the same length. "
            f"Got averages: {averages.shape[0]}, tables: {len(leaf_value_tables)}"
        )

    num_classes = strategy.prediction_length()
    if classes is None:
        classes = list(range(num_classes))
    if len(classes) != num_classes:
        raise ValueError(f"classes must have {num_classes} labels, got {len(classes)}")

    predictions = np.zeros((averages.shape[0], num_classes))
    variances = np.zeros((averages.shape[0], num_classes))
    for i, (average, table) in enumerate(zip(averages, leaf_value_tables)):
        predictions[i] = strategy.predict(average)
        variances[i] = strategy.compute_variance(average, table, ci_group_size)

    lower, upper = compute_confidence_interval(predictions, variances, confidence_level)

    logger.debug("Computed variances for %d test points", averages.shape[0])

    return pd.concat(
        {
            "prediction": pd.DataFrame(predictions, columns=classes, index=index),
            "variance": pd.DataFrame(variances, columns=classes, index=index),
            "lower": pd.DataFrame(lower, columns=classes, index=index),
            "upper": pd.DataFrame(upper, columns=classes, index=index),
        },
        axis=1,
    )
