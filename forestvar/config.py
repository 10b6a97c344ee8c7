"""
Package-wide numeric settings and argument validation.

The estimators in this package are configured through keyword arguments;
the constants here are their defaults and the thresholds the algorithms
rely on.
"""

from typing import Any

from forestvar.exceptions import InvalidConfigurationError


# Leaves whose total sample weight is at or below this are flagged empty
WEIGHT_SUM_TOLERANCE = 1e-16

# Smallest CI group for which the within-group noise is defined
MIN_CI_GROUP_SIZE = 2

# Half-sample pairs
DEFAULT_CI_GROUP_SIZE = 2

DEFAULT_CONFIDENCE_LEVEL = 0.95


def validate_num_classes(num_classes: Any) -> int:
    """
    Validate the number of outcome classes.

    Parameters
    ----------
    num_classes : int
        Number of classes, must be >= 1.

    Returns
    -------
    int
        The validated number of classes.

    Raises
    ------
    InvalidConfigurationError
        If num_classes is not a positive integer.
    """
    if isinstance(num_classes, bool) or not hasattr(num_classes, "__index__"):
        raise InvalidConfigurationError(
            f"num_classes must be an integer, got {type(num_classes).__name__}"
        )
    num_classes = int(num_classes)
    if num_classes < 1:
        raise InvalidConfigurationError(f"num_classes must be >= 1, got {num_classes}")
    return num_classes


def validate_ci_group_size(ci_group_size: Any) -> int:
    """
    Validate the size of a CI group.

    The grouped jackknife divides by ``ci_group_size - 1``, so groups of a
    single tree are rejected.

    Raises
    ------
    InvalidConfigurationError
        If ci_group_size is not an integer >= 2.
    """
    if isinstance(ci_group_size, bool) or not hasattr(ci_group_size, "__index__"):
        raise InvalidConfigurationError(
            f"ci_group_size must be an integer, got {type(ci_group_size).__name__}"
        )
    ci_group_size = int(ci_group_size)
    if ci_group_size < MIN_CI_GROUP_SIZE:
        raise InvalidConfigurationError(
            f"ci_group_size must be >= {MIN_CI_GROUP_SIZE}, got {ci_group_size}"
        )
    return ci_group_size


def validate_confidence_level(confidence_level: float) -> float:
    """Validate a two-sided confidence level in (0, 1)."""
    if not 0 < confidence_level < 1:
        raise ValueError(
            f"confidence_level must be in (0, 1), got {confidence_level}"
        )
    return float(confidence_level)
