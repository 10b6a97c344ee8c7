"""
Variance estimation for class probability forests.

This module provides the grouped jackknife estimator of the sampling
variance of a forest's class probabilities, the objective Bayes debiaser
that keeps the estimate nonnegative, and confidence interval helpers.

Key Concepts:
- **CI group**: consecutive trees grown on a shared subsample
- **Pseudo-value**: deviation of a tree's leaf value from the forest average
- **Debiasing**: removing the small-group inflation of the between-group
  variance without producing negative estimates
"""

from forestvar.variance.debiasing import (
    ObjectiveBayesDebiaser,
    debias_variance,
)
from forestvar.variance.jackknife import (
    JackknifeComponents,
    compute_jackknife_components,
    compute_grouped_jackknife_variance,
)
from forestvar.variance.intervals import (
    compute_confidence_interval,
    predict_with_variance,
)

__all__ = [
    # Debiasing
    "ObjectiveBayesDebiaser",
    "debias_variance",
    # Grouped jackknife
    "JackknifeComponents",
    "compute_jackknife_components",
    "compute_grouped_jackknife_variance",
    # Intervals
    "compute_confidence_interval",
    "predict_with_variance",
]
