"""
forestvar: class probability forests with grouped jackknife variance.

Trees of a forest are grown in CI groups of consecutive trees sharing a
subsample. Every leaf stores the weighted class distribution of its training
samples; for a test point the forest averages the leaves it falls into and
estimates the variance of that average with a bias-corrected, grouped
jackknife.

Subpackages:
- **prediction**: training data, leaf value tables, leaf aggregation
- **variance**: grouped jackknife, Bayes debiasing, confidence intervals
- **ensemble**: scikit-learn tree adapters
"""

from forestvar.exceptions import (
    InvalidConfigurationError,
    InsufficientDataError,
    UnsupportedPredictionError,
)
from forestvar.prediction import (
    TrainingData,
    PredictionValues,
    compute_leaf_class_probabilities,
    average_leaf_values,
)
from forestvar.variance import (
    ObjectiveBayesDebiaser,
    compute_grouped_jackknife_variance,
    compute_confidence_interval,
    predict_with_variance,
)
from forestvar.strategy import PredictionStrategy, ProbabilityPredictionStrategy

__version__ = "0.1.0"

__all__ = [
    # Errors
    "InvalidConfigurationError",
    "InsufficientDataError",
    "UnsupportedPredictionError",
    # Leaf values
    "TrainingData",
    "PredictionValues",
    "compute_leaf_class_probabilities",
    "average_leaf_values",
    # Variance
    "ObjectiveBayesDebiaser",
    "compute_grouped_jackknife_variance",
    "compute_confidence_interval",
    "predict_with_variance",
    # Strategies
    "PredictionStrategy",
    "ProbabilityPredictionStrategy",
]
