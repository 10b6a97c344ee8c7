"""
Leaf values and their aggregation.

This module provides the training-data accessor, the read-only table of
per-leaf values, the aggregation of training samples into leaf class
distributions, and the averaging of per-tree leaf values for a test point.

Key Concepts:
- **Leaf value**: the weighted class distribution of a leaf's samples
- **Empty leaf**: a leaf with no samples or negligible total weight
- **Prediction value table**: one row per leaf, built once, read many times
"""

from forestvar.prediction.data import TrainingData
from forestvar.prediction.values import PredictionValues
from forestvar.prediction.aggregation import compute_leaf_class_probabilities
from forestvar.prediction.combining import average_leaf_values

__all__ = [
    "TrainingData",
    "PredictionValues",
    "compute_leaf_class_probabilities",
    "average_leaf_values",
]
