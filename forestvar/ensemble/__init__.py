"""
Adapters between scikit-learn tree ensembles and forestvar leaf tables.

This module provides functions to group training samples by leaf, build the
per-tree leaf value tables, and collect the per-tree rows for a test point.
"""

from forestvar.ensemble.leaves import (
    TreeLeafValues,
    get_leaf_samples,
    build_leaf_tables,
    collect_leaf_values,
)

__all__ = [
    "TreeLeafValues",
    "get_leaf_samples",
    "build_leaf_tables",
    "collect_leaf_values",
]
