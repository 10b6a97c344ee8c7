"""
Leaf tables from fitted scikit-learn trees.

These helpers turn fitted decision trees (alone, in a list, or inside a
``BaggingClassifier`` / ``RandomForestClassifier``) into the per-leaf value
tables used by the prediction strategies, and gather the per-tree rows a
test point falls into.

Trees are kept in their fitted order, so a forest grown in CI groups of
consecutive estimators keeps its grouping in the collected tables.
"""

import logging
from typing import List, NamedTuple, Optional, Sequence, Tuple, Union
import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator
from sklearn.tree import BaseDecisionTree

from forestvar.prediction.values import PredictionValues

logger = logging.getLogger(__name__)


class TreeLeafValues(NamedTuple):
    """
    Precomputed leaf values of one tree.

    Attributes
    ----------
    leaf_ids : np.ndarray
        Sorted node ids of the tree's leaves.
    values : PredictionValues
        One row per entry of ``leaf_ids``.
    """

    leaf_ids: np.ndarray
    values: PredictionValues


def _as_array(X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
    if isinstance(X, pd.DataFrame):
        return X.to_numpy()
    return np.asarray(X)


def _get_trees(forest: Union[BaseEstimator, Sequence[BaseDecisionTree]]) -> List[BaseDecisionTree]:
    if isinstance(forest, BaseDecisionTree):
        return [forest]
    if hasattr(forest, "estimators_"):
        return list(forest.estimators_)
    return list(forest)


def _get_tree_features(forest, tree_idx: int) -> Optional[np.ndarray]:
    # BaggingClassifier trains each tree on a column subset
    features = getattr(forest, "estimators_features_", None)
    if features is None:
        return None
    return np.asarray(features[tree_idx])


def get_leaf_samples(
    tree: BaseDecisionTree,
    X: Union[np.ndarray, pd.DataFrame],
    sample_indices: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, List[np.ndarray]]:
    """
    Group training samples by the leaf of a fitted tree they fall into.

    Parameters
    ----------
    tree : DecisionTreeClassifier or DecisionTreeRegressor
        A fitted scikit-learn tree.
    X : np.ndarray or pd.DataFrame
        Training features, with the columns the tree was fitted on.
    sample_indices : np.ndarray, optional
        Rows of X used to populate the leaves, e.g. the subsample a tree
        was grown on. Defaults to all rows.

    Returns
    -------
    tuple of (np.ndarray, list of np.ndarray)
        - leaf_ids: sorted node ids of every leaf of the tree
        - leaf_samples: for each leaf id, the row indices of X it holds.
          Leaves that receive no rows get an empty array.

    Examples
    --------
    >>> import numpy as np
    >>> from sklearn.tree import DecisionTreeClassifier
    >>> X = np.array([[0.0], [1.0], [2.0], [3.0]])
    >>> tree = DecisionTreeClassifier(max_depth=1).fit(X, [0, 0, 1, 1])
    >>> leaf_ids, leaf_samples = get_leaf_samples(tree, X)
    >>> leaf_ids
    array([1, 2])
    >>> [samples.tolist() for samples in leaf_samples]
    [[0, 1], [2, 3]]
    """
    X = _as_array(X)
    if sample_indices is None:
        sample_indices = np.arange(X.shape[0])
    else:
        sample_indices = np.asarray(sample_indices, dtype=np.int64)

    leaf_ids = np.flatnonzero(tree.tree_.children_left == -1)
    if sample_indices.size == 0:
        return leaf_ids, [np.empty(0, dtype=np.int64) for _ in leaf_ids]

    sample_leaves = tree.apply(X[sample_indices])

    order = np.argsort(sample_leaves, kind="stable")
    sorted_leaves = sample_leaves[order]
    starts = np.searchsorted(sorted_leaves, leaf_ids, side="left")
    ends = np.searchsorted(sorted_leaves, leaf_ids, side="right")
    leaf_samples = [
        sample_indices[order[start:end]] for start, end in zip(starts, ends)
    ]

    return leaf_ids, leaf_samples


def build_leaf_tables(
    forest: Union[BaseEstimator, Sequence[BaseDecisionTree]],
    X: Union[np.ndarray, pd.DataFrame],
    data,
    strategy,
    use_estimator_samples: bool = True,
) -> List[TreeLeafValues]:
    """
    Precompute the leaf values of every tree of a fitted forest.

    Parameters
    ----------
    forest : fitted ensemble, tree, or sequence of trees
        Either an estimator exposing ``estimators_`` (e.g.
        ``BaggingClassifier``, ``RandomForestClassifier``), a single tree,
        or a list of trees.
    X : np.ndarray or pd.DataFrame
        Training features, row-aligned with ``data``.
    data : TrainingData
        Outcomes and weights of the training samples.
    strategy : PredictionStrategy
        Strategy whose ``precompute_prediction_values`` fills the leaves.
    use_estimator_samples : bool, default=True
        If the forest exposes ``estimators_samples_``, populate each tree's
        leaves with its own subsample only. Otherwise all rows are used.

    Returns
    -------
    list of TreeLeafValues
        One entry per tree, in the forest's order.
    """
    X = _as_array(X)
    if X.shape[0] != data.num_samples:
        raise ValueError(
            f"X and data must have the same number of samples. "
            f"Got X: {X.shape[0]}, data: {data.num_samples}"
        )

    trees = _get_trees(forest)
    estimator_samples = getattr(forest, "estimators_samples_", None) if use_estimator_samples else None

    tables = []
    for tree_idx, tree in enumerate(trees):
        features = _get_tree_features(forest, tree_idx)
        tree_X = X if features is None else X[:, features]
        sample_indices = None if estimator_samples is None else estimator_samples[tree_idx]
        if sample_indices is not None:
            sample_indices = np.asarray(sample_indices)
            if sample_indices.dtype == bool:
                sample_indices = np.flatnonzero(sample_indices)

        leaf_ids, leaf_samples = get_leaf_samples(tree, tree_X, sample_indices)
        values = strategy.precompute_prediction_values(leaf_samples, data)
        tables.append(TreeLeafValues(leaf_ids=leaf_ids, values=values))

    logger.debug("Built leaf tables for %d trees", len(tables))
    return tables


def collect_leaf_values(
    forest: Union[BaseEstimator, Sequence[BaseDecisionTree]],
    tables: Sequence[TreeLeafValues],
    x: Union[np.ndarray, pd.Series, Sequence[float]],
) -> PredictionValues:
    """
    Gather, for one test point, the leaf row of every tree.

    Parameters
    ----------
    forest : fitted ensemble, tree, or sequence of trees
        The forest passed to ``build_leaf_tables``.
    tables : sequence of TreeLeafValues
        Output of ``build_leaf_tables`` for the same forest.
    x : array-like
        Features of a single test point.

    Returns
    -------
    PredictionValues
        One row per tree, in the forest's order, copied from the leaf of
        that tree containing ``x``.
    """
    trees = _get_trees(forest)
    if len(trees) != len(tables):
        raise ValueError(
            f"forest and tables must have the same number of trees. "
            f"Got forest: {len(trees)}, tables: {len(tables)}"
        )

    x = np.asarray(x, dtype=np.float64).reshape(1, -1)
    num_types = tables[0].values.num_types if tables else 0
    values = np.zeros((len(trees), num_types), dtype=np.float64)
    empty = np.zeros(len(trees), dtype=bool)

    for tree_idx, (tree, table) in enumerate(zip(trees, tables)):
        features = _get_tree_features(forest, tree_idx)
        tree_x = x if features is None else x[:, features]
        leaf = tree.apply(tree_x)[0]
        row = int(np.searchsorted(table.leaf_ids, leaf))
        values[tree_idx] = table.values.values[row]
        empty[tree_idx] = table.values.is_empty(row)

    return PredictionValues(values, empty)
