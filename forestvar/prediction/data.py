"""
Training data access for leaf aggregation.

The leaf aggregator only needs two things from the training set: the class
label of each sample and its weight. ``TrainingData`` stores both as
read-only numpy arrays and exposes them by sample index.
"""

from typing import Optional, Sequence, Union
import numpy as np
import pandas as pd


class TrainingData:
    """
    Outcomes and sample weights of a classification training set.

    Parameters
    ----------
    outcomes : array-like of int
        Class index of each sample, in ``[0, num_classes)``.
    weights : array-like of float, optional
        Nonnegative weight of each sample. Defaults to 1 for every sample.
    classes : array-like, optional
        Original class labels, where ``classes[k]`` is the label encoded
        as outcome ``k``.

    Attributes
    ----------
    outcomes : np.ndarray
        Read-only integer outcomes.
    weights : np.ndarray
        Read-only float weights.
    classes : np.ndarray or None
        Original labels, when known.

    Examples
    --------
    >>> data = TrainingData([0, 0, 1], weights=[1.0, 1.0, 2.0])
    >>> data.get_outcome(2), data.get_weight(2)
    (1, 2.0)
    """

    def __init__(
        self,
        outcomes: Union[Sequence[int], np.ndarray],
        weights: Optional[Union[Sequence[float], np.ndarray]] = None,
        classes: Optional[Union[Sequence, np.ndarray]] = None,
    ):
        outcomes = np.asarray(outcomes)
        if outcomes.ndim != 1:
            raise ValueError(f"outcomes must be one-dimensional, got shape {outcomes.shape}")
        if outcomes.size and not np.issubdtype(outcomes.dtype, np.integer):
            if not np.all(np.equal(np.mod(outcomes, 1), 0)):
                raise ValueError("outcomes must be integer class indices")
        outcomes = outcomes.astype(np.int64)
        if np.any(outcomes < 0):
            raise ValueError("outcomes must be nonnegative class indices")

        if weights is None:
            weights = np.ones(outcomes.shape[0], dtype=np.float64)
        else:
            weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != outcomes.shape:
            raise ValueError(
                f"outcomes and weights must have the same length. "
                f"Got outcomes: {outcomes.shape[0]}, weights: {weights.shape[0]}"
            )
        if np.any(weights < 0):
            raise ValueError("weights must be nonnegative")

        outcomes.setflags(write=False)
        weights.setflags(write=False)
        self.outcomes = outcomes
        self.weights = weights
        self.classes = None if classes is None else np.asarray(classes)

    @classmethod
    def from_pandas(
        cls,
        labels: pd.Series,
        weights: Optional[pd.Series] = None,
    ) -> "TrainingData":
        """
        Build training data from arbitrary class labels.

        Labels are encoded to ``[0, num_classes)`` in sorted order, matching
        the ``classes_`` convention of scikit-learn classifiers.

        Parameters
        ----------
        labels : pd.Series
            Class label of each sample.
        weights : pd.Series, optional
            Sample weights aligned with ``labels`` by index.

        Raises
        ------
        ValueError
            If labels is not a Series, or weights are given and either
            index has duplicates.
        """
        if not isinstance(labels, pd.Series):
            raise ValueError("labels must be a pandas Series")
        classes, outcomes = np.unique(labels.to_numpy(), return_inverse=True)
        if weights is not None:
            if not (labels.index.is_unique and weights.index.is_unique):
                raise ValueError(
                    "labels and weights must have unique indexes to be aligned"
                )
            weights = weights.reindex(labels.index).to_numpy(dtype=np.float64)
        return cls(outcomes, weights=weights, classes=classes)

    @property
    def num_samples(self) -> int:
        return self.outcomes.shape[0]

    @property
    def num_classes(self) -> int:
        """Number of classes observed, or declared through ``classes``."""
        if self.classes is not None:
            return len(self.classes)
        return int(self.outcomes.max()) + 1 if self.outcomes.size else 0

    def _check_index(self, sample: int) -> int:
        sample = int(sample)
        if not 0 <= sample < self.num_samples:
            raise IndexError(
                f"sample index {sample} out of range for {self.num_samples} samples"
            )
        return sample

    def get_outcome(self, sample: int) -> int:
        return int(self.outcomes[self._check_index(sample)])

    def get_weight(self, sample: int) -> float:
        return float(self.weights[self._check_index(sample)])

    def __len__(self) -> int:
        return self.num_samples
