"""
Prediction strategies for forest leaves.

A prediction strategy defines what a forest stores in its leaves and how the
stored values become a prediction and an uncertainty estimate. The forest
precomputes one value vector per leaf with ``precompute_prediction_values``;
at query time an external combiner averages the rows a test point falls
into, and the strategy turns that average into a prediction and a variance.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Union
import numpy as np

from forestvar.config import validate_num_classes
from forestvar.exceptions import UnsupportedPredictionError
from forestvar.prediction.aggregation import compute_leaf_class_probabilities
from forestvar.prediction.values import PredictionValues
from forestvar.variance.debiasing import ObjectiveBayesDebiaser
from forestvar.variance.jackknife import compute_grouped_jackknife_variance


class PredictionStrategy(ABC):
    """
    Interface shared by all prediction kinds.

    Subclasses decide the length of the stored leaf vectors, the length of
    the prediction, and how variance and error are computed.
    """

    @abstractmethod
    def prediction_length(self) -> int:
        """Number of values in a prediction."""

    @abstractmethod
    def prediction_value_length(self) -> int:
        """Number of values stored per leaf."""

    @abstractmethod
    def predict(self, average: Union[Sequence[float], np.ndarray]) -> np.ndarray:
        """Turn the averaged leaf values into a prediction."""

    @abstractmethod
    def compute_variance(
        self,
        average: Union[Sequence[float], np.ndarray],
        leaf_values: PredictionValues,
        ci_group_size: int,
    ) -> np.ndarray:
        """Estimate the variance of each prediction entry."""

    @abstractmethod
    def compute_error(
        self,
        sample: int,
        average: Union[Sequence[float], np.ndarray],
        leaf_values: PredictionValues,
        data,
    ):
        """Estimate the out-of-bag error of a training sample."""

    @abstractmethod
    def precompute_prediction_values(
        self,
        leaf_samples: Sequence[Sequence[int]],
        data,
    ) -> PredictionValues:
        """Compute the value vector stored in each leaf."""


class ProbabilityPredictionStrategy(PredictionStrategy):
    """
    Class probability prediction with grouped jackknife variance.

    Each leaf stores the weighted class distribution of its training
    samples. The forest prediction is the average of these distributions,
    passed through unchanged.

    Parameters
    ----------
    num_classes : int
        Number of outcome classes, at least 1.
    debiaser : ObjectiveBayesDebiaser, optional
        Debiaser applied to the grouped jackknife. Defaults to
        ``ObjectiveBayesDebiaser()``.

    Examples
    --------
    >>> from forestvar.prediction.data import TrainingData
    >>> strategy = ProbabilityPredictionStrategy(num_classes=2)
    >>> data = TrainingData([0, 0, 1, 1])
    >>> table = strategy.precompute_prediction_values([[0, 1, 2], [3]], data)
    >>> strategy.predict(table.values.mean(axis=0))
    array([0.33333333, 0.66666667])
    """

    prediction_kind = "probability"

    def __init__(
        self,
        num_classes: int,
        debiaser: Optional[ObjectiveBayesDebiaser] = None,
    ):
        self.num_classes = validate_num_classes(num_classes)
        self.debiaser = debiaser if debiaser is not None else ObjectiveBayesDebiaser()

    def prediction_length(self) -> int:
        return self.num_classes

    def prediction_value_length(self) -> int:
        return self.num_classes

    def predict(self, average: Union[Sequence[float], np.ndarray]) -> np.ndarray:
        # The combiner already averaged the leaf distributions
        average = np.asarray(average, dtype=np.float64)
        if average.shape != (self.num_classes,):
            raise ValueError(
                f"average must have {self.num_classes} entries, got shape {average.shape}"
            )
        return average

    def compute_variance(
        self,
        average: Union[Sequence[float], np.ndarray],
        leaf_values: PredictionValues,
        ci_group_size: int,
    ) -> np.ndarray:
        """
        Estimate the variance of each class probability.

        See Also
        --------
        forestvar.variance.jackknife.compute_grouped_jackknife_variance
        """
        if leaf_values.num_types != self.num_classes:
            raise ValueError(
                f"leaf_values must have {self.num_classes} columns, got {leaf_values.num_types}"
            )
        return compute_grouped_jackknife_variance(
            average, leaf_values, ci_group_size, debiaser=self.debiaser
        )

    def compute_error(
        self,
        sample: int,
        average: Union[Sequence[float], np.ndarray],
        leaf_values: PredictionValues,
        data,
    ):
        raise UnsupportedPredictionError("compute_error", self.prediction_kind)

    def precompute_prediction_values(
        self,
        leaf_samples: Sequence[Sequence[int]],
        data,
    ) -> PredictionValues:
        return compute_leaf_class_probabilities(leaf_samples, data, self.num_classes)

    def __repr__(self) -> str:
        return f"ProbabilityPredictionStrategy(num_classes={self.num_classes})"
