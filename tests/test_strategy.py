import numpy as np
import pytest

from forestvar.exceptions import InvalidConfigurationError, UnsupportedPredictionError
from forestvar.prediction.data import TrainingData
from forestvar.prediction.values import PredictionValues
from forestvar.strategy import PredictionStrategy, ProbabilityPredictionStrategy
from forestvar.variance.jackknife import compute_grouped_jackknife_variance


def test_strategy_implements_the_interface():
    strategy = ProbabilityPredictionStrategy(num_classes=3)

    assert isinstance(strategy, PredictionStrategy)
    assert strategy.prediction_length() == 3
    assert strategy.prediction_value_length() == 3


def test_interface_cannot_be_instantiated():
    with pytest.raises(TypeError):
        PredictionStrategy()


@pytest.mark.parametrize("num_classes", [1, 2, 3, 7])
def test_predict_is_identity(num_classes):
    rng = np.random.default_rng(num_classes)
    average = rng.dirichlet(np.ones(num_classes))
    strategy = ProbabilityPredictionStrategy(num_classes)

    prediction = strategy.predict(average)

    assert np.array_equal(prediction, average)


def test_predict_accepts_lists():
    strategy = ProbabilityPredictionStrategy(2)

    assert strategy.predict([0.25, 0.75]).tolist() == [0.25, 0.75]


def test_predict_rejects_wrong_length():
    strategy = ProbabilityPredictionStrategy(2)

    with pytest.raises(ValueError):
        strategy.predict([0.2, 0.3, 0.5])


@pytest.mark.parametrize("num_classes", [0, -1, 2.5, True])
def test_invalid_num_classes_is_rejected(num_classes):
    with pytest.raises(InvalidConfigurationError):
        ProbabilityPredictionStrategy(num_classes)


def test_precompute_prediction_values_aggregates_leaves():
    strategy = ProbabilityPredictionStrategy(2)
    data = TrainingData([0, 0, 1, 1], weights=[1.0, 1.0, 1.0, 1e-20])

    table = strategy.precompute_prediction_values([[0, 1, 2], [3], []], data)

    np.testing.assert_allclose(table.values[0], [2 / 3, 1 / 3])
    assert table.is_empty(1)
    assert table.is_empty(2)


def test_tiny_weight_leaf_is_empty():
    strategy = ProbabilityPredictionStrategy(2)
    data = TrainingData([0, 1], weights=[5e-21, 5e-21])

    table = strategy.precompute_prediction_values([[0, 1]], data)

    assert table.is_empty(0)


def test_compute_variance_delegates_to_grouped_jackknife():
    strategy = ProbabilityPredictionStrategy(2)
    table = PredictionValues.from_rows(
        [[0.9, 0.1], [0.7, 0.3], [0.2, 0.8], [0.4, 0.6]], num_types=2
    )

    variance = strategy.compute_variance([0.55, 0.45], table, ci_group_size=2)

    np.testing.assert_array_equal(
        variance, compute_grouped_jackknife_variance([0.55, 0.45], table, 2)
    )


def test_compute_variance_rejects_table_of_other_width():
    strategy = ProbabilityPredictionStrategy(3)
    table = PredictionValues.from_rows([[0.5, 0.5], [0.5, 0.5]], num_types=2)

    with pytest.raises(ValueError, match="columns"):
        strategy.compute_variance([0.5, 0.5, 0.0], table, ci_group_size=2)


def test_compute_variance_rejects_group_size_one():
    strategy = ProbabilityPredictionStrategy(2)
    table = PredictionValues.from_rows([[0.5, 0.5], [0.5, 0.5]], num_types=2)

    with pytest.raises(InvalidConfigurationError):
        strategy.compute_variance([0.5, 0.5], table, ci_group_size=1)


def test_compute_error_is_unsupported():
    strategy = ProbabilityPredictionStrategy(2)
    table = PredictionValues.from_rows([[0.5, 0.5]], num_types=2)
    data = TrainingData([0])

    with pytest.raises(UnsupportedPredictionError) as excinfo:
        strategy.compute_error(0, [0.5, 0.5], table, data)

    assert isinstance(excinfo.value, NotImplementedError)
    assert excinfo.value.prediction_kind == "probability"
    assert "compute_error" in str(excinfo.value)


def test_leaf_at_weight_tolerance_is_empty_and_above_is_not():
    strategy = ProbabilityPredictionStrategy(2)
    data = TrainingData([0, 1], weights=[1e-16, 2e-16])

    table = strategy.precompute_prediction_values([[0], [1]], data)

    assert table.is_empty(0)
    assert not table.is_empty(1)
    np.testing.assert_allclose(table.values[1], [0.0, 1.0])
