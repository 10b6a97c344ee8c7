import logging

import numpy as np
import pytest
from scipy.stats import norm

from forestvar.exceptions import InsufficientDataError, InvalidConfigurationError
from forestvar.prediction.values import PredictionValues
from forestvar.variance.debiasing import ObjectiveBayesDebiaser
from forestvar.variance.jackknife import (
    compute_grouped_jackknife_variance,
    compute_jackknife_components,
)

ROWS = [[0.9, 0.1], [0.7, 0.3], [0.2, 0.8], [0.4, 0.6]]
AVERAGE = [0.55, 0.45]


class RecordingDebiaser:
    def __init__(self):
        self.calls = []

    def debias(self, var_between, group_noise, num_good_groups):
        self.calls.append((var_between, group_noise, num_good_groups))
        return max(var_between - group_noise, 0.0)


def test_components_match_hand_computation():
    table = PredictionValues.from_rows(ROWS, num_types=2)

    components = compute_jackknife_components(AVERAGE, table, ci_group_size=2)

    # Pseudo-values of class 0: [0.35, 0.15] and [-0.35, -0.15]
    assert components.num_good_groups == 2
    np.testing.assert_allclose(components.psi_squared, [0.29, 0.29])
    np.testing.assert_allclose(components.psi_grouped_squared, [0.125, 0.125])
    np.testing.assert_allclose(components.var_between, [0.0625, 0.0625])
    np.testing.assert_allclose(components.var_total, [0.0725, 0.0725])
    np.testing.assert_allclose(components.group_noise, [0.01, 0.01])


def test_variance_passes_components_to_debiaser():
    table = PredictionValues.from_rows(ROWS, num_types=2)
    debiaser = RecordingDebiaser()

    variance = compute_grouped_jackknife_variance(AVERAGE, table, 2, debiaser=debiaser)

    assert len(debiaser.calls) == 2
    for var_between, group_noise, num_good_groups in debiaser.calls:
        assert var_between == pytest.approx(0.0625)
        assert group_noise == pytest.approx(0.01)
        assert num_good_groups == 2.0
    np.testing.assert_allclose(variance, [0.0525, 0.0525])


def test_variance_uses_bayes_debiasing_by_default():
    table = PredictionValues.from_rows(ROWS, num_types=2)

    variance = compute_grouped_jackknife_variance(AVERAGE, table, ci_group_size=2)

    estimate = 0.0625 - 0.01
    se = 0.0625 * np.sqrt(2.0 / 2)
    expected = estimate + se * norm.pdf(estimate / se) / norm.cdf(estimate / se)
    np.testing.assert_allclose(variance, [expected, expected])
    assert np.all(variance > estimate)


def test_group_with_empty_row_is_skipped():
    rows = [ROWS[0], ROWS[1], None, ROWS[3]]
    table = PredictionValues.from_rows(rows, num_types=2)

    components = compute_jackknife_components(AVERAGE, table, ci_group_size=2)

    assert components.num_good_groups == 1
    np.testing.assert_allclose(components.psi_squared, [0.145, 0.145])
    np.testing.assert_allclose(components.var_between, [0.0625, 0.0625])
    np.testing.assert_allclose(components.var_total, [0.0725, 0.0725])

    variance = compute_grouped_jackknife_variance(AVERAGE, table, ci_group_size=2)
    assert np.all(variance >= 0)


def test_group_size_one_is_rejected_before_computing():
    table = PredictionValues.from_rows(ROWS, num_types=2)
    debiaser = RecordingDebiaser()

    with pytest.raises(InvalidConfigurationError):
        compute_grouped_jackknife_variance(AVERAGE, table, 1, debiaser=debiaser)
    assert debiaser.calls == []


def test_no_good_groups_signals_insufficient_data():
    table = PredictionValues.from_rows([ROWS[0], None, None, ROWS[3]], num_types=2)

    with pytest.raises(InsufficientDataError) as excinfo:
        compute_grouped_jackknife_variance(AVERAGE, table, ci_group_size=2)
    assert excinfo.value.num_nodes == 4
    assert excinfo.value.ci_group_size == 2


def test_fewer_rows_than_one_group_signals_insufficient_data():
    table = PredictionValues.from_rows([ROWS[0]], num_types=2)

    with pytest.raises(InsufficientDataError):
        compute_grouped_jackknife_variance(AVERAGE, table, ci_group_size=2)


def test_trailing_rows_are_dropped_with_warning(caplog):
    table = PredictionValues.from_rows(ROWS + [[0.0, 1.0]], num_types=2)
    full = PredictionValues.from_rows(ROWS, num_types=2)

    with caplog.at_level(logging.WARNING, logger="forestvar.variance.jackknife"):
        variance = compute_grouped_jackknife_variance(AVERAGE, table, ci_group_size=2)

    assert "not a multiple" in caplog.text
    np.testing.assert_array_equal(
        variance, compute_grouped_jackknife_variance(AVERAGE, full, ci_group_size=2)
    )


def test_average_length_must_match_table():
    table = PredictionValues.from_rows(ROWS, num_types=2)

    with pytest.raises(ValueError, match="entries"):
        compute_grouped_jackknife_variance([0.3, 0.3, 0.4], table, ci_group_size=2)


def test_variance_is_nonnegative_and_deterministic():
    rng = np.random.default_rng(5)
    for _ in range(20):
        num_classes = int(rng.integers(2, 6))
        ci_group_size = int(rng.integers(2, 5))
        num_groups = int(rng.integers(1, 30))
        values = rng.dirichlet(np.ones(num_classes), size=num_groups * ci_group_size)
        empty = rng.uniform(size=values.shape[0]) < 0.1
        empty[:ci_group_size] = False
        table = PredictionValues(values, empty)
        average = values[~empty].mean(axis=0)

        first = compute_grouped_jackknife_variance(average, table, ci_group_size)
        second = compute_grouped_jackknife_variance(average, table, ci_group_size)

        assert first.shape == (num_classes,)
        assert np.all(first >= 0)
        assert np.array_equal(first, second)


def test_identical_trees_give_zero_variance():
    values = np.tile([0.3, 0.7], (8, 1))
    table = PredictionValues(values, np.zeros(8, dtype=bool))

    variance = compute_grouped_jackknife_variance([0.3, 0.7], table, ci_group_size=4)

    np.testing.assert_array_equal(variance, [0.0, 0.0])


def test_custom_debiaser_is_used():
    table = PredictionValues.from_rows(ROWS, num_types=2)

    variance = compute_grouped_jackknife_variance(
        AVERAGE, table, 2, debiaser=ObjectiveBayesDebiaser()
    )

    np.testing.assert_array_equal(
        variance, compute_grouped_jackknife_variance(AVERAGE, table, 2)
    )
