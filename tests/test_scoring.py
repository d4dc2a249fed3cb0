"""Unit tests for league_ranking.model.scoring."""

import numpy as np
import pandas as pd
import pytest

from league_ranking.model.scoring import (
    correctness,
    failure_report,
    score_predictions,
    score_rows,
)
from league_ranking.utils.logging import print_accuracy, print_failures


class TestCorrectness:
    @pytest.mark.parametrize(
        "outcome, probability, expected",
        [
            (1.0, 0.9, 1.0),
            (0.0, 0.9, 0.0),
            (1.0, 0.5, 0.5),
            (0.5, 0.5, 0.5),
            (0.0, 0.5, 0.5),
            (0.0, 0.1, 1.0),
            (1.0, 0.0, 0.0),
            (1.0, 1.0, 1.0),
            (0.5, 0.9, 0.5),
        ],
    )
    def test_value_table(self, outcome, probability, expected):
        assert correctness(outcome, probability) == expected

    def test_vectorized_matches_scalar(self):
        rng = np.random.default_rng(0)
        predictions = pd.DataFrame({
            "outcome": rng.choice([0.0, 0.5, 1.0], size=200),
            "win_probability": np.round(rng.random(200), 1),
        })
        expected = [
            correctness(y, p)
            for y, p in zip(predictions["outcome"], predictions["win_probability"])
        ]
        np.testing.assert_array_equal(score_rows(predictions).to_numpy(), expected)


class TestAggregate:
    @pytest.fixture
    def predictions(self):
        return pd.DataFrame({
            "window": [0, 0, 1, 1, 0, 0, 1, 1],
            "model": ["m1"] * 4 + ["m2"] * 4,
            "outcome": [1.0, 0.0, 1.0, 0.0] * 2,
            "win_probability": [0.8, 0.3, 0.5, 0.6, 0.9, 0.1, np.nan, np.nan],
        })

    def test_accuracy(self, predictions):
        summary = score_predictions(predictions).set_index("model")
        assert summary.loc["m1", "accuracy"] == pytest.approx((1 + 1 + 0.5 + 0) / 4)

    def test_printed_summary(self, predictions, capsys):
        print_accuracy(score_predictions(predictions))
        out = capsys.readouterr().out
        assert "m1" in out
        assert "(2 excluded)" in out

    def test_missing_excluded_not_zero(self, predictions):
        summary = score_predictions(predictions).set_index("model")
        assert summary.loc["m2", "accuracy"] == 1.0
        assert summary.loc["m2", "n_scored"] == 2
        assert summary.loc["m2", "n_excluded"] == 2
        assert summary.loc["m2", "n_failed_windows"] == 1

    def test_model_order_preserved(self, predictions):
        assert list(score_predictions(predictions)["model"]) == ["m1", "m2"]

    def test_all_missing(self):
        predictions = pd.DataFrame({
            "window": [0], "model": ["m"], "outcome": [1.0], "win_probability": [np.nan],
        })
        summary = score_predictions(predictions)
        assert np.isnan(summary.loc[0, "accuracy"])


class TestFailureReport:
    def test_groups_by_model(self, capsys):
        failures = pd.DataFrame({
            "window": [0, 2, 1],
            "cutoff_week": [1, 3, 2],
            "model": ["bayes_win", "bayes_win", "logistic"],
            "error_type": ["SamplingNonConvergenceError"] * 2 + ["InsufficientDataError"],
            "message": ["", "", ""],
        })
        report = failure_report(failures).set_index("model")
        assert report.loc["bayes_win", "windows"] == [0, 2]
        assert report.loc["logistic", "error_types"] == ["InsufficientDataError"]

        print_failures(failure_report(failures))
        out = capsys.readouterr().out
        assert "bayes_win: cutoff weeks 1, 3 (SamplingNonConvergenceError)" in out

    def test_empty(self):
        assert len(failure_report(pd.DataFrame(columns=["window", "model"]))) == 0
