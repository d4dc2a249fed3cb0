"""Tests for the model adapter interface and the non-Bayesian families."""

import warnings

import numpy as np
import pandas as pd
import pytest

from league_ranking.model.adapters import (
    BaggedTreeAdapter,
    BayesianMarginAdapter,
    BayesianWinAdapter,
    EloAdapter,
    HeuristicAdapter,
    LogisticAdapter,
    Matchup,
    ModelAdapter,
    PosteriorFit,
    decide,
    default_adapters,
)
from league_ranking.model.errors import InsufficientDataError
from league_ranking.model.ratings import ELO_VARIANTS


FAST_ADAPTERS = [
    *(EloAdapter(config) for config in ELO_VARIANTS),
    LogisticAdapter(),
    BaggedTreeAdapter(n_estimators=10),
    HeuristicAdapter(),
]


class TestDecide:
    def test_clear_calls(self):
        rng = np.random.default_rng(0)
        assert decide(0.9, rng) == 1
        assert decide(0.1, rng) == 0

    def test_half_is_a_fair_coin(self):
        rng = np.random.default_rng(0)
        picks = [decide(0.5, rng) for _ in range(2000)]
        assert set(picks) == {0, 1}
        assert 0.45 < np.mean(picks) < 0.55


class TestInterface:
    @pytest.mark.parametrize("adapter", FAST_ADAPTERS, ids=lambda a: a.name)
    def test_probabilities_in_unit_interval(self, adapter, rows):
        fitted = adapter.fit(rows, random_seed=1)
        predictions = adapter.predict_rows(fitted, rows)

        assert len(predictions) == len(rows)
        assert predictions["win_probability"].between(0, 1).all()
        assert predictions["margin"].isna().all()
        assert fitted.family == adapter.name

    @pytest.mark.parametrize("adapter", FAST_ADAPTERS, ids=lambda a: a.name)
    def test_empty_window(self, adapter, rows):
        with pytest.raises(InsufficientDataError):
            adapter.fit(rows.iloc[0:0])

    @pytest.mark.parametrize("adapter", FAST_ADAPTERS, ids=lambda a: a.name)
    def test_single_team(self, adapter, rows):
        solo = rows.iloc[:2].assign(team="A", opponent="A")
        with pytest.raises(InsufficientDataError):
            adapter.fit(solo)

    @pytest.mark.parametrize("adapter", FAST_ADAPTERS, ids=lambda a: a.name)
    def test_subset_of_teams(self, adapter, rows):
        """Teams missing from training can still be predicted."""
        fitted = adapter.fit(rows[rows["week"] == 1], random_seed=3)
        p = adapter.predict_win_probability(fitted, Matchup("A", "Z", site=0))
        assert 0.0 <= p <= 1.0

    def test_margin_not_applicable(self, rows):
        adapter = EloAdapter(ELO_VARIANTS[0])
        fitted = adapter.fit(rows)
        assert adapter.predict_margin(fitted, Matchup("A", "B")) is None

    def test_adapters_hold_no_fit_state(self, rows):
        adapter = EloAdapter(ELO_VARIANTS[1])
        early = adapter.fit(rows[rows["week"] == 1])
        late = adapter.fit(rows)
        assert early.ratings != late.ratings
        assert early.rating("D") != late.rating("D")

    def test_default_adapters(self):
        adapters = default_adapters()
        names = [a.name for a in adapters]
        assert len(adapters) == 8
        assert names[:2] == ["bayes_margin", "bayes_win"]
        assert all(isinstance(a, ModelAdapter) for a in adapters)
        assert len(default_adapters(include_bayesian=False)) == 6


class TestElo:
    def test_winner_rated_higher(self, rows):
        adapter = EloAdapter(ELO_VARIANTS[0])
        fitted = adapter.fit(rows[rows["week"] <= 2])
        assert fitted.rating("B") > fitted.rating("D")
        assert adapter.predict_win_probability(fitted, Matchup("A", "D")) > 0.5

    def test_unseen_teams_even(self, rows):
        adapter = EloAdapter(ELO_VARIANTS[0])
        fitted = adapter.fit(rows)
        assert adapter.predict_win_probability(fitted, Matchup("Y", "Z")) == pytest.approx(0.5)


class TestHeuristic:
    @pytest.fixture
    def fitted(self, rows):
        return HeuristicAdapter().fit(rows, random_seed=0)

    def test_better_record_wins(self, fitted):
        adapter = HeuristicAdapter()
        assert adapter.predict_win_probability(fitted, Matchup("A", "D", 0, games_ahead=2)) == 1.0
        assert adapter.predict_win_probability(fitted, Matchup("D", "A", 1, games_ahead=-2)) == 0.0

    def test_home_breaks_equal_records(self, fitted):
        adapter = HeuristicAdapter()
        assert adapter.predict_win_probability(fitted, Matchup("A", "B", 1)) == 1.0
        assert adapter.predict_win_probability(fitted, Matchup("B", "A", -1)) == 0.0

    def test_neutral_coin_flip(self, rows):
        adapter = HeuristicAdapter()
        picks = set()
        for seed in range(40):
            fitted = adapter.fit(rows, random_seed=seed)
            picks.add(adapter.predict_win_probability(fitted, Matchup("A", "B", 0)))
        assert picks == {0.0, 1.0}

    def test_neutral_flip_shared_by_both_sides(self, rows):
        adapter = HeuristicAdapter()
        for seed in range(40):
            fitted = adapter.fit(rows, random_seed=seed)
            first = adapter.predict_win_probability(fitted, Matchup("A", "C", 0))
            second = adapter.predict_win_probability(fitted, Matchup("C", "A", 0))
            assert first + second == 1.0
            assert adapter.predict_win_probability(fitted, Matchup("A", "C", 0)) == first


class TestClassifiers:
    def test_logistic_learns_home_signal(self, rows):
        """Every home team in the fixture season won."""
        adapter = LogisticAdapter()
        fitted = adapter.fit(rows, random_seed=0)
        home = adapter.predict_win_probability(fitted, Matchup("A", "B", 1))
        away = adapter.predict_win_probability(fitted, Matchup("A", "B", -1))
        assert home >= away

    def test_elastic_net_mix_without_deprecated_penalty(self, rows):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            fitted = LogisticAdapter().fit(rows, random_seed=0)

        assert not [w for w in caught if "penalty" in str(w.message)]
        model = fitted.estimator.named_steps["model"]
        assert model.get_params()["l1_ratios"] == [0.0, 0.5, 1.0]

    def test_single_class_rejected(self, rows):
        one_sided = rows[rows["outcome"] == 1.0]
        with pytest.raises(InsufficientDataError, match="single outcome class"):
            BaggedTreeAdapter().fit(one_sided)

    def test_bagged_trees_reproducible(self, rows):
        adapter = BaggedTreeAdapter(n_estimators=10)
        a = adapter.predict_rows(adapter.fit(rows, random_seed=5), rows)
        b = adapter.predict_rows(adapter.fit(rows, random_seed=5), rows)
        pd.testing.assert_frame_equal(a, b)


class TestBayesianPrediction:
    """Prediction math on hand-built posteriors (no sampling)."""

    def test_margin_adapter(self, make_fit):
        fit = make_fit("margin", [[5.0, -5.0]] * 10, teams=["A", "B"], eta_home=[2.0] * 10)
        adapter = BayesianMarginAdapter()

        assert adapter.predict_margin(fit, Matchup("A", "B", 1)) == pytest.approx(12.0)
        assert adapter.predict_margin(fit, Matchup("B", "A", -1)) == pytest.approx(-12.0)
        assert adapter.predict_win_probability(fit, Matchup("A", "B", 0)) > 0.5
        assert adapter.provides_margin

    def test_win_adapter(self, make_fit):
        fit = make_fit("win", [[1.0, -1.0]] * 10, teams=["A", "B"])
        adapter = BayesianWinAdapter()

        p = adapter.predict_win_probability(fit, Matchup("A", "B", 0))
        assert p == pytest.approx(1 / (1 + np.exp(-2.0)))
        assert adapter.predict_margin(fit, Matchup("A", "B")) is None

    def test_unknown_team_at_prior_mean(self, make_fit):
        fit = make_fit("win", [[1.0, -1.0]] * 4, teams=["A", "B"])
        assert np.all(fit.strength("Z") == 0.0)
        assert isinstance(fit, PosteriorFit)
