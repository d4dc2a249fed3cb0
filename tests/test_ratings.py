"""Unit tests for the rating-system variants."""

import pandas as pd
import pytest

from league_ranking.model.ratings import (
    ELO_VARIANTS,
    EloConfig,
    compute_ratings,
    expected_score,
    k_factor,
    update_ratings,
)


class TestExpectedScore:
    def test_equal_ratings_neutral(self):
        assert expected_score(1500, 1500) == pytest.approx(0.5)

    def test_symmetry(self):
        p = expected_score(1600, 1500, site=1, home_shift=50)
        q = expected_score(1500, 1600, site=-1, home_shift=50)
        assert p + q == pytest.approx(1.0)

    def test_home_shift_favors_home(self):
        assert expected_score(1500, 1500, site=1, home_shift=65) > 0.5
        assert expected_score(1500, 1500, site=-1, home_shift=65) < 0.5
        assert expected_score(1500, 1500, site=0, home_shift=65) == pytest.approx(0.5)

    def test_400_points_is_ten_to_one(self):
        assert expected_score(1900, 1500) == pytest.approx(10 / 11)


class TestUpdates:
    def test_fixed_k(self):
        config = EloConfig(name="fixed", k=20)
        assert k_factor(config, 2000, 1500) == 20

    def test_tiered_k_shrinks_away_from_base(self):
        config = next(v for v in ELO_VARIANTS if v.name == "elo_dynamic_k")
        assert k_factor(config, 1500, 1500) == 32
        assert k_factor(config, 1650, 1500) == 24
        assert k_factor(config, 1500, 1200) == 16

    def test_update_is_zero_sum(self):
        config = EloConfig(name="fixed", k=20)
        a, b = update_ratings(config, 1500, 1500, 1.0, 0)
        assert a == pytest.approx(1510)
        assert a + b == pytest.approx(3000)

    def test_tie_between_equals_is_no_change(self):
        config = EloConfig(name="fixed", k=20)
        assert update_ratings(config, 1500, 1500, 0.5, 0) == (1500, 1500)


class TestComputeRatings:
    def test_replays_in_game_order(self):
        games = pd.DataFrame({
            "game_id": [1, 0],
            "team_a": ["B", "A"],
            "team_b": ["C", "B"],
            "site_a": [0, 0],
            "outcome": [1.0, 1.0],
        })
        ratings = compute_ratings(games, EloConfig(name="fixed", k=20))
        assert ratings["B"] > ratings["C"]
        assert ratings["A"] == pytest.approx(1510)
        assert sum(ratings.values()) == pytest.approx(4500)

    def test_variant_names_unique(self):
        names = [v.name for v in ELO_VARIANTS]
        assert len(names) == 3 == len(set(names))
