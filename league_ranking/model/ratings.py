"""
Incremental pairwise rating systems.

Three variants are provided, differing in update size and in how the home site
shifts the expected score:

- elo_fixed_k:   fixed K, home site ignored
- elo_home_shift: fixed K, home team gets `home_shift` rating points
- elo_dynamic_k: K shrinks as a rating moves away from the base, with home shift
"""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from league_ranking.utils.constants import BASE_RATING, RATING_SCALE


@dataclass(frozen=True)
class EloConfig:
    """Configuration for one rating-system variant."""

    name: str
    k: float = 20.0
    home_shift: float = 0.0
    # ((distance from base, K), ...) applied to the larger distance of the pair
    k_tiers: tuple[tuple[float, float], ...] | None = None
    base_rating: float = BASE_RATING
    scale: float = RATING_SCALE


ELO_VARIANTS = (
    EloConfig(name="elo_fixed_k", k=20.0, home_shift=0.0),
    EloConfig(name="elo_home_shift", k=20.0, home_shift=65.0),
    EloConfig(
        name="elo_dynamic_k",
        k=32.0,
        home_shift=50.0,
        k_tiers=((100.0, 32.0), (200.0, 24.0), (float("inf"), 16.0)),
    ),
)


def expected_score(
    rating: float,
    opponent_rating: float,
    site: int = 0,
    home_shift: float = 0.0,
    scale: float = RATING_SCALE,
) -> float:
    """Probability that `rating` beats `opponent_rating`, shifted by site."""
    diff = rating - opponent_rating + home_shift * site
    return 1.0 / (1.0 + 10 ** (-diff / scale))


def k_factor(config: EloConfig, rating: float, opponent_rating: float) -> float:
    """Update size for a game between two ratings."""
    if config.k_tiers is None:
        return config.k

    distance = max(abs(rating - config.base_rating), abs(opponent_rating - config.base_rating))
    for threshold, k in config.k_tiers:
        if distance < threshold:
            return k
    return config.k_tiers[-1][1]


def update_ratings(
    config: EloConfig,
    rating_a: float,
    rating_b: float,
    outcome_a: float,
    site_a: int,
) -> tuple[float, float]:
    """Apply one game's result (1, 0.5 or 0 for team A) to both ratings."""
    expected_a = expected_score(rating_a, rating_b, site_a, config.home_shift, config.scale)
    k = k_factor(config, rating_a, rating_b)
    delta = k * (outcome_a - expected_a)
    return rating_a + delta, rating_b - delta


def compute_ratings(games: pd.DataFrame, config: EloConfig) -> dict:
    """
    Run the rating system through games in game_id order.

    Args:
        games: One row per game with game_id, team_a, team_b, site_a, outcome
        config: Variant to run

    Returns:
        Dict of team id -> final rating
    """
    ratings: dict = {}
    for game in games.sort_values("game_id").itertuples(index=False):
        rating_a = ratings.setdefault(game.team_a, config.base_rating)
        rating_b = ratings.setdefault(game.team_b, config.base_rating)
        ratings[game.team_a], ratings[game.team_b] = update_ratings(
            config, rating_a, rating_b, float(game.outcome), int(game.site_a)
        )
    return ratings
