"""Shared fixtures for league_ranking tests."""

from datetime import date

import numpy as np
import pytest

from league_ranking.model.adapters import PosteriorFit
from league_ranking.model.data import Game, LeagueDataset, Team, TeamIndex


@pytest.fixture
def teams():
    return [
        Team("A", "Aardvarks"),
        Team("B", "Badgers"),
        Team("C", "Coyotes"),
        Team("D", "Dingoes"),
    ]


@pytest.fixture
def season_games():
    """
    4-team round robin over three weeks.

    Week 1: A 21-20 B (A home), C 14-13 D (C home)
    Week 2: A 10-9 C (A home),  B 30-10 D (B home)
    Week 3: B 27-7 C (B home),  D 40-10 A (neutral; 0-2 D upsets 2-0 A)
    """
    return [
        Game(date(2023, 9, 3), 1, "A", 1, 21, "B", -1, 20),
        Game(date(2023, 9, 3), 1, "C", 1, 14, "D", -1, 13),
        Game(date(2023, 9, 10), 2, "A", 1, 10, "C", -1, 9),
        Game(date(2023, 9, 10), 2, "B", 1, 30, "D", -1, 10),
        Game(date(2023, 9, 17), 3, "B", 1, 27, "C", -1, 7),
        Game(date(2023, 9, 17), 3, "D", 0, 40, "A", 0, 10),
    ]


@pytest.fixture
def dataset(teams, season_games):
    return LeagueDataset(teams, season_games)


@pytest.fixture
def rows(dataset):
    return dataset.symmetrized()


@pytest.fixture
def make_fit():
    """Factory for PosteriorFit objects built from raw strength draws."""

    def _make_fit(kind, theta, teams=None, alpha=None, eta_home=None, sigma=None):
        theta = np.asarray(theta, dtype=float)
        n_draws, n_teams = theta.shape
        teams = teams or [f"T{i}" for i in range(n_teams)]
        if kind == "margin" and sigma is None:
            sigma = np.full(n_draws, 10.0)
        return PosteriorFit(
            family=f"bayes_{kind}",
            window=None,
            n_rows=0,
            kind=kind,
            team_index=TeamIndex(tuple(teams)),
            alpha=np.zeros(n_draws) if alpha is None else np.asarray(alpha, dtype=float),
            theta=theta,
            eta_home=np.zeros(n_draws) if eta_home is None else np.asarray(eta_home, dtype=float),
            sigma=sigma,
        )

    return _make_fit
