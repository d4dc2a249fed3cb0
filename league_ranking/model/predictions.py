"""
Simulated outcomes for named future matchups.

Uses the same simulation primitive as the rankings, with two real teams in
place of the generic opponent and the home effect applied for the site.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np
import pandas as pd

from league_ranking.model.adapters import PosteriorFit
from league_ranking.model.rankings import draw_index, simulate_outcomes
from league_ranking.utils.constants import DEFAULT_N_SIMULATIONS, SITE_HOME


@dataclass
class MatchupSimulation:
    """Simulated result distribution for one fixture."""

    home: str
    visitor: str
    site: int
    win_probability: float  # home team, win model
    win_probability_se: float
    spread_mean: float  # home - visitor, margin model
    spread_sd: float
    spread_ci_lower: float  # 5th percentile
    spread_ci_upper: float  # 95th percentile
    spread_win_probability: float  # P(spread > 0) under the margin model
    spread_samples: np.ndarray | None = None

    def summary(self) -> str:
        """Human-readable prediction summary."""
        return (
            f"{self.home} vs {self.visitor}\n"
            f"  Home win: {self.win_probability:.1%} (± {self.win_probability_se:.1%})\n"
            f"  Spread: {self.spread_mean:+.1f} "
            f"(90% CI {self.spread_ci_lower:+.1f} to {self.spread_ci_upper:+.1f})"
        )


class MatchupSimulator:
    """
    Simulate fixtures between two known teams.

    Usage:
        simulator = MatchupSimulator(margin_fit, win_fit, seed=3)
        sim = simulator.simulate("KC", "BUF", site=1)
        print(sim.summary())
    """

    def __init__(
        self,
        margin_fit: PosteriorFit,
        win_fit: PosteriorFit,
        n_simulations: int = DEFAULT_N_SIMULATIONS,
        seed: int | None = None,
    ):
        self.margin_fit = margin_fit
        self.win_fit = win_fit
        self.n_simulations = n_simulations
        self.rng = np.random.default_rng(seed)

    def _simulate_fit(self, fit: PosteriorFit, home: str, visitor: str, site: int) -> np.ndarray:
        for team in (home, visitor):
            if team not in fit.team_index:
                raise ValueError(f"Unknown team: {team} (not in {fit.family} fit)")

        idx = draw_index(fit.n_draws, self.n_simulations)
        return simulate_outcomes(
            fit.kind,
            fit.alpha[idx],
            fit.strength(home)[idx],
            fit.strength(visitor)[idx],
            sigma=fit.sigma[idx] if fit.sigma is not None else None,
            home=fit.eta_home[idx] * site,
            rng=self.rng,
        )

    def simulate(
        self,
        home: str,
        visitor: str,
        site: int = SITE_HOME,
        keep_samples: bool = True,
    ) -> MatchupSimulation:
        wins = self._simulate_fit(self.win_fit, home, visitor, site)
        spread = self._simulate_fit(self.margin_fit, home, visitor, site)

        return MatchupSimulation(
            home=home,
            visitor=visitor,
            site=site,
            win_probability=float(wins.mean()),
            win_probability_se=float(np.sqrt(wins.var(ddof=1) / len(wins))),
            spread_mean=float(spread.mean()),
            spread_sd=float(spread.std()),
            spread_ci_lower=float(np.percentile(spread, 5)),
            spread_ci_upper=float(np.percentile(spread, 95)),
            spread_win_probability=float((spread > 0).mean()),
            spread_samples=spread if keep_samples else None,
        )

    def simulate_many(self, fixtures: Iterable[tuple[str, str, int]]) -> pd.DataFrame:
        """Tabular simulations for (home, visitor, site) fixtures."""
        rows = []
        for home, visitor, site in fixtures:
            sim = self.simulate(home, visitor, site, keep_samples=False)
            rows.append({
                "home": sim.home,
                "visitor": sim.visitor,
                "site": sim.site,
                "win_probability": sim.win_probability,
                "win_probability_se": sim.win_probability_se,
                "spread_mean": sim.spread_mean,
                "spread_sd": sim.spread_sd,
                "spread_ci_lower": sim.spread_ci_lower,
                "spread_ci_upper": sim.spread_ci_upper,
                "spread_win_probability": sim.spread_win_probability,
            })
        return pd.DataFrame(rows)
