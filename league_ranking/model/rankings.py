"""
Posterior ranking against a generic opponent.

A fitted LeagueModel only identifies strength differences, so teams are ranked
by simulating each of them against the same synthetic opponent: a team with
strength ~ Normal(0, s̄), where s̄ is the average posterior standard deviation
of the real teams' strengths. Each simulation pairs one posterior draw with one
opponent draw and pushes them through the model's own likelihood:

- margin model: outcome ~ Normal(α + θ_team - θ_opp, σ)
- win model:    outcome ~ Bernoulli(logit⁻¹(α + θ_team - θ_opp))

Opponent draws and likelihood noise are shared across teams (common random
numbers), so teams with identical posteriors get identical results.

"Close game luck" = margin rank - win rank: positive teams win more often than
their point margins suggest.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy.special import expit

from league_ranking.model.adapters import PosteriorFit
from league_ranking.model.core import ModelKind
from league_ranking.utils.constants import DEFAULT_N_SIMULATIONS


@dataclass
class RankingConfig:
    """Configuration for posterior simulation."""

    n_simulations: int = DEFAULT_N_SIMULATIONS  # per team, same for both models
    seed: int | None = None


def generic_opponent_sd(theta: np.ndarray) -> float:
    """Average across teams of the posterior SD of strength; theta is (n_draws, n_teams)."""
    ddof = 1 if theta.shape[0] > 1 else 0
    return float(theta.std(axis=0, ddof=ddof).mean())


def draw_index(n_draws: int, n_simulations: int) -> np.ndarray:
    """Cycle through posterior draws until n_simulations are covered."""
    return np.resize(np.arange(n_draws), n_simulations)


def simulate_outcomes(
    kind: ModelKind,
    alpha: np.ndarray,
    team_strength: np.ndarray,
    opponent_strength: np.ndarray,
    sigma: np.ndarray | None = None,
    home: np.ndarray | float = 0.0,
    noise: np.ndarray | None = None,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """
    Simulate one game per element with the model's own functional form.

    Args:
        kind: 'margin' or 'win'
        alpha: Baseline term per simulation
        team_strength: Team strength per simulation
        opponent_strength: Opponent strength per simulation
        sigma: Residual SD per simulation (margin model only)
        home: Home effect × site per simulation
        noise: Standard normal (margin) or uniform (win) variates; drawn from rng if None
        rng: Generator used when noise is None

    Returns:
        Simulated margins, or 0/1 wins
    """
    mu = alpha + team_strength - opponent_strength + home
    if noise is None:
        rng = rng or np.random.default_rng()
        noise = rng.standard_normal(mu.shape) if kind == "margin" else rng.random(mu.shape)

    if kind == "margin":
        if sigma is None:
            raise ValueError("Margin simulations need posterior sigma draws")
        return mu + sigma * noise
    return (noise < expit(mu)).astype(float)


def summarize_outcomes(outcomes: dict, prefix: str) -> pd.DataFrame:
    """
    Mean, standard error and rank for each team's simulated outcomes.

    Ranks are 1 = best, sorted by mean descending; equal means keep the input
    order.
    """
    teams = list(outcomes)
    samples = [np.asarray(outcomes[t], dtype=float) for t in teams]

    means = np.array([s.mean() for s in samples])
    ses = np.array([
        np.sqrt(s.var(ddof=1) / len(s)) if len(s) > 1 else np.nan for s in samples
    ])

    order = np.argsort(-means, kind="stable")
    ranks = np.empty(len(teams), dtype=int)
    ranks[order] = np.arange(1, len(teams) + 1)

    return pd.DataFrame({
        "team": teams,
        prefix: means,
        f"{prefix}_se": ses,
        f"{prefix}_rank": ranks,
    })


class PosteriorRanker:
    """
    Rank teams of one fitted model against a generic opponent.

    Usage:
        ranker = PosteriorRanker(margin_fit, RankingConfig(seed=1))
        table = ranker.rank()
    """

    def __init__(self, fit: PosteriorFit, config: RankingConfig | None = None):
        self.fit = fit
        self.config = config or RankingConfig()
        self.opponent_sd = generic_opponent_sd(fit.theta)

    def simulate(self) -> dict:
        """Simulated outcomes per team, in team-index order."""
        n = self.config.n_simulations
        rng = np.random.default_rng(self.config.seed)
        idx = draw_index(self.fit.n_draws, n)

        opponent = rng.normal(0.0, self.opponent_sd, size=n)
        if self.fit.kind == "margin":
            noise = rng.standard_normal(n)
        else:
            noise = rng.random(n)

        alpha = self.fit.alpha[idx]
        sigma = self.fit.sigma[idx] if self.fit.sigma is not None else None

        return {
            team: simulate_outcomes(
                self.fit.kind,
                alpha,
                self.fit.theta[idx, j],
                opponent,
                sigma=sigma,
                noise=noise,
            )
            for j, team in enumerate(self.fit.team_index)
        }

    def rank(self) -> pd.DataFrame:
        prefix = "margin" if self.fit.kind == "margin" else "win_prob"
        return summarize_outcomes(self.simulate(), prefix)


def rank_teams(
    margin_fit: PosteriorFit,
    win_fit: PosteriorFit,
    records: pd.DataFrame | None = None,
    team_names: dict | None = None,
    config: RankingConfig | None = None,
) -> pd.DataFrame:
    """
    Joint ranking table from the margin and win models.

    Args:
        margin_fit: Full-history fit of the margin model
        win_fit: Full-history fit of the win model
        records: Optional standings() table with wins/losses/ties
        team_names: Optional team id -> display name
        config: Simulation settings (shared by both models)

    Returns:
        DataFrame sorted by the mean of the two ranks, with win_prob, margin,
        their standard errors and ranks, luck (margin_rank - win_rank) and
        luck_rank
    """
    config = config or RankingConfig()

    margin_table = PosteriorRanker(margin_fit, config).rank()
    win_table = PosteriorRanker(win_fit, config).rank()

    table = win_table.merge(margin_table, on="team", how="inner", validate="one_to_one")

    if records is not None:
        table = table.merge(
            records[["team", "wins", "losses", "ties"]], on="team", how="left"
        )
    if team_names is not None:
        table.insert(1, "name", table["team"].map(team_names))

    table["luck"] = table["margin_rank"] - table["win_prob_rank"]
    order = np.argsort(-table["luck"].to_numpy(), kind="stable")
    luck_rank = np.empty(len(table), dtype=int)
    luck_rank[order] = np.arange(1, len(table) + 1)
    table["luck_rank"] = luck_rank

    # Display order only; the mean of two ranks is not itself a ranking
    avg_rank = (table["win_prob_rank"] + table["margin_rank"]) / 2
    table = table.iloc[np.argsort(avg_rank.to_numpy(), kind="stable")].reset_index(drop=True)
    table["avg_rank"] = ((table["win_prob_rank"] + table["margin_rank"]) / 2).round(1)

    return table
