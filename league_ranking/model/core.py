"""
Core PyMC model definitions for league team ranking.

Two hierarchical Bayesian models share the same linear predictor:

    μ[row] = α + θ_team[team] - θ_team[opponent] + η_home × site

- Margin model: margin[row] ~ Normal(μ[row], σ)
- Win model:    outcome[row] ~ Bernoulli(logit⁻¹(μ[row]))

θ_team are partially pooled team strengths, α is a baseline ("noise") term
that should sit near zero on mirrored data, and η_home is the home-site effect.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import numpy as np
import pandas as pd
import pymc as pm

from league_ranking.model.data import TeamIndex
from league_ranking.model.errors import InsufficientDataError


ModelKind = Literal["margin", "win"]


@dataclass
class ModelConfig:
    """Prior scales for the league models."""

    # Margin model (points)
    margin_intercept_sd: float = 5.0
    margin_team_effect_sd: float = 10.0
    margin_home_sd: float = 5.0
    margin_sigma_sd: float = 20.0

    # Win model (log-odds)
    win_intercept_sd: float = 1.0
    win_team_effect_sd: float = 1.0
    win_home_sd: float = 0.5


class LeagueModel:
    """
    Hierarchical Bayesian model for team strength.

    Usage:
        model = LeagueModel()
        model.build(rows, kind="margin")
        fitter = ModelFitter(model, InferenceConfig())
        trace = fitter.fit_mcmc(random_seed=1)
    """

    def __init__(self, config: ModelConfig | None = None):
        self.config = config or ModelConfig()
        self.model: pm.Model | None = None
        self.trace = None
        self.kind: ModelKind | None = None
        self.team_index: TeamIndex | None = None

    def build(self, rows: pd.DataFrame, kind: ModelKind = "margin") -> pm.Model:
        """
        Build the PyMC model on symmetrized matchup rows.

        Args:
            rows: Output of symmetrize(), possibly filtered to a window
            kind: 'margin' for the points model, 'win' for the win/loss model

        Returns:
            PyMC model ready for sampling

        Raises:
            InsufficientDataError: Fewer than two teams or no games
        """
        if kind not in ("margin", "win"):
            raise ValueError(f"Unknown model kind: {kind}")

        data = self._prepare_data(rows)

        if kind == "margin":
            model = self._build_margin(data)
        else:
            model = self._build_win(data)

        self.kind = kind
        self.model = model
        return model

    def _prepare_data(self, rows: pd.DataFrame) -> dict[str, np.ndarray]:
        if len(rows) == 0:
            raise InsufficientDataError("No games in training window")

        self.team_index = TeamIndex.from_rows(rows)
        if len(self.team_index) < 2:
            raise InsufficientDataError(
                f"Need at least 2 teams, got {len(self.team_index)}"
            )

        return {
            "team_idx": self.team_index.encode(rows["team"]),
            "opponent_idx": self.team_index.encode(rows["opponent"]),
            "site": rows["site"].to_numpy(dtype=float),
            "margin": rows["margin"].to_numpy(dtype=float),
            "outcome": rows["outcome"].to_numpy(dtype=int),
        }

    def _build_margin(self, data: dict[str, np.ndarray]) -> pm.Model:
        n_teams = len(self.team_index)

        with pm.Model() as model:
            # === Data ===
            team_idx = pm.Data("team_idx", data["team_idx"])
            opponent_idx = pm.Data("opponent_idx", data["opponent_idx"])
            site = pm.Data("site", data["site"])

            # === Priors ===
            sigma_team = pm.HalfNormal("sigma_team", sigma=self.config.margin_team_effect_sd)
            theta_team = pm.Normal("theta_team", mu=0, sigma=sigma_team, shape=n_teams)
            alpha = pm.Normal("alpha", mu=0, sigma=self.config.margin_intercept_sd)
            eta_home = pm.Normal("eta_home", mu=0, sigma=self.config.margin_home_sd)
            sigma = pm.HalfNormal("sigma", sigma=self.config.margin_sigma_sd)

            # === Likelihood ===
            mu = alpha + theta_team[team_idx] - theta_team[opponent_idx] + eta_home * site
            pm.Normal("y", mu=mu, sigma=sigma, observed=data["margin"])

        return model

    def _build_win(self, data: dict[str, np.ndarray]) -> pm.Model:
        n_teams = len(self.team_index)

        with pm.Model() as model:
            team_idx = pm.Data("team_idx", data["team_idx"])
            opponent_idx = pm.Data("opponent_idx", data["opponent_idx"])
            site = pm.Data("site", data["site"])

            sigma_team = pm.HalfNormal("sigma_team", sigma=self.config.win_team_effect_sd)
            theta_team = pm.Normal("theta_team", mu=0, sigma=sigma_team, shape=n_teams)
            alpha = pm.Normal("alpha", mu=0, sigma=self.config.win_intercept_sd)
            eta_home = pm.Normal("eta_home", mu=0, sigma=self.config.win_home_sd)

            logit_p = alpha + theta_team[team_idx] - theta_team[opponent_idx] + eta_home * site
            pm.Bernoulli("y", logit_p=logit_p, observed=data["outcome"])

        return model
