"""
Inference machinery for league ranking models.

Supports:
- Full MCMC sampling with a fixed draw/tune budget (reproducible given a seed)
- Convergence diagnostics that reject unreliable posteriors
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import arviz as az
import numpy as np
import pymc as pm

from league_ranking.model.core import LeagueModel
from league_ranking.model.errors import SamplingNonConvergenceError
from league_ranking.utils.logging import print_info, print_success, print_warning


@dataclass
class InferenceConfig:
    """Configuration for model inference."""

    # MCMC settings
    mcmc_draws: int = 1000
    mcmc_tune: int = 1000
    mcmc_chains: int = 4
    mcmc_cores: int = 4
    mcmc_target_accept: float = 0.9

    # Convergence checks
    check_convergence: bool = True
    max_r_hat: float = 1.05
    min_ess_bulk: float = 100.0
    max_divergence_fraction: float = 0.01


class ModelFitter:
    """
    Fits a LeagueModel by NUTS sampling.

    Usage:
        fitter = ModelFitter(model, config)
        trace = fitter.fit_mcmc(random_seed=42)
        fitter.diagnostics()
    """

    def __init__(
        self,
        model: LeagueModel,
        config: InferenceConfig | None = None,
    ):
        self.league_model = model
        self.config = config or InferenceConfig()
        self.trace: az.InferenceData | None = None
        self._last_fit_time: datetime | None = None

    def fit_mcmc(
        self,
        random_seed: int | None = None,
        progressbar: bool = False,
        verbose: bool = False,
        **kwargs,
    ) -> az.InferenceData:
        """
        Fit model using MCMC (NUTS sampler).

        All chains are joined inside pm.sample() before the trace is returned,
        and the trace is only handed back once it passes check_convergence().

        Args:
            random_seed: Random seed for reproducibility
            progressbar: Show sampling progress
            verbose: Print start/finish messages
            **kwargs: Additional arguments to pm.sample()

        Returns:
            ArviZ InferenceData with posterior samples

        Raises:
            SamplingNonConvergenceError: Diagnostics flag the draws as unreliable
        """
        if self.league_model.model is None:
            raise ValueError("Model not built. Call model.build() first.")

        if verbose:
            print_info(
                f"Starting MCMC ({self.league_model.kind}): {self.config.mcmc_draws} draws × "
                f"{self.config.mcmc_chains} chains (+ {self.config.mcmc_tune} tuning)"
            )

        with self.league_model.model:
            trace = pm.sample(
                draws=self.config.mcmc_draws,
                tune=self.config.mcmc_tune,
                chains=self.config.mcmc_chains,
                cores=self.config.mcmc_cores,
                target_accept=self.config.mcmc_target_accept,
                random_seed=random_seed,
                progressbar=progressbar,
                **kwargs,
            )

        self.trace = trace
        self.league_model.trace = trace
        self._last_fit_time = datetime.now()

        if self.config.check_convergence:
            self.check_convergence()

        if verbose:
            print_success("MCMC sampling complete")

        return trace

    def diagnostics(self) -> dict:
        """
        Compute convergence diagnostics for the fitted model.

        Returns:
            Dictionary with diagnostic summaries
        """
        if self.trace is None:
            raise ValueError("No trace available. Run inference first.")

        var_names = ["theta_team", "alpha", "eta_home"]
        if "sigma" in self.trace.posterior:
            var_names.append("sigma")

        summary = az.summary(self.trace, var_names=var_names, kind="diagnostics")

        divergences = 0
        n_samples = 0
        if hasattr(self.trace, "sample_stats") and "diverging" in self.trace.sample_stats:
            diverging = self.trace.sample_stats["diverging"].values
            divergences = int(np.sum(diverging))
            n_samples = int(diverging.size)

        return {
            "r_hat_max": float(summary["r_hat"].max()),
            "ess_bulk_min": float(summary["ess_bulk"].min()),
            "ess_tail_min": float(summary["ess_tail"].min()),
            "divergences": divergences,
            "divergence_fraction": divergences / n_samples if n_samples else 0.0,
            "fit_time": self._last_fit_time,
        }

    def check_convergence(self) -> dict:
        """
        Raise if the posterior draws should not be used downstream.

        Raises:
            SamplingNonConvergenceError: R-hat, ESS or divergences out of bounds
        """
        diagnostics = self.diagnostics()
        problems = []

        # R-hat is undefined for a single chain
        if self.config.mcmc_chains > 1 and not diagnostics["r_hat_max"] <= self.config.max_r_hat:
            problems.append(f"R-hat {diagnostics['r_hat_max']:.3f} > {self.config.max_r_hat}")
        if not diagnostics["ess_bulk_min"] >= self.config.min_ess_bulk:
            problems.append(f"bulk ESS {diagnostics['ess_bulk_min']:.0f} < {self.config.min_ess_bulk:.0f}")
        if diagnostics["divergence_fraction"] > self.config.max_divergence_fraction:
            problems.append(f"{diagnostics['divergences']} divergent transitions")

        if problems:
            raise SamplingNonConvergenceError(
                f"{self.league_model.kind} model did not converge: " + "; ".join(problems),
                diagnostics=diagnostics,
            )

        if diagnostics["divergences"]:
            print_warning(f"{diagnostics['divergences']} divergent transitions (within tolerance)")

        return diagnostics
