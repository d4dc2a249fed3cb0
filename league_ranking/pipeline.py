"""
End-to-end league analysis.

1. Build the point-in-time feature store
2. Backtest every candidate model week by week and score accuracy
3. Fit both Bayesian models on the full history
4. Rank teams against a generic opponent and simulate requested fixtures
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import pandas as pd

from league_ranking.model.adapters import (
    BayesianMarginAdapter,
    BayesianWinAdapter,
    ModelAdapter,
    PosteriorFit,
    default_adapters,
)
from league_ranking.model.backtest import Backtester, BacktestConfig, BacktestResult
from league_ranking.model.core import ModelConfig
from league_ranking.model.data import LeagueDataset
from league_ranking.model.inference import InferenceConfig
from league_ranking.model.predictions import MatchupSimulator
from league_ranking.model.rankings import RankingConfig, rank_teams
from league_ranking.model.scoring import failure_report, score_predictions
from league_ranking.utils.logging import (
    print_accuracy,
    print_failures,
    print_rankings,
    print_section,
    print_success,
    setup_logging,
)


@dataclass
class AnalysisReport:
    """Tabular outputs for the reporting layer."""

    rankings: pd.DataFrame
    accuracy: pd.DataFrame
    failures: pd.DataFrame
    backtest: BacktestResult
    margin_fit: PosteriorFit
    win_fit: PosteriorFit
    matchups: pd.DataFrame = field(default_factory=pd.DataFrame)


def fit_full_history(
    rows: pd.DataFrame,
    model_config: ModelConfig | None = None,
    inference_config: InferenceConfig | None = None,
    seed: int | None = None,
    verbose: bool = False,
) -> tuple[PosteriorFit, PosteriorFit]:
    """
    Fit both Bayesian models on every row.

    SamplingNonConvergenceError propagates: rankings must not be built on
    unreliable draws.
    """
    options = dict(keep_trace=True, verbose=verbose)
    margin_fit = BayesianMarginAdapter(model_config, inference_config, **options).fit(
        rows, random_seed=seed
    )
    win_fit = BayesianWinAdapter(model_config, inference_config, **options).fit(
        rows, random_seed=seed
    )
    return margin_fit, win_fit


def run_analysis(
    dataset: LeagueDataset,
    adapters: Sequence[ModelAdapter] | None = None,
    model_config: ModelConfig | None = None,
    inference_config: InferenceConfig | None = None,
    backtest_config: BacktestConfig | None = None,
    ranking_config: RankingConfig | None = None,
    fixtures: Sequence[tuple[str, str, int]] = (),
) -> AnalysisReport:
    """
    Run the backtest, full-history fits, rankings and fixture simulations.

    Args:
        dataset: Feature store with the league's teams and games
        adapters: Candidate models (default: all eight families)
        model_config: Priors for the Bayesian models
        inference_config: MCMC budget and convergence thresholds
        backtest_config: Seed, cutoff range, parallelism
        ranking_config: Simulation count and seed
        fixtures: (home, visitor, site) tuples to simulate

    Returns:
        AnalysisReport

    Raises:
        DataIntegrityError: Inconsistent teams or games
        SamplingNonConvergenceError: Full-history fit did not converge
    """
    backtest_config = backtest_config or BacktestConfig()
    verbose = backtest_config.verbose
    if verbose:
        setup_logging(verbose)
    ranking_config = ranking_config or RankingConfig(seed=backtest_config.seed)
    if adapters is None:
        adapters = default_adapters(model_config, inference_config)

    rows = dataset.symmetrized()

    result = Backtester(adapters, backtest_config).run(rows)
    accuracy = score_predictions(result.predictions)
    failures = failure_report(result.failures)

    if verbose:
        print_accuracy(accuracy)
        print_failures(failures)
        print_section("FULL-HISTORY FIT")

    margin_fit, win_fit = fit_full_history(
        rows, model_config, inference_config, seed=backtest_config.seed, verbose=verbose
    )

    rankings = rank_teams(
        margin_fit,
        win_fit,
        records=dataset.standings(),
        team_names=dataset.team_names,
        config=ranking_config,
    )

    matchups = pd.DataFrame()
    if fixtures:
        simulator = MatchupSimulator(
            margin_fit,
            win_fit,
            n_simulations=ranking_config.n_simulations,
            seed=ranking_config.seed,
        )
        matchups = simulator.simulate_many(fixtures)

    if verbose:
        print_rankings(rankings)
        print_success(f"Ranked {len(rankings)} teams")

    return AnalysisReport(
        rankings=rankings,
        accuracy=accuracy,
        failures=failures,
        backtest=result,
        margin_fit=margin_fit,
        win_fit=win_fit,
        matchups=matchups,
    )
