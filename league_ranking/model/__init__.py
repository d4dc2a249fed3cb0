"""
Modelling components for league ranking.
"""

from league_ranking.model.errors import (
    DataIntegrityError,
    ModelFitError,
    InsufficientDataError,
    SamplingNonConvergenceError,
)
from league_ranking.model.data import (
    Team,
    Game,
    LeagueDataset,
    TeamIndex,
    build_game_log,
    symmetrize,
    desymmetrize,
    standings,
)
from league_ranking.model.core import LeagueModel, ModelConfig
from league_ranking.model.inference import ModelFitter, InferenceConfig
from league_ranking.model.ratings import EloConfig, ELO_VARIANTS, expected_score
from league_ranking.model.adapters import (
    Matchup,
    FittedModel,
    PosteriorFit,
    ModelAdapter,
    BayesianMarginAdapter,
    BayesianWinAdapter,
    EloAdapter,
    LogisticAdapter,
    BaggedTreeAdapter,
    HeuristicAdapter,
    decide,
    default_adapters,
)
from league_ranking.model.backtest import (
    Backtester,
    BacktestConfig,
    BacktestResult,
    CutoffWindow,
    PredictionRecord,
)
from league_ranking.model.scoring import correctness, score_predictions, failure_report
from league_ranking.model.rankings import RankingConfig, PosteriorRanker, rank_teams
from league_ranking.model.predictions import MatchupSimulator, MatchupSimulation

__all__ = [
    "DataIntegrityError",
    "ModelFitError",
    "InsufficientDataError",
    "SamplingNonConvergenceError",
    "Team",
    "Game",
    "LeagueDataset",
    "TeamIndex",
    "build_game_log",
    "symmetrize",
    "desymmetrize",
    "standings",
    "LeagueModel",
    "ModelConfig",
    "ModelFitter",
    "InferenceConfig",
    "EloConfig",
    "ELO_VARIANTS",
    "expected_score",
    "Matchup",
    "FittedModel",
    "PosteriorFit",
    "ModelAdapter",
    "BayesianMarginAdapter",
    "BayesianWinAdapter",
    "EloAdapter",
    "LogisticAdapter",
    "BaggedTreeAdapter",
    "HeuristicAdapter",
    "decide",
    "default_adapters",
    "Backtester",
    "BacktestConfig",
    "BacktestResult",
    "CutoffWindow",
    "PredictionRecord",
    "correctness",
    "score_predictions",
    "failure_report",
    "RankingConfig",
    "PosteriorRanker",
    "rank_teams",
    "MatchupSimulator",
    "MatchupSimulation",
]
