"""
Uniform fit/predict interface over the candidate model families.

Every adapter turns symmetrized training rows into a FittedModel and answers
win-probability (and, where the family models points, margin) queries for a
Matchup. Adapters hold configuration only; everything learned lives on the
FittedModel, which belongs to a single training window.

Families:
- bayes_margin / bayes_win: hierarchical PyMC models (core.py)
- elo_fixed_k / elo_home_shift / elo_dynamic_k: rating systems (ratings.py)
- logistic: elastic-net logistic regression, penalty chosen by CV
- bagged_trees: bagged decision trees
- heuristic: better record wins, then home team, then a coin flip
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import arviz as az
import numpy as np
import pandas as pd
from scipy import stats
from scipy.special import expit
from sklearn.ensemble import BaggingClassifier
from sklearn.linear_model import LogisticRegressionCV
from sklearn.model_selection import StratifiedKFold
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.tree import DecisionTreeClassifier

from league_ranking.model.core import LeagueModel, ModelConfig, ModelKind
from league_ranking.model.data import TeamIndex, desymmetrize
from league_ranking.model.errors import InsufficientDataError
from league_ranking.model.inference import InferenceConfig, ModelFitter
from league_ranking.model.ratings import ELO_VARIANTS, EloConfig, compute_ratings, expected_score
from league_ranking.utils.constants import RECORD_FEATURES

if TYPE_CHECKING:
    from league_ranking.model.backtest import CutoffWindow


def decide(probability: float, rng: np.random.Generator) -> int:
    """Turn a win probability into a 0/1 pick; exactly 0.5 is a fair coin flip."""
    if probability > 0.5:
        return 1
    if probability < 0.5:
        return 0
    return int(rng.integers(0, 2))


@dataclass(frozen=True)
class Matchup:
    """One side of a game as known before kickoff."""

    team: str
    opponent: str
    site: int = 0
    wins: int = 0
    losses: int = 0
    opp_wins: int = 0
    opp_losses: int = 0
    games_ahead: float = 0.0

    @classmethod
    def from_row(cls, row) -> Matchup:
        """Build from a symmetrized row (Series or itertuples record)."""
        return cls(
            team=row.team,
            opponent=row.opponent,
            site=int(row.site),
            wins=int(row.wins),
            losses=int(row.losses),
            opp_wins=int(row.opp_wins),
            opp_losses=int(row.opp_losses),
            games_ahead=float(row.games_ahead),
        )

    def features(self) -> list[float]:
        return [float(getattr(self, name)) for name in RECORD_FEATURES]


# ============================================================================
# Fitted models
# ============================================================================


@dataclass
class FittedModel:
    """Base for everything an adapter learns on one training window."""

    family: str
    window: CutoffWindow | None
    n_rows: int


@dataclass
class PosteriorFit(FittedModel):
    """Flattened posterior draws of a LeagueModel."""

    kind: ModelKind
    team_index: TeamIndex
    alpha: np.ndarray  # (n_draws,)
    theta: np.ndarray  # (n_draws, n_teams)
    eta_home: np.ndarray  # (n_draws,)
    sigma: np.ndarray | None = None  # (n_draws,), margin model only
    trace: az.InferenceData | None = None

    @classmethod
    def from_trace(
        cls,
        trace: az.InferenceData,
        team_index: TeamIndex,
        kind: ModelKind,
        family: str | None = None,
        window: CutoffWindow | None = None,
        n_rows: int = 0,
        keep_trace: bool = False,
    ) -> PosteriorFit:
        posterior = trace.posterior
        n_teams = len(team_index)
        sigma = None
        if "sigma" in posterior:
            sigma = posterior["sigma"].values.reshape(-1)

        return cls(
            family=family or f"bayes_{kind}",
            window=window,
            n_rows=n_rows,
            kind=kind,
            team_index=team_index,
            alpha=posterior["alpha"].values.reshape(-1),
            theta=posterior["theta_team"].values.reshape(-1, n_teams),
            eta_home=posterior["eta_home"].values.reshape(-1),
            sigma=sigma,
            trace=trace if keep_trace else None,
        )

    @property
    def n_draws(self) -> int:
        return len(self.alpha)

    def strength(self, team) -> np.ndarray:
        """Posterior draws of a team's strength; teams never seen sit at the prior mean 0."""
        idx = self.team_index.get(team)
        if idx is None:
            return np.zeros(self.n_draws)
        return self.theta[:, idx]

    def linear_predictor(self, team, opponent, site: int = 0) -> np.ndarray:
        return self.alpha + self.strength(team) - self.strength(opponent) + self.eta_home * site


@dataclass
class RatingFit(FittedModel):
    config: EloConfig
    ratings: dict

    def rating(self, team) -> float:
        return self.ratings.get(team, self.config.base_rating)


@dataclass
class ClassifierFit(FittedModel):
    estimator: Pipeline | BaggingClassifier


@dataclass
class HeuristicFit(FittedModel):
    rng: np.random.Generator
    # Neutral-site coin flips, one per pairing, so both sides of a game agree
    picks: dict = field(default_factory=dict)

    def pick(self, team, opponent):
        """Winner of the coin flip between two teams."""
        pair = frozenset((team, opponent))
        if pair not in self.picks:
            first, second = sorted(pair, key=str)
            self.picks[pair] = first if decide(0.5, self.rng) else second
        return self.picks[pair]


# ============================================================================
# Adapters
# ============================================================================


class ModelAdapter(ABC):
    """Contract shared by every candidate model family."""

    name: str = "model"
    provides_margin: bool = False

    def fit(
        self,
        rows: pd.DataFrame,
        window: CutoffWindow | None = None,
        random_seed: int | None = None,
    ) -> FittedModel:
        """
        Fit on symmetrized training rows.

        Raises:
            InsufficientDataError: No games or fewer than two teams
        """
        if len(rows) == 0:
            raise InsufficientDataError(f"{self.name}: no games in training window")
        n_teams = len(set(rows["team"]) | set(rows["opponent"]))
        if n_teams < 2:
            raise InsufficientDataError(f"{self.name}: need at least 2 teams, got {n_teams}")
        return self._fit(rows, window, random_seed)

    @abstractmethod
    def _fit(
        self,
        rows: pd.DataFrame,
        window: CutoffWindow | None,
        random_seed: int | None,
    ) -> FittedModel:
        ...

    @abstractmethod
    def predict_win_probability(self, fitted: FittedModel, matchup: Matchup) -> float:
        ...

    def predict_margin(self, fitted: FittedModel, matchup: Matchup) -> float | None:
        """Expected point margin, or None for families that do not model points."""
        return None

    def predict_rows(self, fitted: FittedModel, rows: pd.DataFrame) -> pd.DataFrame:
        """Win probability and margin for every row, aligned with rows.index."""
        win_probability = []
        margin = []
        for row in rows.itertuples(index=False):
            matchup = Matchup.from_row(row)
            win_probability.append(self.predict_win_probability(fitted, matchup))
            m = self.predict_margin(fitted, matchup)
            margin.append(np.nan if m is None else m)
        return pd.DataFrame(
            {"win_probability": win_probability, "margin": margin},
            index=rows.index,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class BayesianAdapter(ModelAdapter):
    """Shared fitting for the two hierarchical models."""

    kind: ModelKind = "margin"

    def __init__(
        self,
        model_config: ModelConfig | None = None,
        inference_config: InferenceConfig | None = None,
        keep_trace: bool = False,
        verbose: bool = False,
    ):
        self.model_config = model_config or ModelConfig()
        self.inference_config = inference_config or InferenceConfig()
        self.keep_trace = keep_trace
        self.verbose = verbose

    def _fit(self, rows, window, random_seed) -> PosteriorFit:
        model = LeagueModel(self.model_config)
        model.build(rows, kind=self.kind)
        fitter = ModelFitter(model, self.inference_config)
        trace = fitter.fit_mcmc(random_seed=random_seed, verbose=self.verbose)
        return PosteriorFit.from_trace(
            trace,
            model.team_index,
            self.kind,
            family=self.name,
            window=window,
            n_rows=len(rows),
            keep_trace=self.keep_trace,
        )


class BayesianMarginAdapter(BayesianAdapter):
    name = "bayes_margin"
    kind = "margin"
    provides_margin = True

    def predict_win_probability(self, fitted: PosteriorFit, matchup: Matchup) -> float:
        mu = fitted.linear_predictor(matchup.team, matchup.opponent, matchup.site)
        return float(np.mean(stats.norm.cdf(mu / fitted.sigma)))

    def predict_margin(self, fitted: PosteriorFit, matchup: Matchup) -> float:
        mu = fitted.linear_predictor(matchup.team, matchup.opponent, matchup.site)
        return float(np.mean(mu))


class BayesianWinAdapter(BayesianAdapter):
    name = "bayes_win"
    kind = "win"

    def predict_win_probability(self, fitted: PosteriorFit, matchup: Matchup) -> float:
        mu = fitted.linear_predictor(matchup.team, matchup.opponent, matchup.site)
        return float(np.mean(expit(mu)))


class EloAdapter(ModelAdapter):
    """Rating system replayed over the training window's games."""

    def __init__(self, config: EloConfig):
        self.config = config
        self.name = config.name

    def _fit(self, rows, window, random_seed) -> RatingFit:
        games = desymmetrize(rows)
        return RatingFit(
            family=self.name,
            window=window,
            n_rows=len(rows),
            config=self.config,
            ratings=compute_ratings(games, self.config),
        )

    def predict_win_probability(self, fitted: RatingFit, matchup: Matchup) -> float:
        return expected_score(
            fitted.rating(matchup.team),
            fitted.rating(matchup.opponent),
            matchup.site,
            self.config.home_shift,
            self.config.scale,
        )


def _feature_matrix(rows: pd.DataFrame) -> np.ndarray:
    return rows[list(RECORD_FEATURES)].to_numpy(dtype=float)


def _check_classes(y: np.ndarray, name: str) -> int:
    """Smallest class count; both outcomes must be present."""
    counts = np.bincount(y, minlength=2)
    if (counts == 0).any():
        raise InsufficientDataError(f"{name}: training window has a single outcome class")
    return int(counts.min())


class ClassifierAdapter(ModelAdapter):
    """sklearn classifiers over the pre-game record features."""

    @abstractmethod
    def _make_estimator(self, n_min_class: int, random_seed: int | None):
        ...

    def _fit(self, rows, window, random_seed) -> ClassifierFit:
        X = _feature_matrix(rows)
        y = rows["outcome"].to_numpy(dtype=int)
        n_min_class = _check_classes(y, self.name)

        estimator = self._make_estimator(n_min_class, random_seed)
        estimator.fit(X, y)
        return ClassifierFit(family=self.name, window=window, n_rows=len(rows), estimator=estimator)

    def predict_win_probability(self, fitted: ClassifierFit, matchup: Matchup) -> float:
        proba = fitted.estimator.predict_proba(np.array([matchup.features()]))
        return float(proba[0, 1])

    def predict_rows(self, fitted: ClassifierFit, rows: pd.DataFrame) -> pd.DataFrame:
        if len(rows) == 0:
            return pd.DataFrame({"win_probability": [], "margin": []}, index=rows.index)
        proba = fitted.estimator.predict_proba(_feature_matrix(rows))
        return pd.DataFrame(
            {"win_probability": proba[:, 1], "margin": np.nan},
            index=rows.index,
        )


class LogisticAdapter(ClassifierAdapter):
    """Elastic-net logistic regression; C and the L1/L2 mix are picked by CV."""

    name = "logistic"

    def __init__(
        self,
        max_folds: int = 5,
        n_cs: int = 10,
        l1_ratios: tuple[float, ...] = (0.0, 0.5, 1.0),
    ):
        self.max_folds = max_folds
        self.n_cs = n_cs
        self.l1_ratios = l1_ratios

    def _make_estimator(self, n_min_class, random_seed):
        if n_min_class < 2:
            raise InsufficientDataError(f"{self.name}: too few games for cross-validation")

        cv = StratifiedKFold(
            n_splits=min(self.max_folds, n_min_class),
            shuffle=True,
            random_state=random_seed,
        )
        return Pipeline(steps=[
            ("scaler", StandardScaler()),
            ("model", LogisticRegressionCV(
                Cs=self.n_cs,
                cv=cv,
                solver="saga",
                l1_ratios=list(self.l1_ratios),
                max_iter=5000,
                random_state=random_seed,
            )),
        ])


class BaggedTreeAdapter(ClassifierAdapter):
    name = "bagged_trees"

    def __init__(self, n_estimators: int = 100, max_depth: int | None = None):
        self.n_estimators = n_estimators
        self.max_depth = max_depth

    def _make_estimator(self, n_min_class, random_seed):
        return BaggingClassifier(
            estimator=DecisionTreeClassifier(max_depth=self.max_depth),
            n_estimators=self.n_estimators,
            random_state=random_seed,
        )


class HeuristicAdapter(ModelAdapter):
    """
    Fixed reference policy: the team with the better pre-game record wins; on
    equal records the home team wins; at a neutral site a fair coin decides.
    """

    name = "heuristic"

    def _fit(self, rows, window, random_seed) -> HeuristicFit:
        return HeuristicFit(
            family=self.name,
            window=window,
            n_rows=len(rows),
            rng=np.random.default_rng(random_seed),
        )

    def predict_win_probability(self, fitted: HeuristicFit, matchup: Matchup) -> float:
        if matchup.games_ahead != 0:
            return 1.0 if matchup.games_ahead > 0 else 0.0
        if matchup.site != 0:
            return 1.0 if matchup.site > 0 else 0.0
        return 1.0 if fitted.pick(matchup.team, matchup.opponent) == matchup.team else 0.0


def default_adapters(
    model_config: ModelConfig | None = None,
    inference_config: InferenceConfig | None = None,
    include_bayesian: bool = True,
) -> list[ModelAdapter]:
    """The full candidate set, in report order."""
    adapters: list[ModelAdapter] = []
    if include_bayesian:
        adapters += [
            BayesianMarginAdapter(model_config, inference_config),
            BayesianWinAdapter(model_config, inference_config),
        ]
    adapters += [EloAdapter(config) for config in ELO_VARIANTS]
    adapters += [LogisticAdapter(), BaggedTreeAdapter(), HeuristicAdapter()]
    return adapters
