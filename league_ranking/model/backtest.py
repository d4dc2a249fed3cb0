"""
Walk-forward backtest of the candidate models.

For each week cutoff w_i every adapter is trained on all rows with
week <= w_i and asked to predict the rows of the next week w_{i+1}. Each
window gets its own read-only snapshot of the data, so windows are
independent and can run in parallel. A model that fails on a window is
recorded and skipped for that window only.
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import asdict, dataclass, field
from typing import Sequence

import numpy as np
import pandas as pd

from league_ranking.model.adapters import ModelAdapter, decide
from league_ranking.model.errors import DataIntegrityError
from league_ranking.model.scoring import score_predictions
from league_ranking.utils.logging import print_info, print_section, print_success, print_warning

logger = logging.getLogger(__name__)


PREDICTION_COLUMNS = [
    "window",
    "cutoff_week",
    "week",
    "game_id",
    "team",
    "opponent",
    "site",
    "outcome",
    "model",
    "win_probability",
    "decision",
    "margin",
]

FAILURE_COLUMNS = ["window", "cutoff_week", "model", "error_type", "message"]


@dataclass(frozen=True)
class CutoffWindow:
    """Train on week <= cutoff_week, predict week == predict_week."""

    index: int
    cutoff_week: int
    predict_week: int


@dataclass
class BacktestConfig:
    """Configuration for a backtest run."""

    seed: int = 0
    first_cutoff: int | None = None  # skip earlier cutoffs (warm-up)
    last_cutoff: int | None = None
    n_jobs: int = 1  # >1 runs windows in a process pool
    verbose: bool = False


@dataclass(frozen=True)
class PredictionRecord:
    window: int
    cutoff_week: int
    week: int
    game_id: int
    team: str
    opponent: str
    site: int
    outcome: float
    model: str
    win_probability: float
    decision: float
    margin: float


@dataclass(frozen=True)
class ModelFailure:
    window: int
    cutoff_week: int
    model: str
    error_type: str
    message: str


@dataclass
class BacktestResult:
    """Prediction log plus per-window model failures."""

    windows: list[CutoffWindow]
    predictions: pd.DataFrame
    failures: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=FAILURE_COLUMNS))

    def accuracy(self) -> pd.DataFrame:
        return score_predictions(self.predictions)


def cutoff_windows(
    rows: pd.DataFrame,
    first_cutoff: int | None = None,
    last_cutoff: int | None = None,
) -> list[CutoffWindow]:
    """Consecutive (cutoff, next week) pairs over the weeks present in rows."""
    weeks = sorted(int(w) for w in pd.unique(rows["week"]))
    windows = []
    for cutoff, predict_week in zip(weeks[:-1], weeks[1:]):
        if first_cutoff is not None and cutoff < first_cutoff:
            continue
        if last_cutoff is not None and cutoff > last_cutoff:
            continue
        windows.append(CutoffWindow(len(windows), cutoff, predict_week))
    return windows


def partition(rows: pd.DataFrame, window: CutoffWindow) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Training and prediction rows for one window."""
    train = rows[rows["week"] <= window.cutoff_week].copy()
    test = rows[rows["week"] == window.predict_week].copy()
    return train, test


def _model_seed(seed: int, window: CutoffWindow, model_position: int) -> int:
    return int(np.random.SeedSequence([seed, window.index, model_position]).generate_state(1)[0])


def run_window(
    adapters: Sequence[ModelAdapter],
    train: pd.DataFrame,
    test: pd.DataFrame,
    window: CutoffWindow,
    seed: int = 0,
) -> tuple[list[PredictionRecord], list[ModelFailure]]:
    """
    Fit every adapter on one window and predict its test rows.

    Top-level function so it can be shipped to a ProcessPoolExecutor.
    """
    records: list[PredictionRecord] = []
    failures: list[ModelFailure] = []

    for position, adapter in enumerate(adapters):
        model_seed = _model_seed(seed, window, position)
        try:
            fitted = adapter.fit(train, window=window, random_seed=model_seed)
            predictions = adapter.predict_rows(fitted, test)
        except DataIntegrityError:
            raise
        except Exception as e:
            logger.warning(
                f"{adapter.name} failed on window {window.index} "
                f"(cutoff week {window.cutoff_week}): {type(e).__name__}: {e}"
            )
            failures.append(ModelFailure(
                window=window.index,
                cutoff_week=window.cutoff_week,
                model=adapter.name,
                error_type=type(e).__name__,
                message=str(e),
            ))
            predictions = pd.DataFrame(
                {"win_probability": np.nan, "margin": np.nan},
                index=test.index,
            )

        rng = np.random.default_rng(model_seed)
        for row, pred in zip(test.itertuples(index=False), predictions.itertuples(index=False)):
            p = float(pred.win_probability)
            records.append(PredictionRecord(
                window=window.index,
                cutoff_week=window.cutoff_week,
                week=int(row.week),
                game_id=int(row.game_id),
                team=row.team,
                opponent=row.opponent,
                site=int(row.site),
                outcome=float(row.outcome),
                model=adapter.name,
                win_probability=p,
                decision=np.nan if np.isnan(p) else float(decide(p, rng)),
                margin=float(pred.margin),
            ))

    return records, failures


class Backtester:
    """
    Rolling-window evaluation of several candidate models.

    Usage:
        backtester = Backtester(default_adapters(), BacktestConfig(seed=7))
        result = backtester.run(dataset.symmetrized())
        result.accuracy()
    """

    def __init__(self, adapters: Sequence[ModelAdapter], config: BacktestConfig | None = None):
        names = [adapter.name for adapter in adapters]
        if len(set(names)) != len(names):
            raise ValueError(f"Adapter names must be unique: {names}")
        self.adapters = list(adapters)
        self.config = config or BacktestConfig()

    def windows(self, rows: pd.DataFrame) -> list[CutoffWindow]:
        return cutoff_windows(rows, self.config.first_cutoff, self.config.last_cutoff)

    def run(self, rows: pd.DataFrame) -> BacktestResult:
        """
        Run every window and collect the prediction log.

        Args:
            rows: Symmetrized matchup rows for the whole history

        Returns:
            BacktestResult with predictions in window order

        Raises:
            DataIntegrityError: Propagated from any window
        """
        windows = self.windows(rows)
        verbose = self.config.verbose

        if verbose:
            print_section("BACKTEST")
            print_info(f"{len(windows)} windows × {len(self.adapters)} models")

        if self.config.n_jobs > 1 and len(windows) > 1:
            n_workers = min(self.config.n_jobs, len(windows))
            if verbose:
                print_info(f"Running windows in parallel ({n_workers} workers)")

            with ProcessPoolExecutor(max_workers=n_workers) as executor:
                futures = [
                    executor.submit(run_window, self.adapters, *partition(rows, window), window, self.config.seed)
                    for window in windows
                ]
                results = [future.result() for future in futures]
        else:
            results = []
            for window in windows:
                if verbose:
                    print_info(f"Window {window.index}: train ≤ week {window.cutoff_week}, predict week {window.predict_week}")
                results.append(run_window(self.adapters, *partition(rows, window), window, self.config.seed))

        records = [record for window_records, _ in results for record in window_records]
        failures = [failure for _, window_failures in results for failure in window_failures]

        predictions = pd.DataFrame([asdict(r) for r in records], columns=PREDICTION_COLUMNS)
        failure_df = pd.DataFrame([asdict(f) for f in failures], columns=FAILURE_COLUMNS)

        if verbose:
            if failures:
                print_warning(f"{len(failures)} model fits failed (see result.failures)")
            print_success(f"Backtest complete: {len(predictions):,} predictions")

        return BacktestResult(windows=windows, predictions=predictions, failures=failure_df)
