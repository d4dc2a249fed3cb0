"""
Accuracy scoring for backtest predictions.

Per row, a realized outcome y ∈ {0, 0.5, 1} and a win probability p earn:
- 0.5 if the game was tied (y = 0.5)
- 1   if |y - p| < 0.5 (the favored side won)
- 0.5 if |y - p| == 0.5 (a 50% call)
- 0   otherwise

Rows with no prediction (the model failed on that window) are excluded from
both numerator and denominator and counted separately.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from league_ranking.utils.constants import TIE


def correctness(outcome: float, probability: float) -> float:
    """Credit for one prediction."""
    if outcome == TIE:
        return 0.5
    error = abs(outcome - probability)
    if error < 0.5:
        return 1.0
    if error == 0.5:
        return 0.5
    return 0.0


def score_rows(predictions: pd.DataFrame) -> pd.Series:
    """Vectorized correctness; NaN where there is no prediction."""
    y = predictions["outcome"].to_numpy(dtype=float)
    p = predictions["win_probability"].to_numpy(dtype=float)
    error = np.abs(y - p)

    credit = np.select(
        [y == TIE, error < 0.5, error == 0.5],
        [0.5, 1.0, 0.5],
        default=0.0,
    )
    credit = np.where(np.isnan(p), np.nan, credit)
    return pd.Series(credit, index=predictions.index, name="correct")


def score_predictions(predictions: pd.DataFrame) -> pd.DataFrame:
    """
    Aggregate accuracy per model.

    Args:
        predictions: Backtest prediction log

    Returns:
        DataFrame with model, n_scored, n_excluded, n_failed_windows, accuracy;
        models in order of first appearance
    """
    scored = predictions.assign(correct=score_rows(predictions))

    summary = []
    for model, group in scored.groupby("model", sort=False):
        missing = group["correct"].isna()
        n_scored = int((~missing).sum())
        summary.append({
            "model": model,
            "n_scored": n_scored,
            "n_excluded": int(missing.sum()),
            "n_failed_windows": int(group.loc[missing, "window"].nunique()),
            "accuracy": float(group["correct"].sum() / n_scored) if n_scored else np.nan,
        })

    return pd.DataFrame(
        summary,
        columns=["model", "n_scored", "n_excluded", "n_failed_windows", "accuracy"],
    )


def failure_report(failures: pd.DataFrame) -> pd.DataFrame:
    """Which models failed on which windows (one row per model)."""
    if len(failures) == 0:
        return pd.DataFrame(columns=["model", "windows", "cutoff_weeks", "error_types"])

    return (
        failures.groupby("model", sort=False)
        .agg(
            windows=("window", list),
            cutoff_weeks=("cutoff_week", list),
            error_types=("error_type", lambda e: sorted(set(e))),
        )
        .reset_index()
    )
