"""Console progress output and logging setup for analysis runs."""

import logging

import pandas as pd

WIDTH = 70

# Sampler internals are chatty at INFO
NOISY_LOGGERS = ("pymc", "pytensor")


def setup_logging(verbose: bool = True) -> None:
    """Configure root logging; sampler loggers stay at WARNING unless verbose."""
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO if verbose else logging.WARNING)


def print_section(title: str) -> None:
    """Print a formatted section header."""
    print("=" * WIDTH)
    print(title)
    print("=" * WIDTH)


def print_subsection(title: str) -> None:
    """Print a formatted subsection header."""
    print("\n" + "-" * WIDTH)
    print(title)
    print("-" * WIDTH)


def print_success(message: str) -> None:
    """Print a success message."""
    print(f"✓ {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    print(f"✗ {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    print(f"⚠️  {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    print(f"ℹ  {message}")


def print_accuracy(accuracy: pd.DataFrame) -> None:
    """One line per model from score_predictions()."""
    print_subsection("Backtest accuracy")
    for row in accuracy.itertuples(index=False):
        excluded = f"  ({row.n_excluded} excluded)" if row.n_excluded else ""
        print(f"  {row.model:<16} {row.accuracy:6.1%}  n={row.n_scored}{excluded}")


def print_failures(failures: pd.DataFrame) -> None:
    """One line per model from failure_report()."""
    if failures.empty:
        return
    print_subsection("Model failures")
    for row in failures.itertuples(index=False):
        weeks = ", ".join(str(w) for w in row.cutoff_weeks)
        print_error(f"{row.model}: cutoff weeks {weeks} ({', '.join(row.error_types)})")


def print_rankings(rankings: pd.DataFrame, top: int | None = None) -> None:
    """Ranked table from rank_teams()."""
    print_subsection("Rankings")
    table = rankings if top is None else rankings.head(top)
    label = "name" if "name" in table.columns else "team"
    for row in table.itertuples(index=False):
        print(
            f"  {row.avg_rank:4.1f}  {getattr(row, label):<24} "
            f"win {row.win_prob:5.3f} (#{row.win_prob_rank})  "
            f"margin {row.margin:+6.1f} (#{row.margin_rank})  "
            f"luck {row.luck:+d}"
        )
