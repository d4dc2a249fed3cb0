"""
Schedule and feature store for league games.

This module turns the acquisition layer's team roster and game list into a
chronologically ordered game log, with each game annotated by both teams'
records as they stood *before* kickoff. It also handles:
- Mirroring every game into two team-relative rows (and splitting ties)
- Reversing the mirroring for reporting
- Contiguous team indexing for models with per-team parameters
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date as _date
from typing import Iterable, Iterator

import numpy as np
import pandas as pd

from league_ranking.model.errors import DataIntegrityError
from league_ranking.utils.constants import VALID_SITES, WIN, LOSS, TIE


GAME_LOG_COLUMNS = [
    "game_id",
    "date",
    "week",
    "team_a",
    "site_a",
    "score_a",
    "team_b",
    "site_b",
    "score_b",
    "margin",
    "outcome",
    "wins_a",
    "losses_a",
    "ties_a",
    "wins_b",
    "losses_b",
    "ties_b",
    "games_ahead",
]


@dataclass(frozen=True)
class Team:
    """A league team as delivered by the acquisition layer."""

    external_id: str
    name: str


@dataclass(frozen=True)
class Game:
    """A completed game, from team A's point of view."""

    date: _date | pd.Timestamp | None
    week: int
    team_a: str
    site_a: int
    score_a: int
    team_b: str
    site_b: int
    score_b: int

    @property
    def margin(self) -> int:
        return self.score_a - self.score_b

    @property
    def outcome(self) -> float:
        """1 for a team A win, 0 for a loss, 0.5 for a tie."""
        if self.margin > 0:
            return WIN
        if self.margin < 0:
            return LOSS
        return TIE


def _check_roster(teams: Iterable[Team]) -> dict[str, Team]:
    roster: dict[str, Team] = {}
    for team in teams:
        if team.external_id in roster:
            raise DataIntegrityError(f"Duplicate team id in roster: {team.external_id!r}")
        roster[team.external_id] = team
    return roster


def _validate_game(game: Game, roster: dict[str, Team], position: int) -> None:
    if game.date is None or pd.isna(game.date):
        raise DataIntegrityError(f"Game #{position} has no play date")
    try:
        int(game.week)
    except (TypeError, ValueError) as e:
        raise DataIntegrityError(f"Game #{position} has no valid week index: {game.week!r}") from e
    for team_id in (game.team_a, game.team_b):
        if team_id not in roster:
            raise DataIntegrityError(
                f"Game #{position} references unknown team {team_id!r}"
            )
    if game.team_a == game.team_b:
        raise DataIntegrityError(f"Game #{position} has {game.team_a!r} playing itself")
    if game.site_a not in VALID_SITES or game.site_b not in VALID_SITES:
        raise DataIntegrityError(
            f"Game #{position} has invalid site indicators ({game.site_a}, {game.site_b})"
        )
    if game.site_b != -game.site_a:
        raise DataIntegrityError(
            f"Game #{position} site indicators are not mirrored ({game.site_a}, {game.site_b})"
        )
    if game.score_a < 0 or game.score_b < 0:
        raise DataIntegrityError(f"Game #{position} has a negative score")


def build_game_log(teams: Iterable[Team], games: Iterable[Game]) -> pd.DataFrame:
    """
    Order games by date and attach point-in-time records.

    Each game gets both teams' wins/losses/ties from games on earlier dates,
    plus games_ahead = ((wins_a - wins_b) + (losses_b - losses_a)) / 2. Games on
    the same date keep their ingestion order and do not see each other's
    results. Ties count as neither a win nor
    a loss.

    Args:
        teams: Team roster
        games: Completed games, in any order

    Returns:
        DataFrame with GAME_LOG_COLUMNS, one row per game, game_id = sequence position

    Raises:
        DataIntegrityError: Unknown team, missing date or week, or inconsistent sites
    """
    roster = _check_roster(teams)

    records = []
    for position, game in enumerate(games):
        _validate_game(game, roster, position)
        records.append({
            "date": game.date,
            "week": int(game.week),
            "team_a": game.team_a,
            "site_a": int(game.site_a),
            "score_a": int(game.score_a),
            "team_b": game.team_b,
            "site_b": int(game.site_b),
            "score_b": int(game.score_b),
            "margin": int(game.margin),
            "outcome": game.outcome,
            "_ingested": position,
        })

    if not records:
        return pd.DataFrame(columns=GAME_LOG_COLUMNS)

    df = pd.DataFrame(records)
    try:
        df["date"] = pd.to_datetime(df["date"])
    except (TypeError, ValueError) as e:
        raise DataIntegrityError(f"Play dates are not totally orderable: {e}") from e

    df = df.sort_values(["date", "_ingested"], kind="mergesort").reset_index(drop=True)
    df["game_id"] = np.arange(len(df))

    wins: dict[str, int] = defaultdict(int)
    losses: dict[str, int] = defaultdict(int)
    ties: dict[str, int] = defaultdict(int)
    pre = defaultdict(list)

    # Groups are contiguous because df is sorted by date
    for _, day in df.groupby("date", sort=False):
        for row in day.itertuples(index=False):
            for side, team in (("a", row.team_a), ("b", row.team_b)):
                pre[f"wins_{side}"].append(wins[team])
                pre[f"losses_{side}"].append(losses[team])
                pre[f"ties_{side}"].append(ties[team])

        # Results enter the running counts only after the whole date is recorded
        for row in day.itertuples(index=False):
            a, b = row.team_a, row.team_b
            if row.outcome == WIN:
                wins[a] += 1
                losses[b] += 1
            elif row.outcome == LOSS:
                losses[a] += 1
                wins[b] += 1
            else:
                ties[a] += 1
                ties[b] += 1

    for column, values in pre.items():
        df[column] = np.asarray(values, dtype=int)

    df["games_ahead"] = (
        (df["wins_a"] - df["wins_b"]) + (df["losses_b"] - df["losses_a"])
    ) / 2.0

    return df[GAME_LOG_COLUMNS]


def symmetrize(game_log: pd.DataFrame) -> pd.DataFrame:
    """
    Expand each game into team-relative rows.

    Every game yields a forward row (team = team_a) and a mirrored row
    (team = team_b) with site, scores, records and games_ahead swapped or
    negated. Tied games are further split into one row with outcome 0 and one
    with outcome 1, so each tie contributes four rows. Models therefore only
    ever see 0/1 outcomes.

    Args:
        game_log: Output of build_game_log()

    Returns:
        DataFrame of matchup rows ordered by (game_id, mirrored, tie_split)
    """
    forward = pd.DataFrame({
        "game_id": game_log["game_id"],
        "date": game_log["date"],
        "week": game_log["week"],
        "team": game_log["team_a"],
        "opponent": game_log["team_b"],
        "site": game_log["site_a"],
        "score": game_log["score_a"],
        "opp_score": game_log["score_b"],
        "wins": game_log["wins_a"],
        "losses": game_log["losses_a"],
        "opp_wins": game_log["wins_b"],
        "opp_losses": game_log["losses_b"],
        "games_ahead": game_log["games_ahead"],
        "mirrored": False,
    })
    mirror = pd.DataFrame({
        "game_id": game_log["game_id"],
        "date": game_log["date"],
        "week": game_log["week"],
        "team": game_log["team_b"],
        "opponent": game_log["team_a"],
        "site": game_log["site_b"],
        "score": game_log["score_b"],
        "opp_score": game_log["score_a"],
        "wins": game_log["wins_b"],
        "losses": game_log["losses_b"],
        "opp_wins": game_log["wins_a"],
        "opp_losses": game_log["losses_a"],
        "games_ahead": -game_log["games_ahead"],
        "mirrored": True,
    })

    rows = pd.concat([forward, mirror], ignore_index=True)
    rows["mirrored"] = rows["mirrored"].astype(bool)
    rows["margin"] = rows["score"] - rows["opp_score"]
    rows["outcome"] = np.where(
        rows["margin"] > 0, WIN, np.where(rows["margin"] < 0, LOSS, TIE)
    )
    rows["tie_split"] = np.nan

    tied = rows["outcome"] == TIE
    if tied.any():
        lost_half = rows[tied].assign(outcome=LOSS, tie_split=0.0)
        won_half = rows[tied].assign(outcome=WIN, tie_split=1.0)
        rows = pd.concat([rows[~tied], lost_half, won_half], ignore_index=True)

    rows = rows.sort_values(
        ["game_id", "mirrored", "tie_split"], kind="mergesort"
    ).reset_index(drop=True)
    return rows


def desymmetrize(rows: pd.DataFrame) -> pd.DataFrame:
    """
    Collapse matchup rows back to one row per game.

    Uses the forward (non-mirrored) rows; the two halves of a split tie average
    back to 0.5.
    """
    forward = rows[~rows["mirrored"].astype(bool)]
    games = (
        forward.groupby("game_id", sort=True)
        .agg(
            date=("date", "first"),
            week=("week", "first"),
            team_a=("team", "first"),
            site_a=("site", "first"),
            score_a=("score", "first"),
            team_b=("opponent", "first"),
            score_b=("opp_score", "first"),
            outcome=("outcome", "mean"),
        )
        .reset_index()
    )
    games["site_b"] = -games["site_a"]
    games["margin"] = games["score_a"] - games["score_b"]
    return games


def standings(game_log: pd.DataFrame, teams: Iterable[Team] | None = None) -> pd.DataFrame:
    """
    Final win/loss/tie record per team.

    Teams in the roster that never played are included with a 0-0 record.
    """
    long = pd.concat([
        pd.DataFrame({"team": game_log["team_a"], "margin": game_log["margin"]}),
        pd.DataFrame({"team": game_log["team_b"], "margin": -game_log["margin"]}),
    ], ignore_index=True)

    table = long.groupby("team").agg(
        wins=("margin", lambda m: int((m > 0).sum())),
        losses=("margin", lambda m: int((m < 0).sum())),
        ties=("margin", lambda m: int((m == 0).sum())),
    )

    if teams is not None:
        table = table.reindex([t.external_id for t in teams], fill_value=0)

    table.index.name = "team"
    return table.reset_index()


@dataclass(frozen=True)
class TeamIndex:
    """
    Contiguous zero-based index over a set of team ids.

    Rebuilt for every training window, since a later window may include teams
    an earlier one never saw.
    """

    team_ids: tuple
    _positions: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(
            self, "_positions", {team: i for i, team in enumerate(self.team_ids)}
        )

    @classmethod
    def from_rows(cls, rows: pd.DataFrame) -> TeamIndex:
        teams = set(rows["team"]) | set(rows["opponent"])
        return cls(tuple(sorted(teams, key=str)))

    def __len__(self) -> int:
        return len(self.team_ids)

    def __contains__(self, team_id) -> bool:
        return team_id in self._positions

    def __getitem__(self, team_id) -> int:
        return self._positions[team_id]

    def __iter__(self) -> Iterator:
        return iter(self.team_ids)

    def get(self, team_id, default: int | None = None) -> int | None:
        return self._positions.get(team_id, default)

    def encode(self, team_ids: Iterable) -> np.ndarray:
        """Map team ids to positions; raises KeyError for unknown teams."""
        return np.array([self._positions[t] for t in team_ids], dtype=int)


class LeagueDataset:
    """
    Point-in-time feature store for one league.

    Usage:
        dataset = LeagueDataset(teams, games)
        game_log = dataset.build()      # one row per game, ordered by date
        rows = dataset.symmetrized()    # two (or four) rows per game
    """

    def __init__(self, teams: Iterable[Team], games: Iterable[Game]):
        self.teams = list(teams)
        self.games = list(games)
        self._game_log: pd.DataFrame | None = None

    @classmethod
    def from_dataframes(cls, teams_df: pd.DataFrame, games_df: pd.DataFrame) -> LeagueDataset:
        """
        Build from the acquisition layer's tables.

        teams_df needs columns external_id, name. games_df needs columns date,
        week, team_a, site_a, score_a, team_b, site_b, score_b.
        """
        teams = [
            Team(external_id=row.external_id, name=row.name)
            for row in teams_df.itertuples(index=False)
        ]
        games = [
            Game(
                date=row.date,
                week=int(row.week),
                team_a=row.team_a,
                site_a=int(row.site_a),
                score_a=int(row.score_a),
                team_b=row.team_b,
                site_b=int(row.site_b),
                score_b=int(row.score_b),
            )
            for row in games_df.itertuples(index=False)
        ]
        return cls(teams, games)

    @property
    def team_names(self) -> dict[str, str]:
        return {team.external_id: team.name for team in self.teams}

    def build(self) -> pd.DataFrame:
        if self._game_log is None:
            self._game_log = build_game_log(self.teams, self.games)
        return self._game_log.copy()

    def symmetrized(self) -> pd.DataFrame:
        return symmetrize(self.build())

    def standings(self) -> pd.DataFrame:
        return standings(self.build(), self.teams)
