"""A walkthrough of data wrangling on a season of basketball statistics.

This module is meant to be read from top to bottom, and run with::

    python -m hoopwrangle.walkthrough

Each step prints the table it produced, so the output
can be followed side by side with the code.

The data comes in two files:

* ``players.csv`` has one row for each player and team,
  with the totals of the season (games played, points, free throws...).
  Players that changed team during the season have a row for
  each team and an additional ``TOT`` row with the combined totals.
* ``player_info.csv`` has the biographical information of the players,
  their height, college and salary. Some of them are unknown.

Every step takes the tables produced by the previous steps
and returns new ones, tables are never modified, so any
intermediate result can be inspected again later.
"""

import logging
from pathlib import Path

import pyarrow.compute as pc

from . import config
from .compute import (
    CountAggregation,
    FunctionCallExpression,
    MeanAggregation,
    RatioAggregation,
    SumAggregation,
    col,
    divide,
    group_max,
    lit,
)
from .dataframe import Dataframe, desc

log = logging.getLogger(__name__)


def load(data_dir: Path | str = config.DATA_DIR) -> tuple[Dataframe, Dataframe]:
    """Step 1: load the two CSV files.

    Data is loaded in memory right away, so that the files
    are read only once regardless of how many times
    the tables are used by the next steps.
    """
    data_dir = Path(data_dir)
    players = Dataframe.open_csv(data_dir / config.PLAYERS_FILE).collect()
    player_info = Dataframe.open_csv(data_dir / config.PLAYER_INFO_FILE).collect()
    log.info(
        "Loaded %d stat lines and %d player records", len(players), len(player_info)
    )
    return players, player_info


def select_columns(players: Dataframe) -> Dataframe:
    """Step 2: keep only the columns we care about."""
    return players.select("player_id", "Player", "Tm", "G", "FT", "FTA", "PTS")


def filter_rows(players: Dataframe, min_games: int = 50) -> Dataframe:
    """Step 3: keep the players that played at least ``min_games`` games."""
    return players.filter(FunctionCallExpression(pc.greater_equal, col("G"), lit(min_games)))


def add_rates(players: Dataframe) -> Dataframe:
    """Step 4: compute points per game and free throw percentage.

    A player that never played (``G == 0``) or never
    shot a free throw (``FTA == 0``) doesn't abort the computation,
    the result for that row is just ``inf`` or ``null``.
    """
    return players.mutate(
        ppg=divide(col("PTS"), col("G")),
        ft_pct=divide(col("FT"), col("FTA")),
    )


def top_scorers(players: Dataframe) -> Dataframe:
    """Step 5: sort the players by points per game, best first."""
    return players.arrange(desc("ppg"), "Player")


def one_row_per_player(players: Dataframe) -> Dataframe:
    """Step 6: keep a single row for each player.

    Players traded during the season have multiple rows,
    the one with the most games played is the ``TOT`` row
    that combines all the others, so we keep that one.
    """
    return (
        players.group_by("player_id")
        .filter(FunctionCallExpression(pc.equal, col("G"), group_max(col("G"))))
        .ungroup()
    )


def team_totals(players: Dataframe) -> Dataframe:
    """Step 7: compute the totals of each team.

    The ``TOT`` rows must be excluded, or the
    traded players would be counted twice.
    """
    return (
        players.filter(
            FunctionCallExpression(pc.not_equal, col("Tm"), lit(config.TOTAL_TEAM))
        )
        .group_by("Tm")
        .summarize(
            players=CountAggregation("player_id"),
            total_pts=SumAggregation("PTS"),
            mean_age=MeanAggregation("Age"),
            team_ft_pct=RatioAggregation("FT", "FTA"),
        )
        .arrange(desc("total_pts"))
    )


def presentable(teams: Dataframe) -> Dataframe:
    """Step 8: give columns names that are easier to read."""
    return teams.rename(
        {"Tm": "team", "total_pts": "points", "team_ft_pct": "free_throw_pct"}
    )


def complete_info(player_info: Dataframe) -> Dataframe:
    """Step 9: discard players whose college or salary is unknown."""
    return player_info.drop_na("College", "Salary")


def with_info(players: Dataframe, player_info: Dataframe, keep: str = "left") -> Dataframe:
    """Step 10: attach the biographical information to the stats.

    Both tables have a ``Player`` column, ``keep`` decides
    which one is preserved (``both`` keeps the two of them with a suffix).
    """
    return players.join(player_info, on="player_id", keep=keep)


def main(data_dir: Path | str | None = None) -> dict[str, Dataframe]:
    """Run all the steps of the walkthrough, printing their results.

    Returns the tables produced by each step.
    """
    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    results = {}

    def step(title: str, name: str, df: Dataframe) -> Dataframe:
        df = df.collect()
        results[name] = df
        print(f"\n## {title}\n")
        print(df)
        return df

    players, player_info = load(data_dir or config.DATA_DIR)
    step("Player stats", "players", players.head(config.MAX_ROWS))
    step("Player information", "player_info", player_info.head(config.MAX_ROWS))

    selected = step("Selecting columns", "selected", select_columns(players))
    step("Players with at least 50 games", "regulars", filter_rows(selected))
    rates = step("Points per game and free throw percentage", "rates", add_rates(selected))
    step("Top scorers", "top_scorers", top_scorers(rates))
    unique = step("One row per player", "unique_players", one_row_per_player(rates))
    teams = step("Team totals", "teams", team_totals(players))
    step("Team totals, renamed", "teams_renamed", presentable(teams))
    info = step("Players with complete information", "complete_info", complete_info(player_info))
    step("Stats with player information", "joined", with_info(unique, info))
    return results


if __name__ == "__main__":
    main()
