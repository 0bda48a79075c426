import pytest

from hoopwrangle import config, walkthrough
from hoopwrangle.errors import MissingFileError


@pytest.fixture(scope="module")
def results():
    return walkthrough.main(config.DATA_DIR)


def _column(results, step, name):
    return results[step].to_arrow().column(name).to_pylist()


def test_walkthrough_prints_every_step(capsys):
    walkthrough.main()
    out = capsys.readouterr().out
    for title in (
        "## Selecting columns",
        "## Players with at least 50 games",
        "## Top scorers",
        "## One row per player",
        "## Team totals",
        "## Stats with player information",
    ):
        assert title in out


def test_selected_columns(results):
    assert results["selected"].columns == ["player_id", "Player", "Tm", "G", "FT", "FTA", "PTS"]
    assert len(results["selected"]) == len(walkthrough.load()[0])


def test_regulars(results):
    assert all(g >= 50 for g in _column(results, "regulars", "G"))
    assert len(results["regulars"]) == 8


def test_rates_keep_players_without_games(results):
    rates = {row["player_id"]: row for row in results["rates"].to_pylist()}
    assert rates["ivesno01"]["ppg"] is None
    assert rates["kingbe01"]["ft_pct"] is None
    assert rates["adamsmi01"]["ppg"] == pytest.approx(1266 / 72)


def test_top_scorers(results):
    ids = _column(results, "top_scorers", "player_id")
    assert ids[0] == "jonesal01"
    # Players without games have no ppg and go last.
    assert ids[-1] == "ivesno01"


def test_one_row_per_player(results):
    unique = results["unique_players"].to_pylist()
    ids = [row["player_id"] for row in unique]
    assert len(ids) == len(set(ids)) == 11
    teams = {row["player_id"]: row["Tm"] for row in unique}
    assert teams["bakerjo01"] == config.TOTAL_TEAM
    assert teams["fosterra01"] == config.TOTAL_TEAM


def test_team_totals(results):
    teams = results["teams"].to_pylist()
    assert [t["Tm"] for t in teams] == ["DEN", "LAL", "BOS", "MIA"]
    assert [t["total_pts"] for t in teams] == [2767, 2515, 2031, 1331]
    assert [t["players"] for t in teams] == [3, 3, 4, 3]
    bos = teams[2]
    assert bos["mean_age"] == pytest.approx(28.0)
    assert bos["team_ft_pct"] == pytest.approx(314 / 385)


def test_team_totals_renamed(results):
    assert results["teams_renamed"].columns == [
        "team",
        "players",
        "points",
        "mean_age",
        "free_throw_pct",
    ]


def test_complete_info(results):
    info = results["complete_info"].to_arrow()
    assert info.num_rows == 8
    assert info.column("College").null_count == 0
    assert info.column("Salary").null_count == 0


def test_joined(results):
    joined = results["joined"].to_pylist()
    assert [row["player_id"] for row in joined] == [
        "adamsmi01",
        "carteda01",
        "fosterra01",
        "grantke01",
        "hillsa01",
        "jonesal01",
        "kingbe01",
    ]
    assert "Player_left" not in joined[0]
    assert joined[2]["Tm"] == config.TOTAL_TEAM
    assert joined[0]["College"] == "Duke"


def test_missing_data_dir(tmp_path):
    with pytest.raises(MissingFileError):
        walkthrough.main(tmp_path)
