from minesweeper_bot.domain.game_rules import (
    Messages,
    format_rank_table,
    parse_cells,
    parse_difficulty,
)
from minesweeper_bot.models.schema_models import RankEntrySchema


def test_parse_cells_splits_on_commas_and_spaces():
    assert parse_cells("0,66,11") == ["0", "66", "11"]
    assert parse_cells("76，43，31") == ["76", "43", "31"]
    assert parse_cells("1 2\t3") == ["1", "2", "3"]
    assert parse_cells("4,,5，，6   7") == ["4", "5", "6", "7"]


def test_parse_cells_removes_duplicates_in_order():
    assert parse_cells("3,1,3 2 1") == ["3", "1", "2"]


def test_parse_cells_ignores_empty_input():
    assert parse_cells(None) == []
    assert parse_cells("") == []
    assert parse_cells(" , ") == []


def test_parse_difficulty_range():
    assert parse_difficulty("1") == 1
    assert parse_difficulty(" 100 ") == 100
    assert parse_difficulty("0") is None
    assert parse_difficulty("101") is None
    assert parse_difficulty("hard") is None
    assert parse_difficulty(None) is None


def test_format_rank_table():
    entries = [
        RankEntrySchema(id=2, user_id="u2", user_name="bob", score=12),
        RankEntrySchema(id=1, user_id="u1", user_name="alice", score=3),
    ]
    lines = format_rank_table(entries).split("\n")
    assert lines[0] == "Minesweeper leaderboard:"
    assert lines[2] == "-" * 20
    assert lines[3] == "  1   bob    12  "
    assert lines[4] == "  2   alice  3   "


def test_format_rank_table_falls_back_to_user_id():
    entries = [RankEntrySchema(id=1, user_id="u1", user_name=None, score=-1)]
    assert format_rank_table(entries).split("\n")[3] == "  1   u1     -1  "


def test_format_rank_table_empty():
    assert format_rank_table([]).endswith(Messages.empty_rank)
