"""Game rules that are independent from the chat host, the DB and the browser.

Rule of thumb:
- OK: parsing command arguments, scoring constants, leaderboard formatting.
- Not OK: touching DB sessions, WebDriver, FastAPI, asyncio.sleep(), etc.
"""

import re
from typing import List, Sequence

from minesweeper_bot.models.schema_models import RankEntrySchema

OPEN_SUCCESS_SCORE = 1
OPEN_MINE_SCORE = -1

RANK_LIMIT = 10
RANK_NAME_WIDTH = 6
RANK_SCORE_WIDTH = 4

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 100

# Runs of ASCII commas, full-width commas or whitespace separate cell ids.
CELL_SEPARATOR = re.compile(r",+|，+|\s+")


class Messages:
    is_started = "Minesweeper is already running in this group."
    is_not_started = "Minesweeper has not been started yet."
    is_stopped = "Minesweeper stopped."
    error = "Something went wrong with the game page."
    fail = "Boom! You hit a mine, the game is over."
    success = "Congratulations, the board is cleared!"
    going = "Keep going!"
    point_gained = "You earned 1 point."
    point_lost = "You lost 1 point."
    not_closed_cell = "Cell {cell} is not a closed cell."
    difficulty_not_available = (
        "Difficulty {difficulty} noted, but changing the difficulty is not available yet."
    )
    invalid_difficulty = (
        f"Difficulty must be an integer between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}."
    )
    empty_rank = "Nobody has scored yet."


USAGE = """Minesweeper for the whole group.

Make sure the game page can be reached from the bot host:
https://zwolfrost.github.io/JSMinesweeper/

Commands:
- minesweeper: show this help
- minesweeper.start: start a game and show the numbered board
- minesweeper.stop: stop the current game
- minesweeper.restart: start a new board in the running game
- minesweeper.open <cells>: open cells, e.g. minesweeper.open 0,66,11
- minesweeper.flag <cells>: flag or unflag cells, e.g. minesweeper.flag 76 43 31
- minesweeper.hint: mark a safe cell with a question mark
- minesweeper.rank: show the top 10 players
- minesweeper.set <difficulty>: set the difficulty, 1-100 (not available yet)

Cells are separated by commas (ASCII or full-width) or spaces.
Every safe cell you open earns 1 point, opening a mine costs 1 point.
"""


def parse_cells(text: str | None) -> List[str]:
    """Split a free-form cell list into unique cell ids.

    Args:
        text (str | None): Raw command argument, e.g. "0,66，11 5"

    Returns:
        List[str]: Cell ids in first-seen order, without duplicates
    """
    if not text:
        return []
    cells: List[str] = []
    for token in CELL_SEPARATOR.split(text.strip()):
        if token and token not in cells:
            cells.append(token)
    return cells


def parse_difficulty(text: str | None) -> int | None:
    """Return the difficulty if it is an integer within range, otherwise None."""
    if text is None:
        return None
    try:
        difficulty = int(text.strip())
    except ValueError:
        return None
    if difficulty < MIN_DIFFICULTY or difficulty > MAX_DIFFICULTY:
        return None
    return difficulty


def format_rank_table(entries: Sequence[RankEntrySchema]) -> str:
    """Render the leaderboard as plain text

    Args:
        entries (Sequence[RankEntrySchema]): Already sorted and truncated entries

    Returns:
        str: Leaderboard text
    """
    lines = [
        "Minesweeper leaderboard:",
        " Rank  Name   Score",
        "-" * 20,
    ]
    for index, entry in enumerate(entries):
        name = entry.user_name or entry.user_id
        lines.append(
            f" {index + 1:>2}   {name:<{RANK_NAME_WIDTH}} {entry.score:<{RANK_SCORE_WIDTH}}"
        )
    if not entries:
        lines.append(Messages.empty_rank)
    return "\n".join(lines)
