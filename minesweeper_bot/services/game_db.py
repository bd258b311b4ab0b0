"""DB service layer for minesweeper use cases.

- Command handlers and routers should not touch DB sessions directly; they call this module.
- This layer owns session boundaries.
"""

import logging
from typing import List

from minesweeper_bot.crud import CreateData, ReadData, UpdateData
from minesweeper_bot.db import Session
from minesweeper_bot.domain.game_rules import RANK_LIMIT
from minesweeper_bot.models.schema_models import GameSessionSchema, RankEntrySchema


async def get_game_info(guild_id: str) -> GameSessionSchema:
    """Read the guild's game row, creating a stopped one on first use."""
    async with Session() as session:
        game = await ReadData.read_game(guild_id, session)
        if game is not None:
            return game
        game = await CreateData.create_game(guild_id, session)
        if game is None:
            # A concurrent request may have created the row first.
            game = await ReadData.read_game(guild_id, session)
        if game is None:
            raise RuntimeError("Failed to create game data")
        return game


async def set_started(guild_id: str, is_started: bool) -> None:
    async with Session() as session:
        success = await UpdateData.update_game_started(guild_id, session, is_started)
        if not success:
            raise RuntimeError(f"Failed to update game data of guild {guild_id}")


async def stop_all_games() -> None:
    async with Session() as session:
        success = await UpdateData.stop_all_games(session)
        if not success:
            raise RuntimeError("Failed to stop all games")


async def started_guild_ids() -> List[str]:
    async with Session() as session:
        return await ReadData.read_started_guild_ids(session)


async def add_score(user_id: str, user_name: str, delta: int) -> RankEntrySchema:
    """Apply a score event, creating the user's entry on the first one.

    Args:
        user_id (str): To identify the user
        user_name (str): Latest display name, stored with the score
        delta (int): Score change

    Returns:
        RankEntrySchema: The entry after the change
    """
    async with Session() as session:
        entry = await UpdateData.update_rank(user_id, session, user_name, delta)
        if entry is not None:
            return entry
        entry = await CreateData.create_rank(user_id, session, user_name, delta)
        if entry is None:
            # Another event created the entry first.
            entry = await UpdateData.update_rank(user_id, session, user_name, delta)
        if entry is None:
            raise RuntimeError(f"Failed to record score of user {user_id}")
        logging.info(f"Created rank entry for user {user_id}")
        return entry


async def read_leaderboard(limit: int = RANK_LIMIT) -> List[RankEntrySchema]:
    async with Session() as session:
        return await ReadData.read_rank_entries(session, limit)
