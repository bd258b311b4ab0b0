import logging
from typing import List

from sqlalchemy import asc, desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from minesweeper_bot.models.schema_models import GameSessionSchema, RankEntrySchema
from minesweeper_bot.models.schemas import Base, MinesweeperGame, MinesweeperRank


async def create_tables(engine: AsyncEngine) -> None:
    """Create table if not exists"""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except IntegrityError as e:
        logging.warning(f"Table already exists or other integrity error: {e}")


class UpdateData:
    @staticmethod
    async def update_game_started(guild_id: str, session: AsyncSession, is_started: bool) -> bool:
        """Update the started flag of the guild's game

        Args:
            guild_id (str): To identify the chat group
            is_started (bool): New value of the flag

        Returns:
            bool: False if the game row does not exist or the update failed
        """
        async with session:
            try:
                stmt = select(MinesweeperGame).where(MinesweeperGame.guild_id == guild_id)
                result = await session.execute(stmt)
                result = result.scalars().first()

                if result is None:
                    return False

                result.is_started = is_started
                await session.commit()
                return True
            except Exception as e:
                await session.rollback()
                logging.error(f"Failed to update game data: {e}")
                return False

    @staticmethod
    async def stop_all_games(session: AsyncSession) -> bool:
        """Mark every stored game as stopped"""
        async with session:
            try:
                stmt = update(MinesweeperGame).values(is_started=False)
                await session.execute(stmt)
                await session.commit()
                return True
            except Exception as e:
                await session.rollback()
                logging.error(f"Failed to stop all games: {e}")
                return False

    @staticmethod
    async def update_rank(
        user_id: str, session: AsyncSession, user_name: str, delta: int
    ) -> RankEntrySchema | None:
        """Add delta to the user's score and refresh the stored user name

        The increment is done by the database in one UPDATE, so concurrent
        score events of the same user are never lost.

        Args:
            user_id (str): To identify the user
            user_name (str): Latest display name of the user
            delta (int): Score change, +1 or -1 for an open action

        Returns:
            RankEntrySchema | None: Updated entry, None if the user has no entry yet
        """
        async with session:
            try:
                stmt = (
                    update(MinesweeperRank)
                    .where(MinesweeperRank.user_id == user_id)
                    .values(score=MinesweeperRank.score + delta, user_name=user_name)
                    .execution_options(synchronize_session=False)
                )
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    await session.rollback()
                    return None

                stmt = select(MinesweeperRank).where(MinesweeperRank.user_id == user_id)
                result = await session.execute(stmt)
                entry = RankEntrySchema.model_validate(result.scalars().first())
                await session.commit()
                return entry
            except Exception as e:
                await session.rollback()
                logging.error(f"Failed to update rank data: {e}")
                return None


class ReadData:
    @staticmethod
    async def read_game(guild_id: str, session: AsyncSession) -> GameSessionSchema | None:
        """Read the game row of the guild

        Args:
            guild_id (str): To identify the chat group

        Returns:
            GameSessionSchema | None: None if the guild has never played
        """
        async with session:
            try:
                stmt = select(MinesweeperGame).where(MinesweeperGame.guild_id == guild_id)
                result = await session.execute(stmt)
                result = result.scalars().first()

                if result is None:
                    return None

                return GameSessionSchema.model_validate(result)
            except Exception as e:
                logging.error(f"Failed to read game data: {e}")
                return None

    @staticmethod
    async def read_started_guild_ids(session: AsyncSession) -> List[str]:
        async with session:
            try:
                stmt = select(MinesweeperGame.guild_id).where(MinesweeperGame.is_started.is_(True))
                result = await session.execute(stmt)
                return list(result.scalars().all())
            except Exception as e:
                logging.error(f"Failed to read started games: {e}")
                return []

    @staticmethod
    async def read_rank_entries(session: AsyncSession, limit: int | None = None) -> List[RankEntrySchema]:
        """Read rank entries, highest score first

        Args:
            limit (int | None): Maximum number of entries, all entries if None

        Returns:
            List[RankEntrySchema]: Entries ordered by score, ties in insertion order
        """
        async with session:
            try:
                stmt = select(MinesweeperRank).order_by(
                    desc(MinesweeperRank.score), asc(MinesweeperRank.id)
                )
                if limit is not None:
                    stmt = stmt.limit(limit)
                result = await session.execute(stmt)
                return [RankEntrySchema.model_validate(row) for row in result.scalars().all()]
            except Exception as e:
                logging.error(f"Failed to read rank entries: {e}")
                return []


class CreateData:
    @staticmethod
    async def create_game(guild_id: str, session: AsyncSession) -> GameSessionSchema | None:
        """Create the game row of the guild, not started

        Args:
            guild_id (str): To identify the chat group
            session (AsyncSession): AsyncSession object to interact with database
        """
        async with session:
            try:
                new_game = MinesweeperGame(guild_id=guild_id, is_started=False)
                session.add(new_game)
                await session.commit()
                await session.refresh(new_game)
                return GameSessionSchema.model_validate(new_game)
            except Exception as e:
                await session.rollback()
                logging.error(f"Failed to create game data: {e}")
                return None

    @staticmethod
    async def create_rank(
        user_id: str, session: AsyncSession, user_name: str, score: int
    ) -> RankEntrySchema | None:
        """Create the rank entry of a user with an initial score

        Args:
            user_id (str): To identify the user
            user_name (str): Display name of the user
            score (int): Score of the first score event
        """
        async with session:
            try:
                new_rank = MinesweeperRank(user_id=user_id, user_name=user_name, score=score)
                session.add(new_rank)
                await session.commit()
                await session.refresh(new_rank)
                return RankEntrySchema.model_validate(new_rank)
            except Exception as e:
                await session.rollback()
                logging.error(f"Failed to create rank data: {e}")
                return None
