"""Chat command handlers.

Every command of a guild runs under the guild's lock of the PageRegistry,
so the scripted DOM steps of two commands never interleave on one page.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict

from minesweeper_bot.browser import BrowserError, Screenshot
from minesweeper_bot.domain.game_rules import (
    OPEN_MINE_SCORE,
    OPEN_SUCCESS_SCORE,
    RANK_LIMIT,
    USAGE,
    Messages,
    format_rank_table,
    parse_cells,
    parse_difficulty,
)
from minesweeper_bot.load_settings import Settings
from minesweeper_bot.models.dc_models import CommandNameModel, OutgoingMessageModel
from minesweeper_bot.page_registry import PageRegistry
from minesweeper_bot.services import game_db


@dataclass
class ChatSession:
    guild_id: str
    user_id: str
    user_name: str
    send: Callable[[OutgoingMessageModel], Awaitable[None]]

    async def reply(
        self,
        text: str | None = None,
        screenshot: Screenshot | None = None,
        mention: bool = False,
    ) -> None:
        await self.send(
            OutgoingMessageModel.from_parts(
                text=text,
                image=screenshot.data if screenshot is not None else None,
                image_type=screenshot.mime_type if screenshot is not None else None,
                mention_user_id=self.user_id if mention else None,
            )
        )


class MinesweeperGame:
    def __init__(self, registry: PageRegistry, settings: Settings | None = None):
        self.registry = registry
        self.settings = settings or Settings()
        self.handlers: Dict[CommandNameModel, Callable[[ChatSession, str], Awaitable[None]]] = {
            CommandNameModel.help: self.help,
            CommandNameModel.start: self.start,
            CommandNameModel.stop: self.stop,
            CommandNameModel.restart: self.restart,
            CommandNameModel.open: self.open,
            CommandNameModel.flag: self.flag,
            CommandNameModel.hint: self.hint,
            CommandNameModel.rank: self.rank,
            CommandNameModel.set: self.set_difficulty,
        }

    async def dispatch(self, session: ChatSession, command: CommandNameModel, args: str = "") -> None:
        logging.info(f"guild_id: {session.guild_id} user_id: {session.user_id} command: {command.value} {args}")
        async with self.registry.lock(session.guild_id):
            await self.handlers[command](session, args)

    async def _prepare_board(self, page) -> None:
        await page.add_ids()
        await page.install_id_cleanup()
        await page.wait_for_ids(self.settings.wait_timeout)

    async def _screenshot(self, page) -> Screenshot | None:
        try:
            return await page.screenshot()
        except BrowserError as e:
            logging.error(f"Failed to take screenshot: {e}")
            return None

    async def _finish_game(self, guild_id: str) -> None:
        await game_db.set_started(guild_id, False)
        await self.registry.release(guild_id)

    async def _live_page(self, session: ChatSession):
        """Return the guild's page; a started game without a page is stopped."""
        page = self.registry.get(session.guild_id)
        if page is None:
            logging.error(f"Game of guild_id {session.guild_id} is started but has no page")
            await game_db.set_started(session.guild_id, False)
            await session.reply(Messages.error)
        return page

    async def help(self, session: ChatSession, args: str = "") -> None:
        await session.reply(USAGE)

    async def start(self, session: ChatSession, args: str = "") -> None:
        game = await game_db.get_game_info(session.guild_id)
        if game.is_started:
            await session.reply(Messages.is_started)
            return

        try:
            page = await self.registry.acquire(session.guild_id)
            await self._prepare_board(page)
            screenshot = await page.screenshot()
            if screenshot is None:
                raise BrowserError("Board container not found")
        except BrowserError as e:
            logging.error(f"Failed to start game of guild_id {session.guild_id}: {e}")
            await self.registry.release(session.guild_id)
            await session.reply(Messages.error)
            return

        await game_db.set_started(session.guild_id, True)
        await session.reply(screenshot=screenshot)

    async def stop(self, session: ChatSession, args: str = "") -> None:
        game = await game_db.get_game_info(session.guild_id)
        if not game.is_started:
            await session.reply(Messages.is_not_started)
            return
        await self._finish_game(session.guild_id)
        await session.reply(Messages.is_stopped)

    async def restart(self, session: ChatSession, args: str = "") -> None:
        game = await game_db.get_game_info(session.guild_id)
        if not game.is_started:
            await session.reply(Messages.is_not_started)
            return
        page = await self._live_page(session)
        if page is None:
            return

        try:
            await page.click_smile()
            await self._prepare_board(page)
            screenshot = await page.screenshot()
        except BrowserError as e:
            logging.error(f"Failed to restart game of guild_id {session.guild_id}: {e}")
            await session.reply(Messages.error)
            return
        if screenshot is None:
            await session.reply(Messages.error)
            return
        await session.reply(screenshot=screenshot)

    async def open(self, session: ChatSession, args: str = "") -> None:
        """Open cells in order and score each outcome for the sender.

        Nothing is sent when no cell is given or no game is running.
        """
        cells = parse_cells(args)
        if not cells:
            return
        game = await game_db.get_game_info(session.guild_id)
        if not game.is_started:
            return
        page = await self._live_page(session)
        if page is None:
            return

        for cell in cells:
            try:
                clicked = await page.click_cell(cell)
            except BrowserError as e:
                logging.error(f"Failed to open cell {cell}: {e}")
                await session.reply(Messages.error)
                return
            if not clicked:
                await session.reply(Messages.not_closed_cell.format(cell=cell))
                continue

            await asyncio.sleep(self.settings.click_delay)

            if await page.is_lost():
                await game_db.add_score(session.user_id, session.user_name, OPEN_MINE_SCORE)
                screenshot = await self._screenshot(page)
                await session.reply(
                    f"{Messages.point_lost}\n\n{Messages.fail}", screenshot, mention=True
                )
                await self._finish_game(session.guild_id)
                return

            won = await page.is_won()
            await game_db.add_score(session.user_id, session.user_name, OPEN_SUCCESS_SCORE)
            screenshot = await self._screenshot(page)
            if won:
                await session.reply(
                    f"{Messages.point_gained}\n\n{Messages.success}", screenshot, mention=True
                )
                return
            await session.reply(
                f"{Messages.point_gained}\n\n{Messages.going}", screenshot, mention=True
            )

    async def flag(self, session: ChatSession, args: str = "") -> None:
        game = await game_db.get_game_info(session.guild_id)
        if not game.is_started:
            await session.reply(Messages.is_not_started)
            return
        cells = parse_cells(args)
        if not cells:
            return
        page = await self._live_page(session)
        if page is None:
            return

        for cell in cells:
            try:
                await page.toggle_flag(cell, self.settings.click_delay)
            except BrowserError as e:
                logging.error(f"Failed to flag cell {cell}: {e}")
            await asyncio.sleep(self.settings.flag_delay)

        screenshot = await self._screenshot(page)
        if screenshot is None:
            await session.reply(Messages.error)
            return
        await session.reply(screenshot=screenshot)

    async def hint(self, session: ChatSession, args: str = "") -> None:
        game = await game_db.get_game_info(session.guild_id)
        if not game.is_started:
            await session.reply(Messages.is_not_started)
            return
        page = await self._live_page(session)
        if page is None:
            return

        try:
            await page.click_hint()
        except BrowserError as e:
            logging.error(f"Failed to click hint: {e}")
            await session.reply(Messages.error)
            return
        await asyncio.sleep(self.settings.hint_delay)

        screenshot = await self._screenshot(page)
        if screenshot is None:
            await session.reply(Messages.error)
            return
        await session.reply(screenshot=screenshot)

    async def rank(self, session: ChatSession, args: str = "") -> None:
        entries = await game_db.read_leaderboard(RANK_LIMIT)
        await session.reply(format_rank_table(entries))

    async def set_difficulty(self, session: ChatSession, args: str = "") -> None:
        # TODO: drag the #fieldsize slider once the page exposes a stable way to resize the field.
        difficulty = parse_difficulty(args)
        if difficulty is None:
            await session.reply(Messages.invalid_difficulty)
            return
        await session.reply(Messages.difficulty_not_available.format(difficulty=difficulty))

    async def reconcile(self) -> None:
        """Clear the started flag of every game that has no live page"""
        stale = set(await self.registry.reconcile())
        for guild_id in await game_db.started_guild_ids():
            if self.registry.get(guild_id) is None:
                stale.add(guild_id)
        for guild_id in stale:
            async with self.registry.lock(guild_id):
                if self.registry.get(guild_id) is None:
                    await game_db.set_started(guild_id, False)
                    logging.info(f"Marked game of guild_id {guild_id} as stopped")

    async def shutdown(self) -> None:
        await self.registry.close_all()
        await game_db.stop_all_games()
