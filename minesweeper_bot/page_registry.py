import logging
from asyncio import Lock
from typing import Dict, List, Protocol


class GamePageHandle(Protocol):
    async def is_alive(self) -> bool: ...

    async def close(self) -> None: ...


class PageOpener(Protocol):
    async def open_page(self, url: str) -> GamePageHandle: ...


class PageRegistry:
    """Live game pages keyed by guild_id.

    A page is acquired when a game starts and released when it stops, and
    the registry is the only owner of the handles. Commands of one guild are
    serialized with the guild's lock.
    """

    def __init__(self, browser: PageOpener, page_url: str):
        self.browser = browser
        self.page_url = page_url
        self.pages: Dict[str, GamePageHandle] = {}  # guild_idごとのページ
        self.locks: Dict[str, Lock] = {}

    def lock(self, guild_id: str) -> Lock:
        """Get the command lock of the specified guild_id

        Args:
            guild_id (str): ID to identify the chat group

        Returns:
            Lock: Held while a command of this guild runs
        """
        if guild_id not in self.locks:
            self.locks[guild_id] = Lock()
        return self.locks[guild_id]

    def get(self, guild_id: str) -> GamePageHandle | None:
        return self.pages.get(guild_id)

    async def acquire(self, guild_id: str) -> GamePageHandle:
        """Open a fresh page for the guild, closing a stale one first

        Args:
            guild_id (str): ID to identify the chat group

        Returns:
            GamePageHandle: The new page
        """
        if guild_id in self.pages:
            await self.release(guild_id)
        page = await self.browser.open_page(self.page_url)
        self.pages[guild_id] = page
        logging.info(f"Acquired game page for guild_id: {guild_id}")
        return page

    async def release(self, guild_id: str) -> None:
        """Close and forget the page of the guild, if any"""
        page = self.pages.pop(guild_id, None)
        if page is None:
            return
        try:
            await page.close()
        except Exception as e:
            logging.error(f"Failed to close game page of guild_id {guild_id}: {e}")
        logging.info(f"Released game page for guild_id: {guild_id}")

    async def reconcile(self) -> List[str]:
        """Forget pages whose browser window is gone

        Returns:
            List[str]: guild_ids whose page was dropped
        """
        dropped = []
        for guild_id, page in list(self.pages.items()):
            if await page.is_alive():
                continue
            if self.pages.get(guild_id) is page:
                del self.pages[guild_id]
            dropped.append(guild_id)
            logging.warning(f"Game page of guild_id {guild_id} is gone")
        return dropped

    async def close_all(self) -> None:
        for guild_id in list(self.pages):
            await self.release(guild_id)
