import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from minesweeper_bot.authentication import basic_authentication
from minesweeper_bot.browser import BrowserError, Screenshot
from minesweeper_bot.crud import create_tables
from minesweeper_bot.load_settings import Settings
from minesweeper_bot.page_registry import PageRegistry
from minesweeper_bot.services import game_db
from minesweeper_bot.services.minesweeper import ChatSession, MinesweeperGame

PAGE_URL = "http://minesweeper.test/"
SCREENSHOT = Screenshot(b"\x89PNG-board", "image/png")


class FakePage:
    """In-memory stand-in for a JS Minesweeper window."""

    def __init__(self, cells=range(10), mines=(), fail_on=None):
        self.initial_cells = [str(cell) for cell in cells]
        self.mines = {str(mine) for mine in mines}
        self.fail_on = set(fail_on or ())
        self.alive = True
        self.closed = False
        self.calls = []
        self.reset()

    def reset(self):
        self.closed_cells = list(self.initial_cells)
        self.flags = set()
        self.opened = []
        self.lost = False
        self.won = False

    async def _record(self, name, *args):
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise BrowserError(f"{name} failed")

    async def add_ids(self):
        await self._record("add_ids")

    async def install_id_cleanup(self):
        await self._record("install_id_cleanup")

    async def wait_for_ids(self, timeout):
        await self._record("wait_for_ids", timeout)

    async def click_cell(self, cell):
        await self._record("click_cell", cell)
        if cell not in self.closed_cells:
            return False
        self.closed_cells.remove(cell)
        self.opened.append(cell)
        if cell in self.mines:
            self.lost = True
        elif all(closed in self.mines for closed in self.closed_cells):
            self.won = True
        return True

    async def toggle_flag(self, cell, relabel_delay):
        await self._record("toggle_flag", cell)
        if cell not in self.closed_cells:
            return False
        self.flags ^= {cell}
        return True

    async def is_lost(self):
        return self.lost

    async def is_won(self):
        return self.won

    async def click_smile(self):
        await self._record("click_smile")
        self.reset()

    async def click_hint(self):
        await self._record("click_hint")

    async def screenshot(self):
        await self._record("screenshot")
        return SCREENSHOT

    async def is_alive(self):
        return self.alive

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self):
        self.pages = []
        self.urls = []
        self.page_options = {}
        self.fail = False

    async def open_page(self, url):
        if self.fail:
            raise BrowserError("browser is down")
        self.urls.append(url)
        page = FakePage(**self.page_options)
        self.pages.append(page)
        return page


class Outbox:
    def __init__(self):
        self.messages = []

    async def send(self, message):
        self.messages.append(message)

    @property
    def texts(self):
        return [message.text for message in self.messages]


@pytest.fixture
async def session_factory(tmp_path, monkeypatch):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.sqlite3'}")
    await create_tables(engine)
    Session = async_sessionmaker(
        autocommit=False, class_=AsyncSession, autoflush=True, bind=engine
    )
    monkeypatch.setattr(game_db, "Session", Session)
    monkeypatch.setattr(basic_authentication, "Session", Session)
    yield Session
    await engine.dispose()


@pytest.fixture
def settings():
    return Settings(
        page_url=PAGE_URL,
        click_delay=0,
        flag_delay=0,
        hint_delay=0,
        wait_timeout=0.1,
    )


@pytest.fixture
def browser():
    return FakeBrowser()


@pytest.fixture
def registry(browser):
    return PageRegistry(browser, PAGE_URL)


@pytest.fixture
def game(session_factory, registry, settings):
    return MinesweeperGame(registry, settings)


@pytest.fixture
def outbox():
    return Outbox()


@pytest.fixture
def make_session(outbox):
    def factory(guild_id="guild-1", user_id="user-1", user_name="alice"):
        return ChatSession(guild_id, user_id, user_name, outbox.send)

    return factory
