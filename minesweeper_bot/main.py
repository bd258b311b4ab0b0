from apscheduler.schedulers.asyncio import AsyncIOScheduler
import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager

from minesweeper_bot.browser import BrowserManager
from minesweeper_bot.create_sqlite_engine import engine
from minesweeper_bot.crud import create_tables
from minesweeper_bot.load_settings import Settings, reconcile_interval_seconds
from minesweeper_bot.page_registry import PageRegistry
from minesweeper_bot.routers import minesweeper
from minesweeper_bot.services import game_db
from minesweeper_bot.services.minesweeper import MinesweeperGame

scheduler = AsyncIOScheduler()
logging.basicConfig(level=logging.INFO)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app):
    """Prepare tables and the shared browser.
    This function is called to start the server.
    """
    settings = Settings()
    await create_tables(engine)
    # Pages do not survive a restart, so no stored game can still be running.
    await game_db.stop_all_games()

    browser = BrowserManager(settings)
    await browser.launch()
    registry = PageRegistry(browser, settings.page_url)
    game = MinesweeperGame(registry, settings)
    app.state.game = game

    # If a game page disappeared, mark its game as stopped
    scheduler.add_job(
        game.reconcile,
        "interval",
        seconds=reconcile_interval_seconds,
    )
    scheduler.start()
    try:
        yield
    finally:
        scheduler.shutdown()
        await game.shutdown()
        await browser.quit()
        logging.info("Stop Server")


app = FastAPI(lifespan=lifespan)
app.include_router(minesweeper.minesweeper_router)
