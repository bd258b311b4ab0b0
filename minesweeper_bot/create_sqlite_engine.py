from sqlalchemy.ext.asyncio import create_async_engine

from minesweeper_bot.load_settings import database_url


engine = create_async_engine(url=database_url, echo=False)
