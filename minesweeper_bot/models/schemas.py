from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.schema import Column
from sqlalchemy.types import Boolean, Integer, String


class Base(DeclarativeBase):
    pass


class MinesweeperGame(Base):
    __tablename__ = "minesweeper_games"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    guild_id = Column(String, unique=True, index=True, nullable=False)
    is_started = Column(Boolean, default=False, nullable=False)


class MinesweeperRank(Base):
    __tablename__ = "minesweeper_rank"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String, unique=True, index=True, nullable=False)
    user_name = Column(String)
    score = Column(Integer, default=0, nullable=False)


class HostTable(Base):
    __tablename__ = "hosts"
    username = Column(String, primary_key=True, index=True)
    hash_password = Column(String)
    salt = Column(String)
