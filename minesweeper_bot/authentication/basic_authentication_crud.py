import hashlib
import logging
import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from minesweeper_bot.models.schema_models import HostSchema
from minesweeper_bot.models.schemas import HostTable

logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def hash_password(password: str, salt: str, pepper: str) -> str:
    return hashlib.sha256((password + salt + pepper).encode()).hexdigest()


class CreateAuthentication:
    @staticmethod
    async def create_host_data(
        username: str, password: str, pepper: str, session: AsyncSession
    ) -> HostSchema | None:
        """Create host data to authenticate the chat host

        Args:
            username (str): username of the chat host
            password (str): plain password, only its salted hash is stored
            pepper (str): server side secret mixed into the hash
        """
        salt = secrets.token_hex(8)
        hashed = hash_password(password, salt, pepper)
        async with session:
            try:
                new_host = HostTable(
                    username=username,
                    hash_password=hashed,
                    salt=salt,
                )
                session.add(new_host)
                await session.commit()
                return HostSchema(
                    username=username,
                    hash_password=hashed,
                    salt=salt,
                )
            except Exception as e:
                await session.rollback()
                logging.error(f"Error creating host data: {e}")
                return None


class ReadAuthentication:
    @staticmethod
    async def read_host_data(username: str, session: AsyncSession) -> HostSchema | None:
        """Read host data to get salt and password hash

        Args:
            username (str): username of the chat host

        Returns:
            HostSchema | None: username, password hash and salt
        """
        async with session:
            try:
                stmt = select(HostTable).where(HostTable.username == username)
                result = await session.execute(stmt)
                result = result.scalars().first()
                if result is None:
                    logging.error("Host not found")
                    return None
                return HostSchema.model_validate(result)

            except Exception as e:
                logging.error(f"Error reading host data: {e}")
                return None
