import argparse
import asyncio
import base64
import binascii
import secrets

from fastapi import Depends, HTTPException, WebSocket, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from minesweeper_bot.authentication.basic_authentication_crud import (
    CreateAuthentication,
    ReadAuthentication,
    hash_password,
)
from minesweeper_bot.crud import create_tables
from minesweeper_bot.create_sqlite_engine import engine
from minesweeper_bot.db import Session
from minesweeper_bot.load_settings import pepper_data
from minesweeper_bot.models.schema_models import HostSchema

security = HTTPBasic()
create_auth = CreateAuthentication()
read_auth = ReadAuthentication()


class BasicAuthentication:
    def __init__(self, pepper: str = pepper_data):
        self.pepper = pepper

    async def verify(self, username: str, password: str) -> HostSchema | None:
        """Return the host data if the credentials match, otherwise None"""
        async with Session() as session:
            host_data = await read_auth.read_host_data(username, session)
        if host_data is None:
            return None
        hashed_password = hash_password(password, host_data.salt, self.pepper)
        if not secrets.compare_digest(hashed_password, host_data.hash_password):
            return None
        return host_data

    async def check_host_data(
        self, credentials: HTTPBasicCredentials = Depends(security)
    ) -> HostSchema:
        """Check the Basic credentials of the chat host

        Args:
            credentials (HTTPBasicCredentials, optional): Defaults to Depends(security).

        Raises:
            HTTPException: Unknown host or wrong password

        Returns:
            HostSchema: The authenticated host
        """
        host_data = await self.verify(credentials.username, credentials.password)
        if host_data is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password",
                headers={"WWW-Authenticate": "Basic"},
            )
        return host_data

    async def check_websocket_host(self, websocket: WebSocket) -> HostSchema | None:
        """Check the Basic credentials sent with a websocket handshake"""
        authorization = websocket.headers.get("authorization", "")
        scheme, _, encoded = authorization.partition(" ")
        if scheme.lower() != "basic" or not encoded:
            return None
        try:
            decoded = base64.b64decode(encoded).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None
        username, separator, password = decoded.partition(":")
        if not separator:
            return None
        return await self.verify(username, password)

    async def store_host_data(self, username: str, password: str) -> HostSchema | None:
        async with Session() as session:
            return await create_auth.create_host_data(username, password, self.pepper, session)


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Register a chat host")
    parser.add_argument("--username", type=str, help="Username", required=True)
    parser.add_argument("--password", type=str, help="Password", required=True)
    return parser


async def main(username: str, password: str):
    await create_tables(engine)
    basic_auth = BasicAuthentication()
    host_data = await basic_auth.store_host_data(username, password)
    if host_data is None:
        print(f"Failed to register host {username}")
    else:
        print(host_data.username, host_data.hash_password, host_data.salt)


if __name__ == "__main__":
    parser = get_parser()
    args = parser.parse_args()
    asyncio.run(main(args.username, args.password))
