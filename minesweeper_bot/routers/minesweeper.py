import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from minesweeper_bot.authentication.basic_authentication import BasicAuthentication
from minesweeper_bot.domain.game_rules import RANK_LIMIT
from minesweeper_bot.manager import ConnectionManager
from minesweeper_bot.models.dc_models import (
    CommandModel,
    CommandNameModel,
    CommandReplyModel,
    OutgoingMessageModel,
)
from minesweeper_bot.models.schema_models import HostSchema, RankEntrySchema
from minesweeper_bot.services import game_db
from minesweeper_bot.services.minesweeper import ChatSession, MinesweeperGame

minesweeper_router = APIRouter(prefix="/minesweeper")
basic_auth = BasicAuthentication()
connect_manager = ConnectionManager()


def get_game(request: Request) -> MinesweeperGame:
    return request.app.state.game


def parse_command_name(command: str) -> CommandNameModel:
    try:
        return CommandNameModel(command.strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown command: {command}",
        )


class CommandServer:
    @staticmethod
    @minesweeper_router.post("/{guild_id}/command", response_model=CommandReplyModel)
    async def run_command(
        guild_id: str,
        command: CommandModel,
        game: MinesweeperGame = Depends(get_game),
        host_data: HostSchema = Depends(basic_auth.check_host_data),
    ) -> CommandReplyModel:
        """Run one chat command and return every message it produced

        Args:
            guild_id (str): Chat group the command was sent in
            command (CommandModel): Sender and command text
            game (MinesweeperGame): Command handlers
            host_data (HostSchema): The authenticated chat host

        Returns:
            CommandReplyModel: Messages to post into the chat group, in order
        """
        command_name = parse_command_name(command.command)
        reply = CommandReplyModel(guild_id=guild_id)

        async def send(message: OutgoingMessageModel) -> None:
            reply.messages.append(message)

        session = ChatSession(guild_id, command.user_id, command.user_name, send)
        await game.dispatch(session, command_name, command.args)
        return reply

    @staticmethod
    @minesweeper_router.get("/rank", response_model=List[RankEntrySchema])
    async def get_rank(
        host_data: HostSchema = Depends(basic_auth.check_host_data),
    ) -> List[RankEntrySchema]:
        return await game_db.read_leaderboard(RANK_LIMIT)


class StreamServer:
    @staticmethod
    @minesweeper_router.websocket("/ws/{guild_id}")
    async def command_socket(websocket: WebSocket, guild_id: str):
        """Relay commands of one chat group and broadcast their messages

        The host sends CommandModel JSON frames. Each produced message is sent
        to every socket connected for the guild as soon as it is produced.
        """
        host_data = await basic_auth.check_websocket_host(websocket)
        if host_data is None:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        game: MinesweeperGame = websocket.app.state.game
        await connect_manager.connect(websocket, guild_id)

        async def send(message: OutgoingMessageModel) -> None:
            await connect_manager.broadcast(message.model_dump(), guild_id)

        try:
            while True:
                data = await websocket.receive_json()
                try:
                    command = CommandModel.model_validate(data)
                    command_name = CommandNameModel(command.command.strip().lower())
                except (ValidationError, ValueError) as e:
                    await connect_manager.send_personal_message({"error": str(e)}, websocket)
                    continue
                session = ChatSession(guild_id, command.user_id, command.user_name, send)
                await game.dispatch(session, command_name, command.args)
        except WebSocketDisconnect:
            logging.info(f"Host disconnected from guild_id: {guild_id}")
        finally:
            connect_manager.disconnect(websocket, guild_id)
