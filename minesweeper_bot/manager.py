from fastapi import WebSocket
from typing import List, Dict
import logging


class ConnectionManager:
    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, guild_id: str):
        """Connects a websocket to a guild_id

        Args:
            websocket (WebSocket): Connection of the chat host
            guild_id (str): Chat group whose messages the host relays
        """
        await websocket.accept()
        if guild_id not in self.active_connections:
            self.active_connections[guild_id] = []
        self.active_connections[guild_id].append(websocket)

    def disconnect(self, websocket: WebSocket, guild_id: str):
        """Disconnects a websocket from a guild_id

        Args:
            websocket (WebSocket): Connection of the chat host
            guild_id (str): Chat group whose messages the host relays
        """
        if guild_id in self.active_connections:
            if websocket in self.active_connections[guild_id]:
                self.active_connections[guild_id].remove(websocket)
            # Clean up if there are no more connections for this guild_id
            if not self.active_connections[guild_id]:
                del self.active_connections[guild_id]

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        await websocket.send_json(message)

    async def broadcast(self, message: dict, guild_id: str):
        logging.info(f"Broadcasting message to guild_id: {guild_id}")
        for connection in list(self.active_connections.get(guild_id, [])):
            await connection.send_json(message)
