import base64
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class CommandNameModel(str, Enum):
    help = "help"
    start = "start"
    stop = "stop"
    restart = "restart"
    open = "open"
    flag = "flag"
    hint = "hint"
    rank = "rank"
    set = "set"


class CommandModel(BaseModel):
    """A chat command relayed by the chat host."""
    user_id: str
    user_name: str
    command: str
    args: str = ""


class OutgoingMessageModel(BaseModel):
    """One chat message to be posted into the guild.

    ``image`` holds the base64 encoded screenshot, if any.
    """
    text: Optional[str] = None
    mention_user_id: Optional[str] = None
    image: Optional[str] = None
    image_type: Optional[str] = None

    @classmethod
    def from_parts(
        cls,
        text: str | None = None,
        image: bytes | None = None,
        image_type: str | None = None,
        mention_user_id: str | None = None,
    ) -> "OutgoingMessageModel":
        return cls(
            text=text,
            mention_user_id=mention_user_id,
            image=base64.b64encode(image).decode("ascii") if image is not None else None,
            image_type=image_type if image is not None else None,
        )


class CommandReplyModel(BaseModel):
    guild_id: str
    messages: List[OutgoingMessageModel] = Field(default_factory=list)
