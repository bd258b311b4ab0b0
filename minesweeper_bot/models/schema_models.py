from pydantic import BaseModel


class GameSessionSchema(BaseModel):
    id: int
    guild_id: str
    is_started: bool

    class Config:
        from_attributes = True


class RankEntrySchema(BaseModel):
    id: int
    user_id: str
    user_name: str | None
    score: int

    class Config:
        from_attributes = True


class HostSchema(BaseModel):
    """Chat host account allowed to call the command endpoints."""
    username: str
    hash_password: str
    salt: str

    class Config:
        from_attributes = True
