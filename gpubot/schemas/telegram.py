"""The subset of Telegram Bot API objects the bot reads.

Unknown fields are ignored so new Bot API versions do not break parsing.
"""

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    is_bot: bool = False
    first_name: str = ""
    username: str | None = None


class Chat(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    type: str = "private"
    title: str | None = None
    username: str | None = None


class Message(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message_id: int
    chat: Chat
    date: int = 0
    from_user: User | None = Field(default=None, alias="from")
    text: str | None = None


class Update(BaseModel):
    model_config = ConfigDict(extra="ignore")

    update_id: int
    message: Message | None = None  # Edited messages are not treated as commands
