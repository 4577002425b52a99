"""Pydantic models exchanged with the generative model clients."""

import base64
from typing import Literal

from pydantic import BaseModel, field_validator

ChatRole = Literal["user", "model"]


class ContentPart(BaseModel):
    """One part of a model turn: either text or inline binary data."""

    text: str | None = None
    data: bytes | None = None
    mime_type: str | None = None

    @classmethod
    def from_text(cls, text: str) -> "ContentPart":
        return cls(text=text)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str) -> "ContentPart":
        return cls(data=data, mime_type=mime_type)

    def get_base64(self) -> str:
        return base64.b64encode(self.data or b"").decode("ascii")


class ChatTurn(BaseModel):
    """One prior turn of a conversation as sent by the frontend.

    Any role other than "user" (e.g. "ai", "assistant", "bot") is a model turn.
    """

    role: ChatRole
    content: str

    @field_validator("role", mode="before")
    @classmethod
    def _normalise_role(cls, value: str) -> str:
        return "user" if str(value).strip().lower() == "user" else "model"
