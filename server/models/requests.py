from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from shared.models.chat import ChatTurn


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HistoryPart(BaseModel):
    text: str = ""


class HistoryTurn(BaseModel):
    """One turn as sent by the web frontend: {"role": ..., "parts": [{"text": ...}]}."""

    role: str
    parts: list[HistoryPart]

    def to_chat_turn(self) -> ChatTurn:
        return ChatTurn(role=self.role, content="".join(part.text for part in self.parts))


class MessageRequest(CamelModel):
    chat_id: str
    conversation_history: list[HistoryTurn]


class RenameRequest(CamelModel):
    title: str
