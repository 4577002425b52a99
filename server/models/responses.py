from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from shared.models.ingestion import FileIngestionResult


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatResponse(CamelModel):
    updated_chat: dict


class UploadResponse(CamelModel):
    updated_chat: dict
    files: list[FileIngestionResult]


class DeleteResponse(CamelModel):
    message: str
