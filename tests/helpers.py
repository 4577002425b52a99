"""Shared builders for the test suite."""

import json
from unittest.mock import Mock

import httpx

from shared.helper.HelperConfig import HelperConfig
from shared.models.conversation import Conversation, DocumentRecord


def make_helper_config() -> HelperConfig:
    return HelperConfig(logger=Mock())


def make_conversation(**overrides) -> Conversation:
    data = {
        "id": "chat1",
        "user_id": "user1",
        "title": "New chat",
        "contexts": {"miscellaneous": []},
    }
    data.update(overrides)
    return Conversation(**data)


def make_record(document_id: str, **overrides) -> DocumentRecord:
    data = {
        "document_id": document_id,
        "original_name": f"{document_id}.txt",
        "storage_path": f"bucket/{document_id}.txt",
        "chunk_count": 1,
    }
    data.update(overrides)
    return DocumentRecord(**data)


class RecordingTransport:
    """Builds an httpx.MockTransport that records requests and answers from a handler."""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []
        self._handler = handler

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def json_bodies(self) -> list:
        return [json.loads(request.content) if request.content else None for request in self.requests]
