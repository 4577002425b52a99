"""Tests for the Firestore value codec and the REST wire format of StoreClientFirestore."""

import os
import unittest
from datetime import datetime, timezone
from unittest.mock import patch

import httpx

from shared.clients.rag.models.VectorEntry import VectorEntry
from shared.clients.store.StoreClientInterface import FIELD_ACTIVE_CONTEXT, FIELD_MESSAGES
from shared.clients.store.firestore.StoreClientFirestore import StoreClientFirestore
from shared.clients.store.firestore.values import decode_fields, encode_fields, encode_value, parse_timestamp
from shared.exceptions import NotFoundError, StorageWriteFailedError
from shared.models.conversation import Message, MessageSender

from helpers import RecordingTransport, make_helper_config

ENV = {
    "STORE_FIRESTORE_PROJECT": "demo",
    "STORE_FIRESTORE_API_KEY": "token",
}
ROOT = "projects/demo/databases/(default)/documents"


def _conversation_document(conversation_id: str = "chat1") -> dict:
    return {
        "name": f"{ROOT}/chats/{conversation_id}",
        "fields": {
            "userId": {"stringValue": "user1"},
            "title": {"stringValue": "New chat"},
            "messages": {"arrayValue": {"values": [
                {"mapValue": {"fields": {
                    "sender": {"stringValue": "user"},
                    "text": {"stringValue": "hi"},
                    "timestamp": {"timestampValue": "2024-05-01T10:00:00.123456789Z"},
                }}},
            ]}},
            "contexts": {"mapValue": {"fields": {
                "miscellaneous": {"arrayValue": {"values": [
                    {"mapValue": {"fields": {
                        "documentId": {"stringValue": "doc_a"},
                        "originalName": {"stringValue": "a.txt"},
                        "storagePath": {"stringValue": "bucket/a.txt"},
                        "chunkCount": {"integerValue": "2"},
                        "createdAt": {"timestampValue": "2024-05-01T09:00:00Z"},
                    }}},
                ]}},
                "finance": {"arrayValue": {}},
            }}},
            "activeContext": {"stringValue": "miscellaneous"},
            "superuserMode": {"booleanValue": False},
            "updatedAt": {"timestampValue": "2024-05-01T10:00:01Z"},
        },
    }


class TestFirestoreValues(unittest.TestCase):
    def test_encode_scalars(self) -> None:
        self.assertEqual(encode_value(True), {"booleanValue": True})
        self.assertEqual(encode_value(3), {"integerValue": "3"})
        self.assertEqual(encode_value(0.5), {"doubleValue": 0.5})
        self.assertEqual(encode_value(None), {"nullValue": None})
        self.assertEqual(encode_value(MessageSender.BOT), {"stringValue": "bot"})
        self.assertEqual(
            encode_value(datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)),
            {"timestampValue": "2024-05-01T10:00:00Z"},
        )

    def test_nested_structures_decode_back(self) -> None:
        data = {"a": [1, "x", {"b": False}], "c": {}, "d": []}
        self.assertEqual(decode_fields(encode_fields(data)), data)

    def test_nanosecond_timestamps_are_truncated(self) -> None:
        self.assertEqual(
            parse_timestamp("2024-05-01T10:00:00.123456789Z"),
            datetime(2024, 5, 1, 10, 0, 0, 123456, tzinfo=timezone.utc),
        )


class TestStoreClientFirestore(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        patcher = patch.dict(os.environ, ENV, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = StoreClientFirestore(helper_config=make_helper_config())

    async def asyncTearDown(self) -> None:
        await self.client.close()

    async def test_get_conversation(self) -> None:
        recorder = RecordingTransport(lambda request: httpx.Response(200, json=_conversation_document()))
        await self.client.boot(transport=recorder.transport())

        conversation = await self.client.do_get_conversation("chat1")

        self.assertEqual(recorder.requests[0].url.path, f"/v1/{ROOT}/chats/chat1")
        self.assertEqual(recorder.requests[0].headers["Authorization"], "Bearer token")
        self.assertEqual(conversation.id, "chat1")
        self.assertEqual(conversation.user_id, "user1")
        self.assertEqual(conversation.messages[0].sender, "user")
        self.assertEqual(conversation.contexts["finance"], [])
        self.assertEqual(conversation.get_active_document_ids(), ["doc_a"])
        self.assertEqual(conversation.contexts["miscellaneous"][0].chunk_count, 2)

    async def test_missing_conversation_raises_not_found(self) -> None:
        await self.client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(404, json={})))
        with self.assertRaises(NotFoundError):
            await self.client.do_get_conversation("nope")

    async def test_update_is_one_atomic_commit(self) -> None:
        recorder = RecordingTransport(lambda request: httpx.Response(200, json={"writeResults": [{}]}))
        await self.client.boot(transport=recorder.transport())
        message = Message(sender=MessageSender.BOT, text="ok", timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc))

        await self.client.do_update_conversation(
            "chat1",
            set_fields={FIELD_ACTIVE_CONTEXT: "finance"},
            append_fields={"contexts.finance": [{"documentId": "doc_b"}], FIELD_MESSAGES: [message.to_store()]},
        )

        self.assertEqual(recorder.requests[0].url.path, f"/v1/{ROOT}:commit")
        write = recorder.json_bodies()[0]["writes"][0]
        self.assertEqual(write["update"]["name"], f"{ROOT}/chats/chat1")
        self.assertEqual(write["update"]["fields"], {"activeContext": {"stringValue": "finance"}})
        self.assertEqual(write["updateMask"], {"fieldPaths": ["activeContext"]})
        self.assertEqual(write["currentDocument"], {"exists": True})
        transforms = {t["fieldPath"]: t for t in write["updateTransforms"]}
        self.assertEqual(
            transforms["contexts.finance"]["appendMissingElements"]["values"],
            [{"mapValue": {"fields": {"documentId": {"stringValue": "doc_b"}}}}],
        )
        appended = transforms["messages"]["appendMissingElements"]["values"][0]["mapValue"]["fields"]
        self.assertEqual(appended["sender"], {"stringValue": "bot"})
        self.assertEqual(appended["timestamp"], {"timestampValue": "2024-05-01T00:00:00Z"})
        self.assertEqual(transforms["updatedAt"], {"fieldPath": "updatedAt", "setToServerValue": "REQUEST_TIME"})

    async def test_update_of_missing_conversation_raises_not_found(self) -> None:
        await self.client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(404, json={})))
        with self.assertRaises(NotFoundError):
            await self.client.do_update_conversation("gone", set_fields={"title": "x"})

    async def test_rejected_commit_raises_storage_write_failed(self) -> None:
        await self.client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(400, json={})))
        with self.assertRaises(StorageWriteFailedError):
            await self.client.do_update_conversation("chat1", set_fields={"title": "x"})

    async def test_create_conversation(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(200, json={"writeResults": [{}]})
            document = _conversation_document(request.url.path.rsplit("/", 1)[-1])
            return httpx.Response(200, json=document)

        recorder = RecordingTransport(handler)
        await self.client.boot(transport=recorder.transport())

        conversation = await self.client.do_create_conversation("user1", "New chat", ["miscellaneous", "finance"], "miscellaneous")

        write = recorder.json_bodies()[0]["writes"][0]
        self.assertEqual(write["currentDocument"], {"exists": False})
        self.assertEqual(
            write["update"]["fields"]["contexts"],
            {"mapValue": {"fields": {"miscellaneous": {"arrayValue": {"values": []}}, "finance": {"arrayValue": {"values": []}}}}},
        )
        self.assertEqual(
            sorted(t["fieldPath"] for t in write["updateTransforms"]),
            ["createdAt", "updatedAt"],
        )
        self.assertEqual(write["update"]["name"], f"{ROOT}/chats/{conversation.id}")

    async def test_list_conversations_queries_by_owner(self) -> None:
        response = [
            {"document": _conversation_document("chat2")},
            {"document": _conversation_document("chat1")},
            {"readTime": "2024-05-01T10:00:00Z"},
        ]
        recorder = RecordingTransport(lambda request: httpx.Response(200, json=response))
        await self.client.boot(transport=recorder.transport())

        summaries = await self.client.do_list_conversations("user1")

        self.assertEqual([s.id for s in summaries], ["chat2", "chat1"])
        query = recorder.json_bodies()[0]["structuredQuery"]
        self.assertEqual(query["from"], [{"collectionId": "chats"}])
        self.assertEqual(
            query["where"]["compositeFilter"]["filters"][0]["fieldFilter"],
            {"field": {"fieldPath": "userId"}, "op": "EQUAL", "value": {"stringValue": "user1"}},
        )
        self.assertEqual(query["orderBy"], [{"field": {"fieldPath": "updatedAt"}, "direction": "DESCENDING"}])

    async def test_chunk_texts_round_trip_through_batch_get(self) -> None:
        entry = VectorEntry.for_chunk("doc_a", 0, "chunk text", [0.1])

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith(":commit"):
                return httpx.Response(200, json={"writeResults": [{}]})
            return httpx.Response(200, json=[
                {"found": {"name": f"{ROOT}/documentChunks/{entry.vector_id}", "fields": {
                    "documentId": {"stringValue": "doc_a"},
                    "chunkText": {"stringValue": "chunk text"},
                }}},
                {"missing": f"{ROOT}/documentChunks/unknown"},
            ])

        recorder = RecordingTransport(handler)
        await self.client.boot(transport=recorder.transport())

        await self.client.do_put_chunks([entry])
        texts = await self.client.do_fetch_chunks([entry.vector_id, "unknown"])

        self.assertEqual(texts, {entry.vector_id: "chunk text"})
        write = recorder.json_bodies()[0]["writes"][0]
        self.assertEqual(write["update"]["name"], f"{ROOT}/documentChunks/{entry.vector_id}")
        self.assertEqual(
            recorder.json_bodies()[1]["documents"],
            [f"{ROOT}/documentChunks/{entry.vector_id}", f"{ROOT}/documentChunks/unknown"],
        )


if __name__ == "__main__":
    unittest.main()
