"""Tests for the vector index clients: scoping, degradation and the chunk-text lookup."""

import os
import unittest
from unittest.mock import AsyncMock, Mock, patch

import httpx

from shared.clients.rag.models.VectorEntry import VectorEntry
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.clients.rag.vertex.RAGClientVertex import RAGClientVertex
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.exceptions import ConfigurationError, StorageWriteFailedError

from helpers import RecordingTransport, make_helper_config

ENV = {
    "RAG_QDRANT_BASE_URL": "http://qdrant:6333",
    "RAG_QDRANT_COLLECTION": "chunks",
    "RAG_VERTEX_BASE_URL": "https://europe-west1-aiplatform.googleapis.com",
    "RAG_VERTEX_INDEX": "projects/p/locations/europe-west1/indexes/1",
    "RAG_VERTEX_INDEX_ENDPOINT": "projects/p/locations/europe-west1/indexEndpoints/2",
    "RAG_VERTEX_DEPLOYED_INDEX_ID": "deployed_chunks",
}


def _entries(document_id: str, texts: list[str]) -> list[VectorEntry]:
    return [VectorEntry.for_chunk(document_id, i, text, [float(i), 1.0]) for i, text in enumerate(texts)]


class RAGTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        patcher = patch.dict(os.environ, ENV, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.helper_config = make_helper_config()


class TestRAGClientQdrant(RAGTestCase):
    async def asyncSetUp(self) -> None:
        self.client = RAGClientQdrant(helper_config=self.helper_config)
        self.addAsyncCleanup(self.client.close)

    async def test_upsert_payload(self) -> None:
        recorder = RecordingTransport(lambda request: httpx.Response(200, json={"status": "ok"}))
        await self.client.boot(transport=recorder.transport())

        entries = _entries("doc_1", ["first", "second"])
        await self.client.do_upsert_entries(entries)

        request = recorder.requests[0]
        self.assertEqual(request.method, "PUT")
        self.assertEqual(request.url.path, "/collections/chunks/points")
        self.assertEqual(request.url.params["wait"], "true")
        point = recorder.json_bodies()[0]["points"][1]
        self.assertEqual(point["id"], entries[1].vector_id)
        self.assertEqual(point["payload"], {"document_id": "doc_1", "chunk_index": 1, "chunk_text": "second"})

    async def test_empty_upsert_is_a_noop(self) -> None:
        recorder = RecordingTransport(lambda request: httpx.Response(200, json={}))
        await self.client.boot(transport=recorder.transport())
        await self.client.do_upsert_entries([])
        self.assertEqual(recorder.requests, [])

    async def test_upsert_failure_reports_the_batch(self) -> None:
        await self.client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(500, text="disk full")))
        with self.assertRaises(StorageWriteFailedError):
            await self.client.do_upsert_entries(_entries("doc_1", ["a"]))

    async def test_query_filters_on_allowed_documents(self) -> None:
        response = {
            "result": [
                {"id": "p1", "score": 0.9, "payload": {"document_id": "doc_1", "chunk_text": "best"}},
                {"id": "p2", "score": 0.5, "payload": {"document_id": "doc_2", "chunk_text": "second"}},
            ]
        }
        recorder = RecordingTransport(lambda request: httpx.Response(200, json=response))
        await self.client.boot(transport=recorder.transport())

        texts = await self.client.do_query([0.1, 0.2], {"doc_2", "doc_1"}, top_k=5)

        self.assertEqual(texts, ["best", "second"])
        body = recorder.json_bodies()[0]
        self.assertEqual(recorder.requests[0].url.path, "/collections/chunks/points/search")
        self.assertEqual(body["filter"]["must"][0], {"key": "document_id", "match": {"any": ["doc_1", "doc_2"]}})
        self.assertEqual(body["limit"], 5)

    async def test_empty_scope_never_calls_the_backend(self) -> None:
        recorder = RecordingTransport(lambda request: httpx.Response(200, json={"result": []}))
        await self.client.boot(transport=recorder.transport())
        self.assertEqual(await self.client.do_query([0.1], set(), top_k=5), [])
        self.assertEqual(recorder.requests, [])

    async def test_backend_error_degrades_to_no_results(self) -> None:
        await self.client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(503, text="down")))
        self.assertEqual(await self.client.do_query([0.1], {"doc_1"}), [])

    async def test_transport_error_degrades_to_no_results(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        await self.client.boot(transport=httpx.MockTransport(refuse))
        self.assertEqual(await self.client.do_query([0.1], {"doc_1"}), [])

    async def test_ensure_ready_creates_missing_collection_and_index(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/exists"):
                return httpx.Response(200, json={"result": {"exists": False}})
            return httpx.Response(200, json={"result": True})

        recorder = RecordingTransport(handler)
        await self.client.boot(transport=recorder.transport())

        await self.client.do_ensure_ready(vector_size=768, distance="Cosine")

        self.assertEqual(
            [(r.method, r.url.path) for r in recorder.requests],
            [
                ("GET", "/collections/chunks/exists"),
                ("PUT", "/collections/chunks"),
                ("PUT", "/collections/chunks/index"),
            ],
        )
        bodies = recorder.json_bodies()
        self.assertEqual(bodies[1], {"vectors": {"size": 768, "distance": "Cosine"}})
        self.assertEqual(bodies[2], {"field_name": "document_id", "field_schema": "keyword"})

    async def test_ensure_ready_keeps_existing_collection(self) -> None:
        recorder = RecordingTransport(lambda request: httpx.Response(200, json={"result": {"exists": True}}))
        await self.client.boot(transport=recorder.transport())
        await self.client.do_ensure_ready(vector_size=768)
        self.assertEqual(len(recorder.requests), 1)


class TestRAGClientVertex(RAGTestCase):
    async def asyncSetUp(self) -> None:
        self.mock_store = Mock(spec=StoreClientInterface)
        self.mock_store.do_put_chunks = AsyncMock()
        self.mock_store.do_fetch_chunks = AsyncMock(return_value={})
        self.client = RAGClientVertex(helper_config=self.helper_config, chunk_store=self.mock_store)
        self.addAsyncCleanup(self.client.close)

    def test_requires_a_chunk_store(self) -> None:
        with self.assertRaises(ConfigurationError):
            RAGClientVertex(helper_config=self.helper_config)

    async def test_upsert_writes_chunk_texts_and_datapoints(self) -> None:
        recorder = RecordingTransport(lambda request: httpx.Response(200, json={}))
        await self.client.boot(transport=recorder.transport())

        entries = _entries("doc_1", ["alpha"])
        await self.client.do_upsert_entries(entries)

        self.mock_store.do_put_chunks.assert_awaited_once_with(entries)
        self.assertEqual(
            recorder.requests[0].url.path,
            "/v1/projects/p/locations/europe-west1/indexes/1:upsertDatapoints",
        )
        datapoint = recorder.json_bodies()[0]["datapoints"][0]
        self.assertEqual(datapoint["datapointId"], entries[0].vector_id)
        self.assertEqual(datapoint["restricts"], [{"namespace": "documentId", "allowList": ["doc_1"]}])

    async def test_chunk_store_failure_fails_the_upsert(self) -> None:
        self.mock_store.do_put_chunks.side_effect = StorageWriteFailedError("commit failed")
        recorder = RecordingTransport(lambda request: httpx.Response(200, json={}))
        await self.client.boot(transport=recorder.transport())

        with self.assertRaises(StorageWriteFailedError):
            await self.client.do_upsert_entries(_entries("doc_1", ["alpha"]))
        self.assertEqual(recorder.requests, [])

    async def test_query_resolves_texts_from_the_chunk_store(self) -> None:
        response = {
            "nearestNeighbors": [
                {
                    "id": "query",
                    "neighbors": [
                        {"datapoint": {"datapointId": "v2"}, "distance": 0.8},
                        {"datapoint": {"datapointId": "v9"}, "distance": 0.7},
                        {"datapoint": {"datapointId": "v1"}, "distance": 0.6},
                    ],
                }
            ]
        }
        recorder = RecordingTransport(lambda request: httpx.Response(200, json=response))
        await self.client.boot(transport=recorder.transport())
        # v9 has no stored text and is dropped
        self.mock_store.do_fetch_chunks.return_value = {"v1": "one", "v2": "two"}

        texts = await self.client.do_query([0.5, 0.5], {"doc_1"}, top_k=3)

        self.assertEqual(texts, ["two", "one"])
        self.mock_store.do_fetch_chunks.assert_awaited_once_with(["v2", "v9", "v1"])
        body = recorder.json_bodies()[0]
        self.assertEqual(body["deployedIndexId"], "deployed_chunks")
        query = body["queries"][0]
        self.assertEqual(query["neighborCount"], 3)
        self.assertEqual(query["datapoint"]["restricts"], [{"namespace": "documentId", "allowList": ["doc_1"]}])

    async def test_lookup_failure_degrades_to_no_results(self) -> None:
        response = {"nearestNeighbors": [{"neighbors": [{"datapoint": {"datapointId": "v1"}}]}]}
        await self.client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=response)))
        self.mock_store.do_fetch_chunks.side_effect = httpx.ConnectError("refused")

        self.assertEqual(await self.client.do_query([0.5], {"doc_1"}), [])


if __name__ == "__main__":
    unittest.main()
