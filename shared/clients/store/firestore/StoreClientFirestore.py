import uuid

import httpx

from shared.clients.rag.models.VectorEntry import VectorEntry
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.store.firestore.values import decode_fields, encode_fields, encode_value
from shared.exceptions import BackendRequestError, NotFoundError, StorageWriteFailedError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.conversation import Conversation, ConversationSummary, DocumentRecord

COMMIT_BATCH_SIZE = 500  # Firestore limit of writes per commit
SERVER_TIME = "REQUEST_TIME"


class StoreClientFirestore(StoreClientInterface):
    """Cloud Firestore over its REST API (v1).

    Array appends use the appendMissingElements transform (arrayUnion), timestamps
    the REQUEST_TIME server value. Also works against the Firestore emulator by
    pointing BASE_URL at it.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://firestore.googleapis.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._project = self.get_config_val("PROJECT", default=None, val_type="string")
        self._database = self.get_config_val("DATABASE", default="(default)", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Firestore"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="PROJECT", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_documents_root(self) -> str:
        return f"projects/{self._project}/databases/{self._database}/documents"

    def _get_document_name(self, collection: str, document_id: str) -> str:
        return f"{self._get_documents_root()}/{collection}/{document_id}"

    def _get_endpoint_healthcheck(self) -> str:
        return f"/v1/{self._get_documents_root()}/{self.collection_conversations}?pageSize=1"

    def _get_endpoint_document(self, collection: str, document_id: str) -> str:
        return f"/v1/{self._get_document_name(collection, document_id)}"

    def _get_endpoint_commit(self) -> str:
        return f"/v1/{self._get_documents_root()}:commit"

    def _get_endpoint_run_query(self) -> str:
        return f"/v1/{self._get_documents_root()}:runQuery"

    def _get_endpoint_batch_get(self) -> str:
        return f"/v1/{self._get_documents_root()}:batchGet"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    @staticmethod
    def _nest(path: str, value) -> dict:
        """Turn "a.b" = v into {"a": {"b": v}} for the fields of an update write."""
        for segment in reversed(path.split(".")[1:]):
            value = {segment: value}
        return {path.split(".")[0]: value}

    def get_update_write(self, conversation_id: str, set_fields: dict | None, append_fields: dict[str, list] | None) -> dict:
        fields: dict = {}
        for path, value in (set_fields or {}).items():
            nested = self._nest(path, value)
            key = next(iter(nested))
            if isinstance(fields.get(key), dict) and isinstance(nested[key], dict):
                fields[key].update(nested[key])
            else:
                fields.update(nested)
        transforms = [
            {"fieldPath": path, "appendMissingElements": {"values": [encode_value(v) for v in values]}}
            for path, values in (append_fields or {}).items()
            if values
        ]
        transforms.append({"fieldPath": "updatedAt", "setToServerValue": SERVER_TIME})
        return {
            "update": {
                "name": self._get_document_name(self.collection_conversations, conversation_id),
                "fields": encode_fields(fields),
            },
            "updateMask": {"fieldPaths": list((set_fields or {}).keys())},
            "updateTransforms": transforms,
            "currentDocument": {"exists": True},
        }

    def get_query_payload(self, collection: str, where: dict | None = None, order_by: str | None = None) -> dict:
        query: dict = {"from": [{"collectionId": collection}]}
        if where:
            query["where"] = {
                "compositeFilter": {
                    "op": "AND",
                    "filters": [
                        {"fieldFilter": {"field": {"fieldPath": key}, "op": "EQUAL", "value": encode_value(value)}}
                        for key, value in where.items()
                    ],
                }
            }
        if order_by:
            query["orderBy"] = [{"field": {"fieldPath": order_by}, "direction": "DESCENDING"}]
        return {"structuredQuery": query}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @staticmethod
    def _get_id_from_name(name: str) -> str:
        return name.rsplit("/", 1)[-1]

    def extract_conversation(self, document: dict) -> Conversation:
        data = decode_fields(document.get("fields") or {})
        data["id"] = self._get_id_from_name(document["name"])
        return Conversation.model_validate(data)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _commit(self, writes: list[dict]) -> None:
        """Commit writes atomically.

        Raises:
            NotFoundError: If an update precondition finds no document.
            StorageWriteFailedError: On any other failure.
        """
        try:
            response = await self.do_request(method="POST", endpoint=self._get_endpoint_commit(), json={"writes": writes})
        except httpx.HTTPError as exc:
            raise StorageWriteFailedError(f"Firestore commit failed: {exc}") from exc
        if response.status_code == 404:
            raise NotFoundError("Document to update does not exist.")
        if response.status_code >= 300:
            self.logging.error("Firestore commit failed with status %d: %s", response.status_code, response.text[:500])
            raise StorageWriteFailedError(f"Firestore commit failed with status {response.status_code}.")

    async def _run_query(self, payload: dict) -> list[dict]:
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_run_query(),
            json=payload,
            raise_on_error=True,
        )
        # entries without "document" only carry the read time
        return [entry["document"] for entry in response.json() if "document" in entry]

    ########### CONVERSATIONS ################

    async def do_create_conversation(self, user_id: str, title: str, buckets: list[str], active_context: str) -> Conversation:
        conversation_id = uuid.uuid4().hex
        fields = {
            "userId": user_id,
            "title": title,
            "messages": [],
            "contexts": {bucket: [] for bucket in buckets},
            "activeContext": active_context,
            "superuserMode": False,
        }
        await self._commit([{
            "update": {
                "name": self._get_document_name(self.collection_conversations, conversation_id),
                "fields": encode_fields(fields),
            },
            "updateTransforms": [
                {"fieldPath": "createdAt", "setToServerValue": SERVER_TIME},
                {"fieldPath": "updatedAt", "setToServerValue": SERVER_TIME},
            ],
            "currentDocument": {"exists": False},
        }])
        self.logging.info("Created conversation %s for user %s.", conversation_id, user_id)
        return await self.do_get_conversation(conversation_id)

    async def do_get_conversation(self, conversation_id: str) -> Conversation:
        response = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_document(self.collection_conversations, conversation_id),
        )
        if response.status_code == 404:
            raise NotFoundError(f"Conversation '{conversation_id}' not found.")
        if response.status_code >= 300:
            self.logging.error("Reading conversation %s failed with status %d.", conversation_id, response.status_code)
            raise BackendRequestError(
                f"Reading conversation '{conversation_id}' failed with status {response.status_code}.",
                response_status=response.status_code,
            )
        return self.extract_conversation(response.json())

    async def do_list_conversations(self, user_id: str) -> list[ConversationSummary]:
        documents = await self._run_query(
            self.get_query_payload(self.collection_conversations, where={"userId": user_id}, order_by="updatedAt")
        )
        summaries = []
        for document in documents:
            data = decode_fields(document.get("fields") or {})
            summaries.append(ConversationSummary(
                id=self._get_id_from_name(document["name"]),
                title=data.get("title", ""),
                updated_at=data.get("updatedAt"),
            ))
        return summaries

    async def do_delete_conversation(self, conversation_id: str) -> None:
        await self._commit([{"delete": self._get_document_name(self.collection_conversations, conversation_id)}])

    async def do_update_conversation(
        self,
        conversation_id: str,
        set_fields: dict | None = None,
        append_fields: dict[str, list] | None = None,
    ) -> None:
        await self._commit([self.get_update_write(conversation_id, set_fields, append_fields)])

    ########### GLOBAL DOCUMENTS #############

    async def do_add_global_document(self, record: DocumentRecord) -> None:
        await self._commit([{
            "update": {
                "name": self._get_document_name(self.collection_global_documents, record.document_id),
                "fields": encode_fields(record.to_store()),
            },
        }])

    async def do_list_global_documents(self) -> list[DocumentRecord]:
        documents = await self._run_query(self.get_query_payload(self.collection_global_documents))
        return [DocumentRecord.model_validate(decode_fields(doc.get("fields") or {})) for doc in documents]

    ############## CHUNK TEXTS ###############

    async def do_put_chunks(self, entries: list[VectorEntry]) -> None:
        writes = [
            {
                "update": {
                    "name": self._get_document_name(self.collection_chunks, entry.vector_id),
                    "fields": encode_fields({
                        "documentId": entry.document_id,
                        "chunkIndex": entry.chunk_index,
                        "chunkText": entry.chunk_text,
                    }),
                },
            }
            for entry in entries
        ]
        for batch_start in range(0, len(writes), COMMIT_BATCH_SIZE):
            await self._commit(writes[batch_start: batch_start + COMMIT_BATCH_SIZE])

    async def do_fetch_chunks(self, vector_ids: list[str]) -> dict[str, str]:
        if not vector_ids:
            return {}
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_batch_get(),
            json={"documents": [self._get_document_name(self.collection_chunks, vid) for vid in vector_ids]},
            raise_on_error=True,
        )
        texts: dict[str, str] = {}
        for entry in response.json():
            found = entry.get("found")
            if not found:
                continue
            data = decode_fields(found.get("fields") or {})
            texts[self._get_id_from_name(found["name"])] = data.get("chunkText", "")
        return texts
