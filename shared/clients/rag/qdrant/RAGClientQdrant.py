from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorEntry import SearchHit, VectorEntry
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig, chunk_store: StoreClientInterface | None = None):
        super().__init__(helper_config=helper_config, chunk_store=chunk_store)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default=None)
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_upsert(self) -> str:
        return f"/collections/{self._collection_name}/points?wait=true"

    def _get_method_upsert(self) -> str:
        return "PUT"

    def _get_endpoint_search(self) -> str:
        return f"/collections/{self._collection_name}/points/search"

    def _get_endpoint_check_collection_existence(self) -> str:
        return f"/collections/{self._collection_name}/exists"

    def _get_endpoint_create_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    def _get_endpoint_create_index(self) -> str:
        return f"/collections/{self._collection_name}/index"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_upsert_payload(self, entries: list[VectorEntry]) -> dict:
        return {
            "points": [
                {
                    "id": entry.vector_id,
                    "vector": entry.vector,
                    "payload": {
                        "document_id": entry.document_id,
                        "chunk_index": entry.chunk_index,
                        "chunk_text": entry.chunk_text,
                    },
                }
                for entry in entries
            ]
        }

    def get_search_payload(self, vector: list[float], allowed_document_ids: list[str], top_k: int) -> dict:
        return {
            "vector": vector,
            "filter": {"must": [{"key": "document_id", "match": {"any": list(allowed_document_ids)}}]},
            "limit": top_k,
            "with_payload": ["document_id", "chunk_text"],
        }

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        hits = []
        for point in raw_response.get("result", []):
            payload = point.get("payload") or {}
            hits.append(SearchHit(
                vector_id=str(point["id"]),
                score=point.get("score", 0.0),
                document_id=payload.get("document_id"),
                chunk_text=payload.get("chunk_text"),
            ))
        return hits

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        """Check if the collection exists in Qdrant.

        Returns:
            bool: True if the collection exists, False otherwise.
        """
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_check_collection_existence(), raise_on_error=True)
        return bool(resp.json().get("result", {}).get("exists"))

    async def do_ensure_ready(self, vector_size: int, distance: str = "Cosine") -> None:
        """Create the collection and its document_id keyword index if missing."""
        if await self.do_existence_check():
            return
        self.logging.info(
            "Creating Qdrant collection '%s' (size=%d, distance=%s).", self._collection_name, vector_size, distance
        )
        await self.do_request(
            method="PUT",
            json={"vectors": {"size": vector_size, "distance": distance}},
            endpoint=self._get_endpoint_create_collection(),
            raise_on_error=True,
        )
        await self.do_request(
            method="PUT",
            json={"field_name": "document_id", "field_schema": "keyword"},
            endpoint=self._get_endpoint_create_index(),
            raise_on_error=True,
        )
