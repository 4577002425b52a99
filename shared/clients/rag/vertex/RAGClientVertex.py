from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorEntry import SearchHit, VectorEntry
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

RESTRICT_NAMESPACE = "documentId"


class RAGClientVertex(RAGClientInterface):
    """Vertex AI Vector Search (streaming index) over REST.

    Neighbours only carry datapoint ids, so chunk texts live in the store's
    chunk collection and are resolved after each search. The document scope
    is a token restrict on the "documentId" namespace.
    """

    def __init__(self, helper_config: HelperConfig, chunk_store: StoreClientInterface | None = None):
        super().__init__(helper_config=helper_config, chunk_store=chunk_store)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._index = self.get_config_val("INDEX", default=None, val_type="string")
        self._index_endpoint = self.get_config_val("INDEX_ENDPOINT", default=None, val_type="string")
        self._deployed_index_id = self.get_config_val("DEPLOYED_INDEX_ID", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Vertex"

    def requires_chunk_lookup(self) -> bool:
        return True

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        # INDEX and INDEX_ENDPOINT are full resource names,
        # e.g. projects/p/locations/europe-west1/indexes/123
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="INDEX", val_type="string", default=None),
            EnvConfig(env_key="INDEX_ENDPOINT", val_type="string", default=None),
            EnvConfig(env_key="DEPLOYED_INDEX_ID", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/v1/{self._index}"

    def _get_endpoint_upsert(self) -> str:
        return f"/v1/{self._index}:upsertDatapoints"

    def _get_endpoint_search(self) -> str:
        return f"/v1/{self._index_endpoint}:findNeighbors"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_upsert_payload(self, entries: list[VectorEntry]) -> dict:
        return {
            "datapoints": [
                {
                    "datapointId": entry.vector_id,
                    "featureVector": entry.vector,
                    "restricts": [{"namespace": RESTRICT_NAMESPACE, "allowList": [entry.document_id]}],
                }
                for entry in entries
            ]
        }

    def get_search_payload(self, vector: list[float], allowed_document_ids: list[str], top_k: int) -> dict:
        return {
            "deployedIndexId": self._deployed_index_id,
            "queries": [
                {
                    "datapoint": {
                        "datapointId": "query",
                        "featureVector": vector,
                        "restricts": [{"namespace": RESTRICT_NAMESPACE, "allowList": list(allowed_document_ids)}],
                    },
                    "neighborCount": top_k,
                }
            ],
            "returnFullDatapoint": False,
        }

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        nearest = raw_response.get("nearestNeighbors") or []
        if not nearest:
            return []
        return [
            SearchHit(
                vector_id=neighbor["datapoint"]["datapointId"],
                score=neighbor.get("distance", 0.0),
            )
            for neighbor in nearest[0].get("neighbors", [])
        ]
