from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.VectorEntry import SearchHit, VectorEntry
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.exceptions import BackendRequestError, ChatBackendError, ConfigurationError, StorageWriteFailedError
from shared.helper.HelperConfig import HelperConfig


class RAGClientInterface(ClientInterface):
    """Vector index holding one entry per embedded chunk.

    Backends that return chunk texts inline (payload) resolve hits directly.
    Backends that only return identifiers declare requires_chunk_lookup() and
    get the texts from the store client passed as chunk_store.
    """

    def __init__(self, helper_config: HelperConfig, chunk_store: StoreClientInterface | None = None):
        super().__init__(helper_config=helper_config)
        self.chunk_store = chunk_store
        if self.requires_chunk_lookup() and chunk_store is None:
            raise ConfigurationError(
                f"RAG engine '{self.get_engine_name()}' needs a store client for chunk texts but none was given."
            )

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    def requires_chunk_lookup(self) -> bool:
        """
        Whether search hits come without chunk text and must be resolved
        through the chunk store.
        """
        return False

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_upsert(self) -> str:
        """
        Returns the endpoint path for upserting vectors.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points")
        """
        pass

    @abstractmethod
    def _get_endpoint_search(self) -> str:
        """
        Returns the endpoint path for nearest-neighbour searches.

        Returns:
            str: The endpoint path (e.g. "/collections/my_col/points/search")
        """
        pass

    def _get_method_upsert(self) -> str:
        return "POST"

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_upsert_payload(self, entries: list[VectorEntry]) -> dict:
        """Build the backend-specific request body for an upsert.

        Args:
            entries (list[VectorEntry]): The vectors to write.

        Returns:
            dict: The payload for the upsert request.
        """
        pass

    @abstractmethod
    def get_search_payload(self, vector: list[float], allowed_document_ids: list[str], top_k: int) -> dict:
        """Build the backend-specific request body for a filtered search.

        Args:
            vector (list[float]): The query embedding.
            allowed_document_ids (list[str]): Only entries of these documents may match.
            top_k (int): Maximum number of neighbours.

        Returns:
            dict: The payload for the search request.
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        """Extract the hits of a search response, best match first."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_ensure_ready(self, vector_size: int, distance: str = "Cosine") -> None:
        """Prepare the index for writes (e.g. create a missing collection). No-op by default."""
        return None

    async def do_upsert_entries(self, entries: list[VectorEntry]) -> None:
        """Insert or replace vectors. Entries with an existing vector_id are overwritten.

        Chunk texts are written to the chunk store first for backends that need
        the lookup, so a searchable vector never points at a missing text.

        Raises:
            StorageWriteFailedError: If the index or the chunk store rejects the write.
        """
        if not entries:
            return
        try:
            if self.requires_chunk_lookup():
                await self.chunk_store.do_put_chunks(entries)
            await self.do_request(
                method=self._get_method_upsert(),
                json=self.get_upsert_payload(entries),
                endpoint=self._get_endpoint_upsert(),
                raise_on_error=True,
            )
        except StorageWriteFailedError:
            raise
        except (BackendRequestError, httpx.HTTPError) as e:
            self.logging.error("Upserting %d vectors into %s failed: %s", len(entries), self.get_engine_name(), e)
            raise StorageWriteFailedError(f"Could not write vectors to {self.get_engine_name()}.") from e
        self.logging.debug("Upserted %d vectors into %s.", len(entries), self.get_engine_name())

    async def do_search(self, vector: list[float], allowed_document_ids: list[str], top_k: int) -> list[SearchHit]:
        """Run a filtered nearest-neighbour search and resolve missing chunk texts.

        Hits whose text cannot be resolved are dropped; order is preserved.
        """
        response = await self.do_request(
            method="POST",
            json=self.get_search_payload(vector, allowed_document_ids, top_k),
            endpoint=self._get_endpoint_search(),
            raise_on_error=True,
        )
        hits = self.extract_search_hits(response.json())
        missing = [hit.vector_id for hit in hits if hit.chunk_text is None]
        if missing and self.chunk_store is not None:
            texts = await self.chunk_store.do_fetch_chunks(missing)
            for hit in hits:
                if hit.chunk_text is None:
                    hit.chunk_text = texts.get(hit.vector_id)
        return [hit for hit in hits if hit.chunk_text is not None]

    async def do_query(self, vector: list[float], allowed_document_ids: set[str] | list[str], top_k: int = 5) -> list[str]:
        """Return the texts of the top_k chunks nearest to vector, restricted to
        entries whose document_id is in allowed_document_ids.

        An empty allow-list short-circuits to no results without contacting the
        backend. Backend failures degrade to an empty result.

        Args:
            vector (list[float]): The query embedding.
            allowed_document_ids (set[str] | list[str]): The retrieval scope.
            top_k (int): Maximum number of chunk texts.

        Returns:
            list[str]: Chunk texts, most similar first.
        """
        if not allowed_document_ids:
            return []
        try:
            hits = await self.do_search(vector, sorted(allowed_document_ids), top_k)
        except (ChatBackendError, httpx.HTTPError, KeyError, ValueError) as e:
            self.logging.warning("Vector search on %s failed, continuing without context: %s", self.get_engine_name(), e)
            return []
        return [hit.chunk_text for hit in hits[:top_k]]
