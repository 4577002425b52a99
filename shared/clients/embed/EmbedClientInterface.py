from abc import abstractmethod
from typing import Tuple

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions import BackendRequestError, EmbeddingUnavailableError
from shared.helper.HelperConfig import HelperConfig

EMBED_BATCH_SIZE = 100  # texts per embedding request


class EmbedClientInterface(ClientInterface):
    """Turns text fragments into fixed-length vectors.

    Engine-independent settings: EMBED_MODEL (required) and EMBED_DISTANCE,
    the similarity metric the vector index is created with.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.embed_model = helper_config.get_string_val("EMBED_MODEL")
        self.embed_distance = helper_config.get_string_val("EMBED_DISTANCE", default="Cosine")

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_client_type(self) -> str:
        return "embed"

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Request body embedding all texts in one call."""
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Vectors in input order.

        Raises:
            ValueError: If the response carries no embeddings.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_fetch_embedding_vector_size(self) -> Tuple[int, str]:
        """Return (dimension, distance metric) of the configured model."""
        pass

    async def do_embed(self, texts: list[str]) -> list[list[float]]:
        """Single embedding request without result checks.

        Raises:
            BackendRequestError: On a non-2xx answer.
            ValueError: If the answer holds no embeddings.
        """
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=self.get_embed_payload(texts),
            raise_on_error=True,
        )
        return self.extract_embeddings_from_response(response.json())

    async def do_embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed fragments in batches of EMBED_BATCH_SIZE.

        Every fragment must come back with a non-empty vector, otherwise the
        whole call fails.

        Args:
            texts (list[str]): Fragments in chunk order.

        Returns:
            list[list[float]]: One vector per fragment, same order.

        Raises:
            EmbeddingUnavailableError: If a request fails or a vector is missing.
        """
        engine = self.get_engine_name()
        vectors: list[list[float]] = []
        for offset in range(0, len(texts), EMBED_BATCH_SIZE):
            batch = texts[offset: offset + EMBED_BATCH_SIZE]
            try:
                batch_vectors = await self.do_embed(batch)
            except (BackendRequestError, httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
                self.logging.error("Embedding %d text(s) via '%s' failed: %s", len(batch), engine, exc)
                raise EmbeddingUnavailableError(f"Embedding via '{engine}' failed: {exc}") from exc
            if len(batch_vectors) != len(batch) or not all(batch_vectors):
                self.logging.error("'%s' returned %d vector(s) for %d text(s).", engine, len(batch_vectors), len(batch))
                raise EmbeddingUnavailableError(f"Embedding via '{engine}' returned no prediction for every text.")
            vectors.extend(batch_vectors)
        return vectors

    async def do_embed_text(self, text: str) -> list[float]:
        """
        Raises:
            EmbeddingUnavailableError: If the provider fails or returns no prediction.
        """
        return (await self.do_embed_texts([text]))[0]
