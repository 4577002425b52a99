from shared.clients.ClientManager import ClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface


class RAGClientManager(ClientManager):
    """
    Instantiates the vector index client selected by RAG_ENGINE.

    Pass chunk_store=<StoreClientInterface> for engines that keep chunk texts
    outside the index (e.g. vertex).
    """

    client_type = "rag"
    class_prefix = "RAGClient"

    def get_client(self) -> RAGClientInterface:
        return self.client
