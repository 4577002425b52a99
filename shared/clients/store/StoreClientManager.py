from shared.clients.ClientManager import ClientManager
from shared.clients.store.StoreClientInterface import StoreClientInterface


class StoreClientManager(ClientManager):
    """Instantiates the document store client selected by STORE_ENGINE."""

    client_type = "store"
    class_prefix = "StoreClient"

    def get_client(self) -> StoreClientInterface:
        return self.client
