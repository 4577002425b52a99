from shared.clients.ClientManager import ClientManager
from shared.clients.blob.BlobClientInterface import BlobClientInterface


class BlobClientManager(ClientManager):
    """Instantiates the blob storage client selected by BLOB_ENGINE."""

    client_type = "blob"
    class_prefix = "BlobClient"

    def get_client(self) -> BlobClientInterface:
        return self.client
