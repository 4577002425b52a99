from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions import BackendRequestError, StorageWriteFailedError
from shared.helper.HelperConfig import HelperConfig


class BlobClientInterface(ClientInterface):
    """Object storage for the raw bytes of uploaded files."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "blob"

    @abstractmethod
    def get_bucket_name(self) -> str:
        """Name of the bucket/container objects are written to."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_upload(self) -> str:
        """
        Returns the endpoint path for object uploads.

        Returns:
            str: The endpoint path (e.g. "/upload/storage/v1/b/my-bucket/o")
        """
        pass

    @abstractmethod
    def get_upload_params(self, key: str) -> dict:
        """
        Returns the query parameters of an upload request for the given object key.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_put(self, key: str, data: bytes, content_type: str) -> str:
        """Write an object, replacing any object stored under the same key.

        Args:
            key (str): The object key, e.g. "user/conversation/1700000000000-file.pdf".
            data (bytes): Raw object content.
            content_type (str): MIME type stored with the object.

        Returns:
            str: The storage path of the object ("<bucket>/<key>").

        Raises:
            StorageWriteFailedError: If the upload fails.
        """
        try:
            await self.do_request(
                method="POST",
                content=data,
                params=self.get_upload_params(key),
                endpoint=self._get_endpoint_upload(),
                additional_headers={"Content-Type": content_type or "application/octet-stream"},
                raise_on_error=True,
            )
        except (BackendRequestError, httpx.HTTPError) as e:
            self.logging.error("Upload of '%s' to %s failed: %s", key, self.get_engine_name(), e)
            raise StorageWriteFailedError(f"Could not store file '{key}'.") from e
        return f"{self.get_bucket_name()}/{key}"
