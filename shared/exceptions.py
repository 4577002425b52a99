"""Exception types shared by the clients, services and the HTTP layer.

Every error carries a stable ``error_code`` and the HTTP ``status_code`` the
API layer answers with. Internal detail stays in ``message`` and is only
exposed for client errors (status < 500).
"""


class ChatBackendError(Exception):
    """Base class for all errors raised by the chat backend."""

    status_code = 500
    error_code = "internal_error"
    default_message = "An unexpected error occurred."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ChatBackendError):
    status_code = 404
    error_code = "not_found"
    default_message = "Resource not found."


class UnauthorizedError(ChatBackendError):
    status_code = 403
    error_code = "unauthorized"
    default_message = "Resource does not belong to the requesting user."


class InvalidInputError(ChatBackendError):
    status_code = 400
    error_code = "invalid_input"
    default_message = "Invalid request data."


class ConfigurationError(ChatBackendError):
    """Invalid parameters such as chunk sizes or unknown context bucket names."""

    status_code = 400
    error_code = "configuration_error"
    default_message = "Invalid configuration."


class UnsupportedFormatError(ChatBackendError):
    status_code = 415
    error_code = "unsupported_format"
    default_message = "Unsupported file format."


class ExtractionFailedError(ChatBackendError):
    status_code = 422
    error_code = "extraction_failed"
    default_message = "Could not extract or generate text content from the file."


class EmbeddingUnavailableError(ChatBackendError):
    status_code = 502
    error_code = "embedding_unavailable"
    default_message = "Could not generate the embedding."


class GenerationFailedError(ChatBackendError):
    status_code = 502
    error_code = "generation_failed"
    default_message = "The generative model request failed."


class StorageWriteFailedError(ChatBackendError):
    status_code = 500
    error_code = "storage_write_failed"
    default_message = "Writing to storage failed."


class BackendRequestError(ChatBackendError):
    """Raised by ClientInterface.do_request for non-2xx responses."""

    status_code = 502
    error_code = "backend_request_failed"
    default_message = "Request to an external backend failed."

    def __init__(self, message: str | None = None, response_status: int | None = None):
        super().__init__(message)
        self.response_status = response_status
