"""Error taxonomy shared by stores, clients and services.

The FastAPI app maps each class to an HTTP status in one place
(see server/api_server.py); everything below the HTTP layer raises these.
"""


class RAGChatError(Exception):
    """Base class for all application errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(RAGChatError):
    """A required setting (e.g. the language-model API key) is missing."""

    status_code = 400


class NotFoundError(RAGChatError):
    """A document or conversation id does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} '{entity_id}' not found.")
        self.entity = entity
        self.entity_id = entity_id


class UploadError(RAGChatError):
    """An uploaded file was rejected at the boundary."""

    status_code = 400


class UnsupportedFileTypeError(UploadError):
    def __init__(self, mime_type: str, allowed: list[str]) -> None:
        super().__init__(f"Unsupported file type '{mime_type}'. Allowed: {', '.join(allowed)}")
        self.mime_type = mime_type


class FileTooLargeError(UploadError):
    status_code = 413

    def __init__(self, size: int, max_size: int) -> None:
        super().__init__(f"File of {size} bytes exceeds the maximum of {max_size} bytes.")
        self.size = size
        self.max_size = max_size


class EmptyContentError(UploadError):
    def __init__(self, name: str = "") -> None:
        label = f" '{name}'" if name else ""
        super().__init__(f"Could not extract any text content from file{label}.")


class ExtractionError(UploadError):
    """The file could not be parsed (corrupt PDF, invalid UTF-8, ...)."""


class LLMUpstreamError(RAGChatError):
    """The language-model API answered with a non-success status or could not be reached."""

    status_code = 502

    def __init__(self, upstream_status: int, message: str) -> None:
        super().__init__(f"Language model API error ({upstream_status}): {message}")
        self.upstream_status = upstream_status
        self.upstream_message = message


class MessagingGatewayError(RAGChatError):
    """The WhatsApp gateway rejected a request or is not configured."""

    status_code = 502
