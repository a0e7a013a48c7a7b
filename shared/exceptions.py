"""Exception hierarchy for the ingestion bridge.

Every stage of the pipeline raises a subclass of IngestionError so the
orchestrator can map a failure to its terminal status without inspecting
vendor-specific errors.
"""

from typing import Any


class IngestionError(Exception):
    """Base exception for all ingestion errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialise with a message and optional context for the logs.

        Args:
            message (str): Human-readable error message.
            details (dict[str, Any] | None): Additional context (ids, status codes, ...).
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ClientRequestError(IngestionError):
    """Raised by ClientInterface.do_request when a backend answers with a non-2xx status."""

    def __init__(self, url: str, status_code: int, body: str = "") -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(
            f"Request to {url} failed with status {status_code}",
            {"status_code": status_code, "body": body[:200]},
        )


class MalformedEnvelope(IngestionError):
    """Raised when a push envelope cannot be decoded into an IngestionEvent."""


class EntitlementDenied(IngestionError):
    """Raised when the object metadata does not grant full processing."""


class ObjectFetchFailed(IngestionError):
    """Base exception for object store retrieval errors."""


class ObjectNotFound(ObjectFetchFailed):
    """Raised when the requested object does not exist."""

    def __init__(self, container_id: str, object_key: str) -> None:
        super().__init__(
            f"Object not found: {container_id}/{object_key}",
            {"container_id": container_id, "object_key": object_key},
        )


class ObjectStoreUnavailable(ObjectFetchFailed):
    """Raised when the object store cannot be reached or answers with an error."""


class ExtractionFailed(IngestionError):
    """Raised when the document parsing service fails."""


class EmbeddingFailed(IngestionError):
    """Raised when the embedding service fails for a single text."""


class PersistenceFailed(IngestionError):
    """Raised when the record store rejects a delete or insert."""
