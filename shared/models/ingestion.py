"""Data models flowing through the ingestion pipeline."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class IngestionEvent(BaseModel):
    """A decoded storage notification: which object to ingest.

    The push transport delivers the fields as ``bucket`` / ``name``; both the
    wire names and the internal names are accepted on construction.

    Attributes:
        container_id: Bucket holding the uploaded object.
        object_key:   Full object path inside the bucket (e.g. "users/42/resume.pdf").
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    container_id: str = Field(alias="bucket", min_length=1)
    object_key: str = Field(alias="name", min_length=1)


class ExtractedDocument(BaseModel):
    """Plain text result of parsing one object."""

    text: str = ""


class TextChunk(BaseModel):
    """One positional segment of an extracted text.

    Attributes:
        index:   Zero-based position of the chunk within the source text.
        content: The chunk text.
    """

    model_config = ConfigDict(frozen=True)

    index: int
    content: str


class IngestionRecord(BaseModel):
    """The persisted chunk/embedding set of one user.

    text_chunks and embeddings are index-aligned. An empty embedding is the
    invalid marker and only appears under the lenient validity policy.
    """

    user_id: str
    text_chunks: list[str] = []
    embeddings: list[list[float]] = []


class ValidityPolicy(str, Enum):
    """How embeddings that failed or were rejected are persisted."""

    STRICT = "strict"
    LENIENT = "lenient"


class IngestionStatus(str, Enum):
    """Terminal outcome of one pipeline run."""

    STORED = "stored"
    SKIPPED_NOT_PREMIUM = "skipped_not_premium"
    SKIPPED_NO_TEXT = "skipped_no_text"
    CLEARED_NO_VALID_EMBEDDINGS = "cleared_no_valid_embeddings"
    INVALID_OBJECT_KEY = "invalid_object_key"
    FETCH_FAILED = "fetch_failed"
    EXTRACTION_FAILED = "extraction_failed"
    PERSISTENCE_FAILED = "persistence_failed"
    FAILED = "failed"
