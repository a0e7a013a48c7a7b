"""Metadata stored alongside each chunk vector of an ingestion record."""

from pydantic import BaseModel


class VectorPoint(BaseModel):
    """Payload stored alongside each chunk of a user's ingestion record.

    All points of one insert share run_id; the points of the newest run among
    a user's points form that user's record, chunk_index restores their order.

    Attributes:
        user_id:      Owner of the record; partition key used for replace and lookup.
        chunk_index:  Zero-based position of this chunk within the persisted record.
        chunk_text:   Raw text content of this chunk.
        source_key:   Object key the record was ingested from, for tracing.
        run_id:       Identifies the insert that wrote this point.
        inserted_at:  Insert stamp in nanoseconds, newer runs have larger values.
    """

    user_id: str
    chunk_index: int
    chunk_text: str
    source_key: str | None = None
    run_id: str = ""
    inserted_at: int = 0
