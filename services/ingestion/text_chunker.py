"""Positional text chunking."""

from shared.models.ingestion import TextChunk

CHUNK_SIZE = 1000  # characters per text chunk


def split_text(text: str, size: int = CHUNK_SIZE) -> list[TextChunk]:
    """Split a document's text into consecutive, non-overlapping chunks.

    Boundaries are purely positional; words and sentences may be cut. Joining
    the chunk contents in index order reproduces the input exactly.

    Args:
        text (str): The full document text.
        size (int): Maximum number of characters per chunk.

    Returns:
        list[TextChunk]: Ordered chunks, empty for empty text.

    Raises:
        ValueError: If size is not positive.
    """
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}.")
    if not text:
        return []
    return [
        TextChunk(index=index, content=text[start:start + size])
        for index, start in enumerate(range(0, len(text), size))
    ]
