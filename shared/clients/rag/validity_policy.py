"""Embedding validity rules shared by the embedding generator and the record store."""

import math
from numbers import Real

from shared.models.ingestion import ValidityPolicy


def is_valid_embedding(vector: object) -> bool:
    """Check that a vector is a non-empty sequence of finite numbers.

    Args:
        vector (object): The value returned by an embedding backend.

    Returns:
        bool: True if every element is a finite real number (bools excluded).
    """
    if not isinstance(vector, (list, tuple)) or not vector:
        return False
    return all(
        isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)
        for value in vector
    )


def apply_validity_policy(
    policy: ValidityPolicy,
    text_chunks: list[str],
    embeddings: list[list[float]],
) -> tuple[list[str], list[list[float]]]:
    """Select which chunk/embedding pairs are persisted.

    STRICT keeps only pairs whose embedding is valid, filtering both lists in
    lockstep. LENIENT keeps everything, invalid markers included.

    Args:
        policy (ValidityPolicy): The deployment's validity policy.
        text_chunks (list[str]): Chunk texts in order.
        embeddings (list[list[float]]): Embeddings aligned with text_chunks.

    Returns:
        tuple[list[str], list[list[float]]]: The aligned chunks and embeddings to persist.

    Raises:
        ValueError: If the inputs are not aligned.
    """
    if len(text_chunks) != len(embeddings):
        raise ValueError(
            f"Chunks and embeddings are not aligned: {len(text_chunks)} != {len(embeddings)}"
        )
    if policy == ValidityPolicy.LENIENT:
        return list(text_chunks), [list(vector) for vector in embeddings]

    kept = [(chunk, vector) for chunk, vector in zip(text_chunks, embeddings) if is_valid_embedding(vector)]
    return [chunk for chunk, _ in kept], [list(vector) for _, vector in kept]
