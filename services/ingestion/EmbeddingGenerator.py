"""Per-chunk embedding generation with partial-failure tolerance."""

import asyncio

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.validity_policy import is_valid_embedding
from shared.helper.HelperConfig import HelperConfig
from shared.models.ingestion import TextChunk

EMBED_CONCURRENCY = 8  # max parallel embedding requests per document
INVALID_EMBEDDING: list[float] = []


class EmbeddingGenerator:
    """Fans out one embedding request per chunk and joins all results in chunk order."""

    def __init__(self, helper_config: HelperConfig, embed_client: EmbedClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self._max_concurrency = int(
            helper_config.get_number_val("EMBED_MAX_CONCURRENCY", default=EMBED_CONCURRENCY)
        )
        if self._max_concurrency <= 0:
            raise ValueError(f"EMBED_MAX_CONCURRENCY must be positive, got {self._max_concurrency}.")

    async def do_generate(self, chunks: list[TextChunk]) -> list[list[float]]:
        """Embed every chunk, substituting the invalid marker for failures.

        Args:
            chunks (list[TextChunk]): The chunks to embed.

        Returns:
            list[list[float]]: One vector per chunk, in the same order. Failed or
                rejected chunks get an empty list.
        """
        if not chunks:
            return []

        sem = asyncio.Semaphore(self._max_concurrency)
        vectors = await asyncio.gather(*[self._embed_chunk(chunk, sem) for chunk in chunks])

        failed = sum(1 for vector in vectors if not vector)
        if failed:
            self.logging.warning("%d of %d chunk embeddings are invalid.", failed, len(chunks))
        return list(vectors)

    async def _embed_chunk(self, chunk: TextChunk, sem: asyncio.Semaphore) -> list[float]:
        """Embed a single chunk, never raising.

        Args:
            chunk (TextChunk): The chunk to embed.
            sem (asyncio.Semaphore): Concurrency limiter.

        Returns:
            list[float]: The validated vector, or the invalid marker.
        """
        async with sem:
            try:
                vector = await self._embed_client.do_embed(chunk.content)
            except Exception as exc:
                self.logging.warning("Embedding failed for chunk %d: %s", chunk.index, exc)
                return list(INVALID_EMBEDDING)

        if not is_valid_embedding(vector):
            self.logging.warning(
                "Embedding for chunk %d rejected: not a non-empty sequence of finite numbers.", chunk.index
            )
            return list(INVALID_EMBEDDING)
        return [float(value) for value in vector]
