"""Ingestion service.

Fetches an uploaded object, extracts its text, splits the text into chunks,
embeds every chunk and replaces the owner's record in the RAG backend.
"""

from shared.clients.extract.ExtractClientInterface import ExtractClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.validity_policy import apply_validity_policy
from shared.clients.storage.StorageClientInterface import StorageClientInterface
from shared.exceptions import EntitlementDenied, ExtractionFailed, ObjectFetchFailed, PersistenceFailed
from shared.helper.HelperConfig import HelperConfig
from shared.models.ingestion import IngestionEvent, IngestionStatus
from services.ingestion.EmbeddingGenerator import EmbeddingGenerator
from services.ingestion.text_chunker import CHUNK_SIZE, split_text

USER_ID_SEGMENT = 1  # "users/<user_id>/resume.pdf"


def derive_user_id(object_key: str, segment: int = USER_ID_SEGMENT) -> str | None:
    """Derive the record owner from an object key.

    Args:
        object_key (str): Slash-delimited object path (e.g. "users/42/resume.pdf").
        segment (int): Zero-based index of the path component holding the user id.

    Returns:
        str | None: The user id, or None if the component is missing or empty.
    """
    parts = object_key.split("/")
    if segment < 0 or segment >= len(parts):
        return None
    return parts[segment] or None


class IngestionService:
    """Orchestrates the ingestion pipeline for a single storage event."""

    def __init__(
        self,
        helper_config: HelperConfig,
        storage_client: StorageClientInterface,
        extract_client: ExtractClientInterface,
        rag_client: RAGClientInterface,
        embedding_generator: EmbeddingGenerator,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._storage_client = storage_client
        self._extract_client = extract_client
        self._rag_client = rag_client
        self._embedding_generator = embedding_generator

        self._require_premium = helper_config.get_bool_val("INGEST_REQUIRE_PREMIUM", default=True)
        self._user_id_segment = int(helper_config.get_number_val("INGEST_USER_ID_SEGMENT", default=USER_ID_SEGMENT))
        self._chunk_size = int(helper_config.get_number_val("INGEST_CHUNK_SIZE", default=CHUNK_SIZE))
        if self._chunk_size <= 0:
            raise ValueError(f"INGEST_CHUNK_SIZE must be positive, got {self._chunk_size}.")

    ##########################################
    ############### PIPELINE #################
    ##########################################

    async def do_ingest(self, event: IngestionEvent) -> IngestionStatus:
        """Run the pipeline for one event. Never raises.

        Args:
            event (IngestionEvent): The decoded storage notification.

        Returns:
            IngestionStatus: The terminal outcome of the run.
        """
        source = f"{event.container_id}/{event.object_key}"
        try:
            status = await self._run(event)
        except Exception:
            self.logging.exception("Unhandled fault while ingesting '%s'.", source)
            return IngestionStatus.FAILED

        self.logging.info(
            "Ingestion of '%s' finished: %s", source, status.value,
            color="green" if status == IngestionStatus.STORED else None,
        )
        return status

    async def _run(self, event: IngestionEvent) -> IngestionStatus:
        source = f"{event.container_id}/{event.object_key}"

        user_id = derive_user_id(event.object_key, self._user_id_segment)
        if user_id is None:
            self.logging.warning(
                "Cannot derive user id from '%s' (segment %d). Discarding event.", source, self._user_id_segment
            )
            return IngestionStatus.INVALID_OBJECT_KEY

        # metadata + entitlement gate
        try:
            metadata = await self._storage_client.do_fetch_metadata(event.container_id, event.object_key)
        except ObjectFetchFailed as exc:
            self.logging.error("Fetching metadata of '%s' failed: %s", source, exc)
            return IngestionStatus.FETCH_FAILED

        try:
            self._check_entitlement(metadata, source)
        except EntitlementDenied as exc:
            self.logging.info("Skipping '%s': %s", source, exc.message)
            return IngestionStatus.SKIPPED_NOT_PREMIUM

        # content
        try:
            content = await self._storage_client.do_download(event.container_id, event.object_key)
        except ObjectFetchFailed as exc:
            self.logging.error("Downloading '%s' failed: %s", source, exc)
            return IngestionStatus.FETCH_FAILED

        # text
        try:
            document = await self._extract_client.do_extract(content)
        except ExtractionFailed as exc:
            self.logging.error("Extraction of '%s' failed, message discarded: %s", source, exc)
            return IngestionStatus.EXTRACTION_FAILED

        chunks = split_text(document.text, self._chunk_size)
        if not chunks:
            self.logging.info("Skipping '%s': no text extracted, existing record left untouched.", source)
            return IngestionStatus.SKIPPED_NO_TEXT

        embeddings = await self._embedding_generator.do_generate(chunks)

        text_chunks, embeddings = apply_validity_policy(
            self._rag_client.validity_policy,
            [chunk.content for chunk in chunks],
            embeddings,
        )

        try:
            if not text_chunks:
                # strict policy: no stale record survives a run without usable embeddings
                await self._rag_client.do_delete_all(user_id)
                self.logging.warning(
                    "No valid embeddings for '%s' (%d chunks). Record of user_id=%s removed.",
                    source, len(chunks), user_id,
                )
                return IngestionStatus.CLEARED_NO_VALID_EMBEDDINGS

            await self._rag_client.do_replace(user_id, text_chunks, embeddings, source_key=event.object_key)
        except PersistenceFailed as exc:
            self.logging.error("Persisting record of user_id=%s failed: %s", user_id, exc)
            return IngestionStatus.PERSISTENCE_FAILED

        dropped = len(chunks) - len(text_chunks)
        self.logging.info(
            "Stored record for user_id=%s: %d chunks (%d dropped, policy %s).",
            user_id, len(text_chunks), dropped, self._rag_client.validity_policy.value,
        )
        return IngestionStatus.STORED

    ##########################################
    ################ HELPERS #################
    ##########################################

    def _check_entitlement(self, metadata: dict[str, str], source: str) -> None:
        """Raise EntitlementDenied unless the object may be processed.

        Raises:
            EntitlementDenied: If the gate is enabled and the object is not premium.
        """
        if not self._require_premium:
            return
        if not self._storage_client.is_premium(metadata):
            raise EntitlementDenied(
                "object is not marked premium",
                {"source": source, "premium": metadata.get("premium")},
            )
