from abc import abstractmethod
import json
import uuid
import time

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.Scroll import ScrollResult
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.exceptions import ClientRequestError, PersistenceFailed
from shared.helper.HelperConfig import HelperConfig
from shared.models.ingestion import IngestionRecord, ValidityPolicy


def make_point_id(user_id: str, run_id: str, chunk_index: int) -> str:
    """Build a deterministic UUID5 point ID for a record chunk.

    Points of different inserts never share an ID, so an insert racing
    another one for the same user cannot overwrite part of it.

    Args:
        user_id (str): Owner of the record.
        run_id (str): The insert the chunk belongs to.
        chunk_index (int): Zero-based chunk index within the record.

    Returns:
        str: UUID string usable as a point ID.
    """
    return str(uuid.uuid5(uuid.NAMESPACE_OID, f"{user_id}:{run_id}:{chunk_index}"))


def select_newest_run(points: list[dict]) -> list[dict]:
    """Keep only the points written by the newest insert, in chunk order.

    Two unserialized replaces for one user can leave the points of both
    inserts behind; each insert is complete on its own, so reading one run
    never mixes documents.
    """
    if not points:
        return []

    def run_key(point: dict) -> tuple[int, str]:
        payload = point.get("payload") or {}
        return payload.get("inserted_at", 0), payload.get("run_id", "")

    newest = max(run_key(point) for point in points)
    kept = [point for point in points if run_key(point) == newest]
    return sorted(kept, key=lambda point: (point.get("payload") or {}).get("chunk_index", 0))


class RAGClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # collection and persistence policy
        self.vector_size = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_VECTOR_SIZE", default=1536))
        self.distance = helper_config.get_string_val(f"{self.get_client_type().upper()}_DISTANCE", default="Cosine")
        self.validity_policy = ValidityPolicy(
            helper_config.get_choice_val(
                f"{self.get_client_type().upper()}_VALIDITY_POLICY",
                choices=[policy.value for policy in ValidityPolicy],
                default=ValidityPolicy.STRICT.value,
            )
        )
        self._last_insert_stamp = 0

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "rag"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_scroll(self) -> str:
        """
        Returns the endpoint path for scroll requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_points(self) -> str:
        """
        Returns the endpoint path for points upsert requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self) -> str:
        """
        Returns the endpoint path for deleting points by filter.
        """
        pass

    @abstractmethod
    def _get_endpoint_check_collection_existence(self) -> str:
        """
        Returns the endpoint path for collection existence check requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_create_collection(self) -> str:
        """
        Returns the endpoint path for create collection requests.
        """
        pass

    @abstractmethod
    def _get_endpoint_create_index(self) -> str:
        """
        Returns the endpoint path for creating a payload index.
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_user_filter(self, user_id: str) -> dict:
        """
        Builds the backend-specific filter selecting all points of one user.

        Args:
            user_id (str): The record owner.

        Returns:
            dict: The filter.
        """
        pass

    @abstractmethod
    def get_create_collection_payload(self) -> dict:
        """
        Builds the payload for creating the collection with the configured vector size.
        """
        pass

    @abstractmethod
    def get_create_index_payload(self) -> dict:
        """
        Builds the payload for indexing the user_id payload field.
        """
        pass

    @abstractmethod
    def get_point(self, point_id: str, vector: list[float], payload: VectorPoint) -> dict:
        """
        Builds a single backend-specific point.

        Args:
            point_id (str): The point ID.
            vector (list[float]): The embedding, possibly the empty invalid marker.
            payload (VectorPoint): The chunk metadata.

        Returns:
            dict: The point ready to be upserted.
        """
        pass

    @abstractmethod
    def get_scroll_payload(self, filter: dict, limit: int, offset: str | None = None) -> dict:
        """
        Returns the payload for a scroll request including payloads and vectors.

        Args:
            filter (dict): The filter to apply.
            limit (int): The maximum number of points per page.
            offset (str | None): Pagination cursor returned by the previous page.
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_scroll_content(self, raw_response: dict) -> dict:
        """
        Extracts the relevant content from a raw scroll response.

        Returns:
            dict: A dict with keys "result", "status", "time".
        """
        pass

    @abstractmethod
    def extract_next_page_offset(self, raw_response: dict) -> str | None:
        """
        Extracts the pagination cursor for the next scroll page, None on the last page.
        """
        pass

    @abstractmethod
    def extract_vector_from_point(self, point: dict) -> list[float]:
        """
        Extracts the embedding from a scrolled point, the empty invalid marker if it has none.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    def _next_insert_stamp(self) -> int:
        """Nanosecond stamp for a new insert, strictly increasing within this client."""
        self._last_insert_stamp = max(time.time_ns(), self._last_insert_stamp + 1)
        return self._last_insert_stamp

    async def _do_store_request(self, action: str, user_id: str | None = None, **kwargs) -> httpx.Response:
        """Send a request to the store and translate failures into PersistenceFailed."""
        try:
            return await self.do_request(raise_on_error=True, **kwargs)
        except ClientRequestError as exc:
            raise PersistenceFailed(
                f"Store {action} failed with status {exc.status_code}",
                {**exc.details, "user_id": user_id},
            ) from exc
        except httpx.HTTPError as exc:
            raise PersistenceFailed(f"Store unreachable during {action}: {exc}", {"user_id": user_id}) from exc

    async def do_existence_check(self) -> bool:
        """Check if the collection exists in the rag backend.

        Returns:
            bool: True if the collection exists, False otherwise.
        """
        resp = await self._do_store_request("existence check", method="GET", endpoint=self._get_endpoint_check_collection_existence())
        return bool(resp.json().get("result", {}).get("exists"))

    async def do_create_collection(self) -> None:
        """Create the collection and index the user_id payload field."""
        await self._do_store_request(
            "create collection",
            method="PUT",
            json=self.get_create_collection_payload(),
            endpoint=self._get_endpoint_create_collection(),
        )
        await self._do_store_request(
            "create index",
            method="PUT",
            json=self.get_create_index_payload(),
            endpoint=self._get_endpoint_create_index(),
        )
        self.logging.info(
            "Created collection on %s (vector size %d, %s).", self.get_engine_name(), self.vector_size, self.distance
        )

    async def do_delete_all(self, user_id: str) -> None:
        """Delete every point belonging to a user.

        Args:
            user_id (str): The record owner.

        Raises:
            PersistenceFailed: If the backend rejects the delete.
        """
        await self._do_store_request(
            "delete",
            user_id=user_id,
            method="POST",
            content=json.dumps({"filter": self.get_user_filter(user_id)}),
            endpoint=self._get_endpoint_delete_points(),
            params={"wait": "true"},
            additional_headers={"Content-Type": "application/json"},
        )
        self.logging.debug("Deleted existing record for user_id=%s", user_id)

    async def do_insert(
        self,
        user_id: str,
        text_chunks: list[str],
        embeddings: list[list[float]],
        source_key: str | None = None,
    ) -> None:
        """Insert a user's record as a single upsert request.

        Args:
            user_id (str): The record owner.
            text_chunks (list[str]): Chunk texts in order.
            embeddings (list[list[float]]): Embeddings aligned with text_chunks.
            source_key (str | None): Object key the record was ingested from.

        Raises:
            ValueError: If chunks and embeddings are not aligned.
            PersistenceFailed: If the backend rejects the insert.
        """
        if len(text_chunks) != len(embeddings):
            raise ValueError(
                f"Chunks and embeddings are not aligned: {len(text_chunks)} != {len(embeddings)}"
            )
        if not text_chunks:
            self.logging.debug("Nothing to insert for user_id=%s", user_id)
            return

        run_id = uuid.uuid4().hex
        inserted_at = self._next_insert_stamp()
        points = [
            self.get_point(
                point_id=make_point_id(user_id, run_id, chunk_index),
                vector=vector,
                payload=VectorPoint(
                    user_id=user_id,
                    chunk_index=chunk_index,
                    chunk_text=chunk,
                    source_key=source_key,
                    run_id=run_id,
                    inserted_at=inserted_at,
                ),
            )
            for chunk_index, (chunk, vector) in enumerate(zip(text_chunks, embeddings))
        ]
        await self._do_store_request(
            "insert",
            user_id=user_id,
            method="PUT",
            content=json.dumps({"points": points}),
            endpoint=self._get_endpoint_points(),
            params={"wait": "true"},
            additional_headers={"Content-Type": "application/json"},
        )

    async def do_replace(
        self,
        user_id: str,
        text_chunks: list[str],
        embeddings: list[list[float]],
        source_key: str | None = None,
    ) -> None:
        """Replace a user's record: delete everything stored for the user, then insert.

        The two calls are not transactional; a failure in between leaves the
        user without a record until the next successful run.

        Raises:
            PersistenceFailed: If the delete or the insert fails.
        """
        await self.do_delete_all(user_id)
        await self.do_insert(user_id, text_chunks, embeddings, source_key=source_key)

    async def do_scroll(self, filter: dict, limit: int = 256, offset: str | None = None) -> ScrollResult:
        """Scroll a single page of points matching the filter.

        Returns:
            ScrollResult: The page, including next_page_offset when more pages exist.
        """
        resp = await self._do_store_request(
            "scroll",
            method="POST",
            content=json.dumps(self.get_scroll_payload(filter, limit, offset)),
            endpoint=self._get_endpoint_scroll(),
            additional_headers={"Content-Type": "application/json"},
        )
        raw_response = resp.json()
        scroll_content = self.extract_scroll_content(raw_response=raw_response)
        return ScrollResult(
            result=scroll_content.get("result", []),
            status=scroll_content.get("status", "ok"),
            time=scroll_content.get("time", 0),
            next_page_offset=self.extract_next_page_offset(raw_response),
        )

    async def do_fetch_record(self, user_id: str) -> IngestionRecord | None:
        """Read a user's record back, chunks in their original order.

        Args:
            user_id (str): The record owner.

        Returns:
            IngestionRecord | None: The record, or None if the user has none.
        """
        points: list[dict] = []
        offset: str | None = None
        while True:
            page = await self.do_scroll(self.get_user_filter(user_id), offset=offset)
            points.extend(page.result)
            offset = page.next_page_offset
            if not offset:
                break

        points = select_newest_run(points)
        if not points:
            return None

        return IngestionRecord(
            user_id=user_id,
            text_chunks=[(point.get("payload") or {}).get("chunk_text", "") for point in points],
            embeddings=[self.extract_vector_from_point(point) for point in points],
        )
