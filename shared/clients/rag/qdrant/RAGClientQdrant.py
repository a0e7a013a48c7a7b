from urllib.parse import quote

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

VECTOR_NAME = "embedding"


class RAGClientQdrant(RAGClientInterface):
    """Qdrant REST API. One point per chunk, all points of a user share payload.user_id."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"api-key": self._api_key} if self._api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _collection_path(self, suffix: str = "") -> str:
        return f"/collections/{quote(self._collection_name, safe='')}{suffix}"

    def _get_endpoint_healthcheck(self) -> str | None:
        return "/healthz"

    def _get_endpoint_scroll(self) -> str:
        return self._collection_path("/points/scroll")

    def _get_endpoint_points(self) -> str:
        return self._collection_path("/points")

    def _get_endpoint_delete_points(self) -> str:
        return self._collection_path("/points/delete")

    def _get_endpoint_check_collection_existence(self) -> str:
        return self._collection_path("/exists")

    def _get_endpoint_create_collection(self) -> str:
        return self._collection_path()

    def _get_endpoint_create_index(self) -> str:
        return self._collection_path("/index")

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_user_filter(self, user_id: str) -> dict:
        return {"must": [{"key": "user_id", "match": {"value": user_id}}]}

    def get_create_collection_payload(self) -> dict:
        # named vector: points may omit it, which is how invalid markers are stored
        return {"vectors": {VECTOR_NAME: {"size": self.vector_size, "distance": self.distance}}}

    def get_create_index_payload(self) -> dict:
        return {"field_name": "user_id", "field_schema": "keyword"}

    def get_point(self, point_id: str, vector: list[float], payload: VectorPoint) -> dict:
        return {
            "id": point_id,
            "vector": {VECTOR_NAME: vector} if vector else {},
            "payload": payload.model_dump(),
        }

    def get_scroll_payload(self, filter: dict, limit: int, offset: str | None = None) -> dict:
        body = {"filter": filter, "limit": limit, "with_payload": True, "with_vector": [VECTOR_NAME]}
        if offset is not None:
            body["offset"] = offset
        return body

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_scroll_content(self, raw_response: dict) -> dict:
        page = raw_response.get("result") or {}
        return {
            "result": page.get("points") or [],
            "status": raw_response.get("status", "ok"),
            "time": raw_response.get("time", 0),
        }

    def extract_next_page_offset(self, raw_response: dict) -> str | None:
        return (raw_response.get("result") or {}).get("next_page_offset")

    def extract_vector_from_point(self, point: dict) -> list[float]:
        stored = point.get("vector") or {}
        # unnamed vectors come back as a plain list
        if isinstance(stored, list):
            return stored
        return stored.get(VECTOR_NAME) or []
