from urllib.parse import quote

from shared.clients.storage.StorageClientInterface import StorageClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class StorageClientGcs(StorageClientInterface):
    """Google Cloud Storage via the JSON API."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://storage.googleapis.com", val_type="string")
        self._access_token = self.get_config_val("ACCESS_TOKEN", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Gcs"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://storage.googleapis.com"),
            EnvConfig(env_key="ACCESS_TOKEN", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._access_token:
            return {"Authorization": f"Bearer {self._access_token}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str | None:
        # the JSON API has no unauthenticated probe that is independent of a bucket
        return None

    def _get_endpoint_object(self, container_id: str, object_key: str) -> str:
        # object names must be fully percent-encoded, including slashes
        return f"/storage/v1/b/{quote(container_id, safe='')}/o/{quote(object_key, safe='')}"

    def get_download_params(self) -> dict:
        return {"alt": "media"}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_metadata_from_response(self, response_data: dict) -> dict[str, str]:
        metadata = response_data.get("metadata") or {}
        return {str(key): str(value) for key, value in metadata.items()}
