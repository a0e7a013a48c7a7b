import base64

from shared.clients.extract.ExtractClientInterface import ExtractClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ExtractClientDocumentai(ExtractClientInterface):
    """Google Document AI processor via the REST API."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._project_id = self.get_config_val("PROJECT_ID", default=None, val_type="string")
        self._location = self.get_config_val("LOCATION", default=None, val_type="string")
        self._processor_id = self.get_config_val("PROCESSOR_ID", default=None, val_type="string")
        self._base_url = self.get_config_val(
            "BASE_URL", default=f"https://{self._location}-documentai.googleapis.com", val_type="string"
        )
        self._access_token = self.get_config_val("ACCESS_TOKEN", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Documentai"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="PROJECT_ID", val_type="string", default=None),
            EnvConfig(env_key="LOCATION", val_type="string", default=None),
            EnvConfig(env_key="PROCESSOR_ID", val_type="string", default=None),
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

    def _get_processor_name(self) -> str:
        return f"projects/{self._project_id}/locations/{self._location}/processors/{self._processor_id}"

    def _get_endpoint_healthcheck(self) -> str | None:
        # processor resource lookup
        return f"/v1/{self._get_processor_name()}"

    def _get_endpoint_process(self) -> str:
        return f"/v1/{self._get_processor_name()}:process"

    ################ PAYLOAD BUILDER ##################
    def get_process_payload(self, content: bytes, mime_type: str) -> dict:
        return {
            "rawDocument": {
                "content": base64.b64encode(content).decode("ascii"),
                "mimeType": mime_type,
            }
        }

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_text_from_response(self, response_data: dict) -> str:
        document = response_data.get("document") or {}
        return document.get("text") or ""
