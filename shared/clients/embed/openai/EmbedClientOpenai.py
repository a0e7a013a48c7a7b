from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOpenai(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.openai.com", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openai"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.openai.com"),
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str | None:
        return "/v1/models"

    def get_endpoint_embedding(self) -> str:
        return "/v1/embeddings"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, text: str) -> dict:
        return {"model": self.embed_model, "input": text}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embedding_from_response(self, response_data: dict) -> list:
        data = response_data.get("data")
        if not data:
            raise ValueError(
                f"OpenAI response does not contain data. Response keys: {list(response_data.keys())}"
            )
        # single input, but the API still answers with an indexed list
        first = sorted(data, key=lambda item: item.get("index", 0))[0]
        return first["embedding"]
