from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface):
    """Self-hosted embeddings through Ollama's /api/embed."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        # over-long chunks are cut to the model context instead of failing
        self._truncate = self.get_config_val("TRUNCATE", default=True, val_type="bool")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="TRUNCATE", val_type="bool", default=True),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        # plain Ollama has no auth, a reverse proxy in front of it may
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str | None:
        # "Ollama is running"
        return "/"

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, text: str) -> dict:
        return {"model": self.embed_model, "input": [text], "truncate": self._truncate}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embedding_from_response(self, response_data: dict) -> list:
        vectors = response_data.get("embeddings") or []
        if not vectors:
            raise ValueError(f"Ollama answered without embeddings (keys: {sorted(response_data)})")
        return vectors[0]
