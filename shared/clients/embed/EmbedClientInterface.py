from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions import ClientRequestError, EmbeddingFailed
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=None)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, text: str) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            text (str): The text to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": "..."}).
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embedding_from_response(self, response_data: dict) -> list:
        """Extract the embedding vector from a raw embedding API response.

        Response format differs by backend:
        - Ollama /api/embed: {"embeddings": [[...]]}
        - OpenAI-compatible: {"data": [{"embedding": [...], "index": 0}]}

        The values are returned as delivered; validation happens in the caller.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list: The raw embedding values.

        Raises:
            ValueError: If the response does not contain an embedding at all.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, text: str) -> list:
        """Send an embedding request for a single text and return its vector.

        Args:
            text (str): The text to embed.

        Returns:
            list: The embedding values as returned by the backend.

        Raises:
            EmbeddingFailed: If the request fails or the response carries no embedding.
        """
        try:
            response = await self.do_request(
                method="POST",
                endpoint=self.get_endpoint_embedding(),
                json=self.get_embed_payload(text),
                raise_on_error=True,
            )
            return self.extract_embedding_from_response(response.json())
        except ClientRequestError as exc:
            raise EmbeddingFailed(
                f"Embedding request failed with status {exc.status_code}", exc.details
            ) from exc
        except httpx.HTTPError as exc:
            raise EmbeddingFailed(f"Embedding service unreachable: {exc}") from exc
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
            raise EmbeddingFailed(f"Embedding response is invalid: {exc}") from exc
