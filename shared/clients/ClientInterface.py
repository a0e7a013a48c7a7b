from abc import ABC, abstractmethod
from typing import Any

import httpx
from httpx._types import QueryParamTypes, RequestContent

from shared.exceptions import ClientRequestError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    """Base class of every outbound HTTP client (storage, extract, embed, rag).

    A concrete client is named <Type>Client<Engine> and reads its settings from
    <TYPE>_<ENGINE>_<KEY> variables. All required settings are checked in the
    constructor, so a misconfigured engine fails at startup instead of on the
    first ingestion. The underlying httpx.AsyncClient exists between boot() and close().
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(
            f"{self.get_client_type().upper()}_TIMEOUT", default=self._get_default_timeout()
        )
        self._client: httpx.AsyncClient | None = None

        for setting in self._get_required_config():
            self.get_config_val(raw_key=setting.env_key, default=setting.default, val_type=setting.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """The client family, e.g. "storage". Also the package name under shared.clients."""
        pass

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """The backend implementing the family, e.g. "Gcs"."""
        pass

    def _get_default_timeout(self) -> float:
        """Request timeout in seconds when <TYPE>_TIMEOUT is unset."""
        return 30.0

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """The engine settings to validate on construction."""
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        """Full variable name for an engine setting, e.g. "BASE_URL" -> "RAG_QDRANT_BASE_URL"."""
        return "_".join((self.get_client_type(), self.get_engine_name(), raw_key)).upper()

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """Read an engine setting.

        Args:
            raw_key (str): The setting without prefix, e.g. "API_KEY".
            default (Any): Fallback if unset; None makes the setting mandatory.
            val_type (str): "string", "number" or "bool".

        Raises:
            ValueError: If a mandatory setting is missing or the type is unknown.
        """
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
        }
        if val_type not in readers:
            raise ValueError(
                f"Unsupported value type '{val_type}' for setting '{raw_key}' of "
                f"{self.get_client_type()} client '{self.get_engine_name()}'."
            )
        return readers[val_type](self._get_config_key_name(raw_key), default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Headers carrying the credential, empty if the backend needs none."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """Scheme and host of the backend, e.g. "http://localhost:6333"."""
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str | None:
        """Path of a cheap GET probe, or None if the backend has none."""
        pass

    def _build_url(self, endpoint: str) -> str:
        path = endpoint.strip().lstrip("/")
        base = self._get_base_url().rstrip("/")
        return f"{base}/{path}" if path else base

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Open the HTTP client. Tests pass an httpx.MockTransport as transport."""
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> bool:
        """Probe the backend.

        Returns:
            bool: True on a 2xx answer or if there is nothing to probe, False otherwise.
        """
        endpoint = self._get_endpoint_healthcheck()
        if endpoint is None:
            self.logging.debug("%s client '%s' has no healthcheck, assuming healthy.", self.get_client_type(), self.get_engine_name())
            return True
        try:
            response = await self.do_request(method="GET", endpoint=endpoint)
        except httpx.HTTPError as exc:
            self.logging.warning("Healthcheck of %s client '%s' failed: %s", self.get_client_type(), self.get_engine_name(), exc)
            return False
        return response.is_success

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send one request to the backend with the client's auth headers.

        content takes precedence over json; raw content needs its Content-Type in
        additional_headers.

        Raises:
            RuntimeError: If boot() has not been called.
            ClientRequestError: On a non-2xx status when raise_on_error is set.
            httpx.HTTPError: On transport failures (connect errors, timeouts).
        """
        if self._client is None:
            raise RuntimeError(
                f"{self.get_client_type()} client '{self.get_engine_name()}' is not booted. Call boot() first."
            )

        url = self._build_url(endpoint)
        headers = {**self._get_auth_header(), **(additional_headers or {})}
        body: dict = {}
        if content is not None:
            body["content"] = content
        elif json is not None:
            body["json"] = json

        response = await self._client.request(method, url, headers=headers, params=params, **body)

        if raise_on_error and not response.is_success:
            self.logging.error("%s %s answered %d: %s", method, url, response.status_code, response.text[:200])
            raise ClientRequestError(url, response.status_code, response.text)
        return response
