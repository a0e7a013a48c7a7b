from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions import ClientRequestError, ObjectNotFound, ObjectStoreUnavailable
from shared.helper.HelperConfig import HelperConfig


class StorageClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "storage"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_object(self, container_id: str, object_key: str) -> str:
        """
        Returns the endpoint path of a single object.

        Args:
            container_id (str): The bucket / container name.
            object_key (str): The object path inside the container.

        Returns:
            str: The endpoint path (e.g. "/storage/v1/b/my-bucket/o/users%2F42%2Fresume.pdf")
        """
        pass

    @abstractmethod
    def get_download_params(self) -> dict:
        """
        Returns the query parameters that switch the object endpoint to content download.

        Returns:
            dict: Query parameters (e.g. {"alt": "media"})
        """
        pass

    ################ RESPONSE PARSER ##################
    @abstractmethod
    def extract_metadata_from_response(self, response_data: dict) -> dict[str, str]:
        """
        Extracts the custom metadata mapping from an object resource response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            dict[str, str]: The metadata mapping, empty if the object has none.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @staticmethod
    def is_premium(metadata: dict[str, str]) -> bool:
        """Evaluate the entitlement flag of an object's metadata.

        Args:
            metadata (dict[str, str]): The object metadata.

        Returns:
            bool: True only if metadata["premium"] is exactly "true".
        """
        return metadata.get("premium") == "true"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _do_object_request(self, container_id: str, object_key: str, params: dict | None = None) -> httpx.Response:
        """Request an object resource and translate failures into storage errors.

        Raises:
            ObjectNotFound: If the backend answers with 404.
            ObjectStoreUnavailable: On any other error status or transport failure.
        """
        try:
            return await self.do_request(
                method="GET",
                endpoint=self._get_endpoint_object(container_id, object_key),
                params=params,
                raise_on_error=True,
            )
        except ClientRequestError as exc:
            if exc.status_code == 404:
                raise ObjectNotFound(container_id, object_key) from exc
            raise ObjectStoreUnavailable(
                f"Object store answered with status {exc.status_code} for {container_id}/{object_key}",
                exc.details,
            ) from exc
        except httpx.HTTPError as exc:
            raise ObjectStoreUnavailable(
                f"Object store unreachable for {container_id}/{object_key}: {exc}"
            ) from exc

    async def do_fetch_metadata(self, container_id: str, object_key: str) -> dict[str, str]:
        """Fetch the custom metadata of an object.

        Args:
            container_id (str): The bucket / container name.
            object_key (str): The object path.

        Returns:
            dict[str, str]: The metadata mapping.

        Raises:
            ObjectNotFound: If the object does not exist.
            ObjectStoreUnavailable: If the store cannot be reached or the response is invalid.
        """
        response = await self._do_object_request(container_id, object_key)
        try:
            response_data = response.json()
        except ValueError as exc:
            raise ObjectStoreUnavailable(
                f"Object store returned invalid metadata for {container_id}/{object_key}"
            ) from exc
        return self.extract_metadata_from_response(response_data)

    async def do_download(self, container_id: str, object_key: str) -> bytes:
        """Download the binary content of an object.

        Args:
            container_id (str): The bucket / container name.
            object_key (str): The object path.

        Returns:
            bytes: The raw object content.

        Raises:
            ObjectNotFound: If the object does not exist.
            ObjectStoreUnavailable: If the store cannot be reached.
        """
        response = await self._do_object_request(container_id, object_key, params=self.get_download_params())
        self.logging.debug("Downloaded %d bytes from %s/%s", len(response.content), container_id, object_key)
        return response.content
