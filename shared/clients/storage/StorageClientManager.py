from shared.clients.ClientManager import ClientManager
from shared.clients.storage.StorageClientInterface import StorageClientInterface


class StorageClientManager(ClientManager):
    """
    Manager class to handle the object store client based on configuration.
    """

    def _get_client_type(self) -> str:
        return "storage"

    def _get_class_prefix(self) -> str:
        return "StorageClient"

    def _get_default_engine(self) -> str | None:
        return "gcs"

    def get_client(self) -> StorageClientInterface:
        """
        Returns the instantiated storage client.

        Returns:
            StorageClientInterface: The storage client instance.
        """
        return self.client
