from shared.clients.ClientManager import ClientManager
from shared.clients.extract.ExtractClientInterface import ExtractClientInterface


class ExtractClientManager(ClientManager):
    """
    Manager class to handle the document extraction client based on configuration.
    """

    def _get_client_type(self) -> str:
        return "extract"

    def _get_class_prefix(self) -> str:
        return "ExtractClient"

    def _get_default_engine(self) -> str | None:
        return "documentai"

    def get_client(self) -> ExtractClientInterface:
        """
        Returns the instantiated extraction client.

        Returns:
            ExtractClientInterface: The extraction client instance.
        """
        return self.client
