from shared.clients.ClientManager import ClientManager
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface


class EmbedClientManager(ClientManager):
    """
    Manager class to handle the Embed client based on configuration.
    """

    def _get_client_type(self) -> str:
        return "embed"

    def _get_class_prefix(self) -> str:
        return "EmbedClient"

    def get_client(self) -> EmbedClientInterface:
        """
        Returns the instantiated Embed client.

        Returns:
            EmbedClientInterface: The Embed client instance.
        """
        return self.client
