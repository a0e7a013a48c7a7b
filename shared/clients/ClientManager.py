from abc import ABC, abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class ClientManager(ABC):
    """
    Base manager that instantiates the client of one type based on configuration.

    The engine is read from <TYPE>_ENGINE and resolved to the class
    <Prefix><Engine> in the module shared.clients.<type>.<engine>.<Prefix><Engine>,
    e.g. EMBED_ENGINE=openai -> shared.clients.embed.openai.EmbedClientOpenai.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the client type, which is also the package name under shared.clients. E.g. "embed"
        """
        pass

    @abstractmethod
    def _get_class_prefix(self) -> str:
        """
        Returns the class name prefix of the clients of this type. E.g. "EmbedClient"
        """
        pass

    def _get_default_engine(self) -> str | None:
        """
        Returns the engine used when <TYPE>_ENGINE is not set. None makes the setting mandatory.
        """
        return None

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine from ENV configuration.

        Returns:
            str: The name of the engine, capitalized (e.g. "Openai").

        Raises:
            ValueError: If no engine is specified in the configuration.
        """
        engine = self.helper_config.get_string_val(
            f"{self._get_client_type().upper()}_ENGINE", default=self._get_default_engine()
        )
        if not engine or not engine.strip():
            raise ValueError(f"No {self._get_client_type()} engine specified in configuration.")

        #lowercase all and uppcercase first letter for better comparison and display
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientInterface:
        """
        Initializes the client based on the engine specified in the configuration.

        Returns:
            ClientInterface: An instance of the configured client.

        Raises:
            ValueError: If the engine is unsupported.
        """
        engine = self._get_engine_from_env()
        class_name = f"{self._get_class_prefix()}{engine}"
        try:
            module = __import__(
                f"shared.clients.{self._get_client_type()}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {self._get_client_type()} engine specified: '{engine}'. Error: {e}")

        client = client_class(helper_config=self.helper_config)
        self.logging.debug("Instantiated %s client for engine: %s", self._get_client_type(), engine)
        return client

    def get_client(self) -> ClientInterface:
        """
        Returns the instantiated client.
        """
        return self.client
