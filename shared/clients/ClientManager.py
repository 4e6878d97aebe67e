from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class ClientManager:
    """Resolves the engine configured for one client type and instantiates it.

    Engines live in ``shared/clients/{client_type}/{engine}/{ClassPrefix}{Engine}.py``,
    e.g. LLM_ENGINE=openrouter resolves to ``shared.clients.llm.openrouter.LLMClientOpenrouter``.
    Subclasses only declare where to look.
    """

    client_type: str = ""
    class_prefix: str = ""
    default_engine: str | None = None

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        env_key = f"{self.client_type.upper()}_ENGINE"
        engine = self.helper_config.get_string_val(env_key, default=self.default_engine)
        if not engine or not engine.strip():
            raise ValueError(f"No {self.client_type} engine specified in configuration ({env_key}).")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> ClientInterface:
        engine = self._get_engine_from_env()
        class_name = f"{self.class_prefix}{engine}"
        module_path = f"shared.clients.{self.client_type}.{engine.lower()}.{class_name}"
        try:
            module = __import__(module_path, fromlist=[class_name])
            client = getattr(module, class_name)(helper_config=self.helper_config)
        except (ImportError, AttributeError) as e:
            raise ValueError("Unsupported %s engine '%s' (%s). Error: %s" % (self.client_type, engine, module_path, e))
        self.logging.debug("Instantiated %s client for engine: %s", self.client_type, engine)
        return client

    def get_client(self) -> ClientInterface:
        return self.client
