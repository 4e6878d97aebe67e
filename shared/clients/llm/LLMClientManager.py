from shared.clients.ClientManager import ClientManager
from shared.clients.llm.LLMClientInterface import LLMClientInterface


class LLMClientManager(ClientManager):
    """Instantiates the language-model client selected by LLM_ENGINE (default: openrouter)."""

    client_type = "llm"
    class_prefix = "LLMClient"
    default_engine = "openrouter"

    def get_client(self) -> LLMClientInterface:
        return self.client
