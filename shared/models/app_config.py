"""Pydantic models for the singleton application configuration."""

from pydantic import BaseModel


class AppConfigBase(BaseModel):
    """Fields an operator can change. Field names match the storage columns."""

    open_router_api_key: str = ""
    selected_model: str
    system_prompt: str
    evolution_api_url: str = ""
    evolution_api_key: str = ""


class AppConfig(AppConfigBase):
    """The stored configuration row (or the env-derived defaults when none is stored)."""

    persisted: bool = False

    def has_llm_api_key(self) -> bool:
        return bool(self.open_router_api_key and self.open_router_api_key.strip())

    def has_gateway_credentials(self) -> bool:
        return bool(self.evolution_api_url and self.evolution_api_key)


class AppConfigUpdate(AppConfigBase):
    """Wholesale replacement payload for POST /api/config."""


class ModelInfo(BaseModel):
    id: str
    name: str
    provider: str
    context_length: int


AVAILABLE_MODELS: list[ModelInfo] = [
    ModelInfo(id="openai/gpt-4", name="GPT-4", provider="OpenAI", context_length=8192),
    ModelInfo(id="openai/gpt-3.5-turbo", name="GPT-3.5 Turbo", provider="OpenAI", context_length=4096),
    ModelInfo(id="anthropic/claude-2", name="Claude 2", provider="Anthropic", context_length=100000),
    ModelInfo(id="meta-llama/llama-2-70b-chat", name="Llama 2 70B", provider="Meta", context_length=4096),
    ModelInfo(id="google/palm-2-chat-bison", name="PaLM 2 Chat", provider="Google", context_length=4096),
]
