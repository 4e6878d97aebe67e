import httpx

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOpenrouter(LLMClientInterface):
    """OpenRouter (OpenAI-compatible chat completions)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://openrouter.ai/api/v1", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "OpenRouter"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://openrouter.ai/api/v1"),
            EnvConfig(env_key="MAX_TOKENS", val_type="number", default=2000),
            EnvConfig(env_key="TEMPERATURE", val_type="number", default=0.7),
        ]

    ################ AUTH ##################
    def _get_api_key_header(self, api_key: str) -> dict:
        return {"Authorization": f"Bearer {api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/models"

    def _get_endpoint_chat(self) -> str:
        return "/chat/completions"

    def _get_endpoint_key_info(self) -> str:
        return "/auth/key"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict], model: str, max_tokens: int, temperature: float) -> dict:
        return {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_response(self, response_data: dict) -> str:
        """Extract the reply from {"choices": [{"message": {"content": "..."}}]}.

        Raises:
            ValueError: If the response does not contain a message.
        """
        choices = response_data.get("choices") or []
        content = choices[0].get("message", {}).get("content") if choices else None
        if content is None:
            raise ValueError(
                "OpenRouter chat response does not contain a valid message. "
                "Response keys: %s" % list(response_data.keys())
            )
        return content

    def extract_error_message(self, response: httpx.Response) -> str:
        """OpenRouter errors look like {"error": {"message": "...", "code": 401}}."""
        try:
            data = response.json()
        except ValueError:
            return response.text[:200] or response.reason_phrase
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return response.reason_phrase or response.text[:200]
