from abc import abstractmethod

import httpx
from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import ConfigurationError, LLMUpstreamError


class LLMClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # completion defaults, overridable per call
        self.max_tokens = int(self.get_config_val("MAX_TOKENS", default=2000, val_type="number"))
        self.temperature = float(self.get_config_val("TEMPERATURE", default=0.7, val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        # the API key lives in the app configuration and is passed per call
        return {}

    @abstractmethod
    def _get_api_key_header(self, api_key: str) -> dict:
        """Returns the header carrying ``api_key`` (e.g. {"Authorization": "Bearer ..."})."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/chat/completions")."""
        pass

    @abstractmethod
    def _get_endpoint_key_info(self) -> str:
        """Returns the endpoint path that describes an API key (e.g. "/auth/key")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, messages: list[dict], model: str, max_tokens: int, temperature: float) -> dict:
        """Build the backend-specific request body for a chat/completion request.

        Args:
            messages (list[dict]): OpenAI-format messages
                (e.g. [{"role": "system", "content": "..."}, {"role": "user", "content": "..."}]).
            model (str): Model identifier.
            max_tokens (int): Upper bound on generated tokens.
            temperature (float): Sampling temperature.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str:
        """Extract the assistant reply text from a raw chat API response.

        Raises:
            ValueError: If the response does not contain a reply.
        """
        pass

    @abstractmethod
    def extract_error_message(self, response: httpx.Response) -> str:
        """Extract a human-readable error message from a non-success response."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_complete(
        self,
        system_content: str,
        user_content: str,
        model: str,
        api_key: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Send one system + user exchange and return the assistant reply text.

        Args:
            system_content (str): Composed prompt (system role).
            user_content (str): Raw user question (user role).
            model (str): Model identifier.
            api_key (str): Key for the language-model API.
            max_tokens (int | None): Defaults to the configured MAX_TOKENS.
            temperature (float | None): Defaults to the configured TEMPERATURE.

        Returns:
            str: The assistant reply text.

        Raises:
            ConfigurationError: If no API key is given.
            LLMUpstreamError: On transport failure, non-success status or an unreadable reply.
        """
        if not api_key:
            raise ConfigurationError("Language model API key is not configured.")

        messages = [
            {"role": "system", "content": system_content},
            {"role": "user", "content": user_content},
        ]
        body = self.get_chat_payload(
            messages=messages,
            model=model,
            max_tokens=max_tokens if max_tokens is not None else self.max_tokens,
            temperature=temperature if temperature is not None else self.temperature,
        )

        try:
            response = await self.do_request(
                method="POST",
                endpoint=self._get_endpoint_chat(),
                json=body,
                additional_headers=self._get_api_key_header(api_key),
            )
        except httpx.HTTPError as e:
            self.logging.error("Language model request failed: %s", e)
            raise LLMUpstreamError(502, f"{type(e).__name__}: {e}")

        if not response.is_success:
            message = self.extract_error_message(response)
            self.logging.error("Language model API returned %d: %s", response.status_code, message)
            raise LLMUpstreamError(response.status_code, message)

        try:
            return self.extract_chat_response(response.json())
        except ValueError as e:
            raise LLMUpstreamError(response.status_code, str(e))

    async def do_validate_api_key(self, api_key: str) -> dict | None:
        """Ask the backend about ``api_key``.

        Returns:
            dict | None: Key details when the key is valid, None otherwise.

        Raises:
            LLMUpstreamError: If the backend cannot be reached.
        """
        try:
            response = await self.do_request(
                method="GET",
                endpoint=self._get_endpoint_key_info(),
                additional_headers=self._get_api_key_header(api_key),
            )
        except httpx.HTTPError as e:
            raise LLMUpstreamError(502, f"{type(e).__name__}: {e}")
        if response.status_code != 200:
            return None
        data = response.json()
        return data.get("data", data) if isinstance(data, dict) else {}
