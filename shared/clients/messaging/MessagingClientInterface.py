from abc import abstractmethod

import httpx
from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import MessagingGatewayError


class MessagingClientInterface(ClientInterface):
    """WhatsApp-style messaging gateway.

    The gateway URL and key are part of the app configuration that operators
    edit at runtime, so they are applied with ``use_credentials`` right
    before a batch of calls instead of being read from the environment.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url: str = ""
        self._api_key: str = ""
        self.mark_as_read_enabled: bool = self.get_config_val("MARK_AS_READ", default=True, val_type="bool")

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def has_credentials(self) -> bool:
        return bool(self._base_url and self._api_key)

    def _ensure_credentials(self) -> None:
        if not self.has_credentials():
            raise MessagingGatewayError("Messaging gateway URL or API key is not configured.")

    ##########################################
    ################ SETTER ##################
    ##########################################

    def use_credentials(self, base_url: str, api_key: str) -> None:
        self._base_url = (base_url or "").strip()
        self._api_key = (api_key or "").strip()

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "messaging"

    def _get_base_url(self) -> str:
        return self._base_url

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_send_text(self, instance: str) -> str:
        pass

    @abstractmethod
    def _get_endpoint_mark_as_read(self, instance: str) -> str:
        pass

    @abstractmethod
    def _get_endpoint_check_number(self, instance: str) -> str:
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_send_text_payload(self, number: str, text: str) -> dict:
        pass

    @abstractmethod
    def get_mark_as_read_payload(self, message_id: str, remote_jid: str) -> dict:
        pass

    @abstractmethod
    def get_check_number_payload(self, number: str) -> dict:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_send_text(self, instance: str, number: str, text: str) -> dict:
        """Send a text message.

        Returns:
            dict: The gateway's delivery result.

        Raises:
            MessagingGatewayError: If credentials are missing, the gateway is
                unreachable or answers with a non-success status.
        """
        self._ensure_credentials()
        try:
            response = await self.do_request(
                method="POST",
                endpoint=self._get_endpoint_send_text(instance),
                json=self.get_send_text_payload(number, text),
            )
        except httpx.HTTPError as e:
            raise MessagingGatewayError(f"Messaging gateway unreachable: {e}")
        if not response.is_success:
            raise MessagingGatewayError(f"Messaging gateway error: {response.status_code} - {response.text[:200]}")
        try:
            return response.json()
        except ValueError:
            return {}

    async def do_mark_as_read(self, instance: str, message_id: str, remote_jid: str) -> bool:
        """Mark an inbound message as read. Best effort: never raises, returns success."""
        if not self.mark_as_read_enabled:
            self.logging.debug("Read receipts disabled, message %s left unread.", message_id)
            return False
        if not self.has_credentials():
            self.logging.warning("Cannot mark message %s as read: messaging gateway not configured.", message_id)
            return False
        try:
            response = await self.do_request(
                method="POST",
                endpoint=self._get_endpoint_mark_as_read(instance),
                json=self.get_mark_as_read_payload(message_id, remote_jid),
            )
        except httpx.HTTPError as e:
            self.logging.error("Error marking message %s as read: %s", message_id, e)
            return False
        if not response.is_success:
            self.logging.error("Failed to mark message %s as read (status %d).", message_id, response.status_code)
        return response.is_success

    async def do_check_is_whatsapp(self, instance: str, number: str) -> dict | list | bool:
        """Ask the gateway whether ``number`` is a WhatsApp account. Returns False on any failure."""
        if not self.has_credentials():
            return False
        try:
            response = await self.do_request(
                method="POST",
                endpoint=self._get_endpoint_check_number(instance),
                json=self.get_check_number_payload(number),
            )
        except httpx.HTTPError as e:
            self.logging.error("Error checking WhatsApp number: %s", e)
            return False
        if not response.is_success:
            return False
        try:
            return response.json()
        except ValueError:
            return False
