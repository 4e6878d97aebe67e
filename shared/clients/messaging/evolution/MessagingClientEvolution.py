from shared.clients.messaging.MessagingClientInterface import MessagingClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class MessagingClientEvolution(MessagingClientInterface):
    """Evolution API (WhatsApp gateway)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Evolution"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        # URL and key come from the app configuration, see use_credentials()
        return [EnvConfig(env_key="MARK_AS_READ", val_type="bool", default=True)]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"apikey": self._api_key}
        return {}

    ################ ENDPOINTS ##################
    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_send_text(self, instance: str) -> str:
        return f"/message/sendText/{instance}"

    def _get_endpoint_mark_as_read(self, instance: str) -> str:
        return f"/chat/markMessageAsRead/{instance}"

    def _get_endpoint_check_number(self, instance: str) -> str:
        return f"/chat/checkIsWhatsapp/{instance}"

    ################ PAYLOAD BUILDER ##################
    def get_send_text_payload(self, number: str, text: str) -> dict:
        return {"number": number, "text": text}

    def get_mark_as_read_payload(self, message_id: str, remote_jid: str) -> dict:
        return {"read_messages": [{"id": message_id, "fromMe": False, "remoteJid": remote_jid}]}

    def get_check_number_payload(self, number: str) -> dict:
        return {"numbers": [number]}
