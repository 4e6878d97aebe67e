"""WhatsApp service: answers inbound gateway messages.

Only "messages.upsert" events from other people run the chat pipeline.
Gateway failures (mark-as-read, reply delivery) are logged and absorbed
so the webhook is always acknowledged; the turn counts as processed as
soon as the model reply exists.
"""

from server.core.ChatService import ChatService
from server.core.ConversationAccumulator import ConversationAccumulator
from server.models.requests import WebhookEvent
from server.models.responses import WebhookAck
from shared.clients.messaging.MessagingClientInterface import MessagingClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import MessagingGatewayError
from shared.store.ConfigStore import ConfigStore

MESSAGE_UPSERT_EVENT = "messages.upsert"
NOT_CONFIGURED_NOTICE = "❌ Sistema não configurado. Por favor, configure a API Key do OpenRouter."


class WhatsAppService:
    def __init__(
        self,
        helper_config: HelperConfig,
        config_store: ConfigStore,
        chat_service: ChatService,
        accumulator: ConversationAccumulator,
        messaging_client: MessagingClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._config_store = config_store
        self._chat = chat_service
        self._accumulator = accumulator
        self._messaging = messaging_client

    ##########################################
    ################ CORE ####################
    ##########################################

    async def handle_event(self, instance: str, event: WebhookEvent) -> WebhookAck:
        """Process one webhook event from the gateway instance ``instance``.

        Raises:
            LLMUpstreamError: If the language model fails; nothing is persisted then.
        """
        if event.event != MESSAGE_UPSERT_EVENT:
            return WebhookAck(message="Event received")

        data = event.message_data()
        if data is None:
            self.logging.warning("Unexpected %s payload on instance %s, ignored.", MESSAGE_UPSERT_EVENT, instance)
            return WebhookAck(message="Unsupported message payload, ignored")
        if data.key.from_me:
            return WebhookAck(message="Message from me, ignored")

        remote_jid = data.key.remote_jid
        text = data.extract_text()
        if not text or not remote_jid:
            return WebhookAck(message="No text message")

        self.logging.info("WhatsApp message from %s on instance %s", remote_jid, instance)
        app_config = await self._config_store.do_get()
        self._messaging.use_credentials(app_config.evolution_api_url, app_config.evolution_api_key)

        if data.key.id:
            await self._messaging.do_mark_as_read(instance, data.key.id, remote_jid)

        if not app_config.has_llm_api_key():
            await self._deliver(instance, remote_jid, NOT_CONFIGURED_NOTICE)
            return WebhookAck(message="API Key not configured")

        reply = await self._chat.generate_reply(text, app_config=app_config)
        delivered = await self._deliver(instance, remote_jid, reply.response)

        conversation_id = await self._accumulator.start_conversation(
            user_message=text,
            assistant_message=reply.response,
            title=f"WhatsApp: {remote_jid} - {text[:50]}",
            sender=remote_jid,
        )
        return WebhookAck(
            message="Message processed successfully" if delivered else "Message processed, reply delivery failed",
            conversation_id=conversation_id,
            delivered=delivered,
        )

    async def send_test_message(self, instance: str, number: str, message: str) -> dict:
        """Send an ad-hoc message. Unlike webhook replies, failures propagate.

        Raises:
            MessagingGatewayError: If the gateway is not configured or rejects the message.
        """
        app_config = await self._config_store.do_get()
        self._messaging.use_credentials(app_config.evolution_api_url, app_config.evolution_api_key)
        return await self._messaging.do_send_text(instance, number, message)

    async def check_number(self, instance: str, number: str) -> dict:
        """Ask the gateway whether ``number`` has a WhatsApp account.

        Returns:
            dict: ``exists`` (False also when the gateway cannot tell) and the raw gateway ``data``.
        """
        app_config = await self._config_store.do_get()
        self._messaging.use_credentials(app_config.evolution_api_url, app_config.evolution_api_key)
        result = await self._messaging.do_check_is_whatsapp(instance, number)
        if result is False:
            return {"exists": False, "data": None}
        entries = result if isinstance(result, list) else [result]
        exists = any(isinstance(entry, dict) and entry.get("exists") for entry in entries)
        return {"exists": exists, "data": result}

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _deliver(self, instance: str, remote_jid: str, text: str) -> bool:
        try:
            await self._messaging.do_send_text(instance, remote_jid, text)
            return True
        except MessagingGatewayError as e:
            self.logging.error("Could not deliver WhatsApp reply to %s: %s", remote_jid, e.message)
            return False
