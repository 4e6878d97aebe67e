import pytest

from conftest import FakeMessagingClient
from server.core.ChatService import ChatService
from server.core.ConversationAccumulator import ConversationAccumulator
from server.core.WhatsAppService import NOT_CONFIGURED_NOTICE, WhatsAppService
from server.models.requests import WebhookEvent
from shared.helper.errors import LLMUpstreamError, MessagingGatewayError
from shared.models.app_config import AppConfigUpdate
from shared.rag.RelevanceSearch import RelevanceSearch

pytestmark = pytest.mark.anyio

JID = "5511999990000@s.whatsapp.net"


def upsert_event(text: str | None = "Qual o prazo?", from_me: bool = False, event: str = "messages.upsert") -> WebhookEvent:
    message = {"conversation": text} if text is not None else {}
    return WebhookEvent.model_validate(
        {
            "event": event,
            "instance": "loja",
            "data": {"key": {"remoteJid": JID, "fromMe": from_me, "id": "MSG1"}, "message": message},
        }
    )


def make_service(helper_config, config_store, document_store, conversation_store, llm, messaging):
    accumulator = ConversationAccumulator(helper_config=helper_config, conversation_store=conversation_store)
    chat = ChatService(
        helper_config=helper_config,
        config_store=config_store,
        relevance_search=RelevanceSearch(helper_config=helper_config, document_store=document_store),
        llm_client=llm,
        accumulator=accumulator,
    )
    return WhatsAppService(
        helper_config=helper_config,
        config_store=config_store,
        chat_service=chat,
        accumulator=accumulator,
        messaging_client=messaging,
    )


@pytest.fixture
async def configured(config_store):
    return await config_store.do_upsert(
        AppConfigUpdate(
            open_router_api_key="sk-test",
            selected_model="openai/gpt-4",
            system_prompt="Sistema.",
            evolution_api_url="http://evolution.test",
            evolution_api_key="evo-key",
        )
    )


@pytest.fixture
def service(helper_config, config_store, document_store, conversation_store, fake_llm, fake_messaging):
    return make_service(helper_config, config_store, document_store, conversation_store, fake_llm, fake_messaging)


class TestWhatsAppService:
    """Inbound webhook events"""

    async def test_other_events_are_acknowledged_only(self, service, fake_llm, fake_messaging):
        ack = await service.handle_event("loja", upsert_event(event="connection.update"))

        assert ack.success
        assert fake_llm.calls == []
        assert fake_messaging.sent == []

    async def test_message_event_with_list_data_is_acknowledged(self, service, configured, fake_llm, fake_messaging):
        event = WebhookEvent.model_validate({"event": "messages.upsert", "data": [{"key": {"id": "MSG1"}}]})

        ack = await service.handle_event("loja", event)

        assert ack.success
        assert ack.conversation_id is None
        assert fake_llm.calls == []
        assert fake_messaging.read == []

    async def test_own_messages_are_ignored(self, service, configured, fake_llm, fake_messaging):
        ack = await service.handle_event("loja", upsert_event(from_me=True))

        assert ack.conversation_id is None
        assert fake_llm.calls == []
        assert fake_messaging.sent == []

    async def test_messages_without_text_are_ignored(self, service, configured, fake_llm):
        ack = await service.handle_event("loja", upsert_event(text=None))

        assert ack.conversation_id is None
        assert fake_llm.calls == []

    async def test_missing_api_key_sends_notice(self, service, config_store, fake_llm, fake_messaging, conversation_store):
        await config_store.do_upsert(
            AppConfigUpdate(
                selected_model="openai/gpt-4",
                system_prompt="Sistema.",
                evolution_api_url="http://evolution.test",
                evolution_api_key="evo-key",
            )
        )

        ack = await service.handle_event("loja", upsert_event())

        assert fake_llm.calls == []
        assert fake_messaging.sent == [("loja", JID, NOT_CONFIGURED_NOTICE)]
        assert ack.conversation_id is None
        assert (await conversation_store.do_list()).conversations == []

    async def test_reply_is_sent_and_recorded(self, service, configured, fake_llm, fake_messaging, conversation_store):
        ack = await service.handle_event("loja", upsert_event("Qual o prazo?"))

        assert fake_messaging.credentials == ("http://evolution.test", "evo-key")
        assert fake_messaging.read == [("loja", "MSG1", JID)]
        assert fake_messaging.sent == [("loja", JID, fake_llm.reply)]
        assert ack.delivered is True

        conversation = await conversation_store.do_get(ack.conversation_id)
        assert conversation.title == f"WhatsApp: {JID} - Qual o prazo?"
        assert conversation.messages[0].sender == JID
        assert [m.content for m in conversation.messages] == ["Qual o prazo?", fake_llm.reply]

    async def test_failed_delivery_still_records_turn(
        self, helper_config, config_store, document_store, conversation_store, fake_llm, configured
    ):
        service = make_service(
            helper_config, config_store, document_store, conversation_store, fake_llm, FakeMessagingClient(fail_send=True)
        )

        ack = await service.handle_event("loja", upsert_event())

        assert ack.success
        assert ack.delivered is False
        assert await conversation_store.do_find(ack.conversation_id) is not None

    async def test_model_failure_propagates_without_recording(
        self, helper_config, config_store, document_store, conversation_store, failing_llm, fake_messaging, configured
    ):
        service = make_service(helper_config, config_store, document_store, conversation_store, failing_llm, fake_messaging)

        with pytest.raises(LLMUpstreamError):
            await service.handle_event("loja", upsert_event())

        assert fake_messaging.sent == []
        assert (await conversation_store.do_list()).conversations == []

    async def test_send_test_message_propagates_gateway_errors(
        self, helper_config, config_store, document_store, conversation_store, fake_llm, configured
    ):
        service = make_service(
            helper_config, config_store, document_store, conversation_store, fake_llm, FakeMessagingClient(fail_send=True)
        )

        with pytest.raises(MessagingGatewayError):
            await service.send_test_message("loja", "5511999990000", "teste")


class TestWebhookPayload:
    def test_extended_text_and_caption(self):
        extended = WebhookEvent.model_validate(
            {"event": "messages.upsert", "data": {"message": {"extendedTextMessage": {"text": "link aqui"}}}}
        )
        caption = WebhookEvent.model_validate(
            {"event": "messages.upsert", "data": {"message": {"imageMessage": {"caption": "foto"}}}}
        )

        assert extended.message_data().extract_text() == "link aqui"
        assert caption.message_data().extract_text() == "foto"

    def test_plain_conversation_wins(self):
        event = WebhookEvent.model_validate(
            {
                "event": "messages.upsert",
                "data": {"message": {"conversation": "texto", "extendedTextMessage": {"text": "outro"}}},
            }
        )

        assert event.message_data().extract_text() == "texto"

    def test_null_key_is_tolerated(self):
        event = WebhookEvent.model_validate({"event": "messages.update", "data": {"key": None}})

        data = event.message_data()

        assert data.key.remote_jid is None
        assert data.key.from_me is False

    def test_list_data_is_not_a_message(self):
        event = WebhookEvent.model_validate({"event": "chats.upsert", "data": [{"id": "x"}]})

        assert event.data == [{"id": "x"}]
        assert event.message_data() is None
