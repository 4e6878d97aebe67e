import json

import httpx
import pytest

from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.llm.openrouter.LLMClientOpenrouter import LLMClientOpenrouter
from shared.clients.messaging.MessagingClientManager import MessagingClientManager
from shared.clients.messaging.evolution.MessagingClientEvolution import MessagingClientEvolution
from shared.helper.errors import ConfigurationError, LLMUpstreamError, MessagingGatewayError

pytestmark = pytest.mark.anyio


class Recorder:
    """httpx.MockTransport handler that records requests and replays a fixed response."""

    def __init__(self, status_code: int = 200, payload: dict | None = None):
        self.status_code = status_code
        self.payload = payload if payload is not None else {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def last_body(self) -> dict:
        return json.loads(self.requests[-1].content)


async def booted_llm(helper_config, recorder: Recorder) -> LLMClientOpenrouter:
    client = LLMClientOpenrouter(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(recorder))
    return client


async def booted_gateway(helper_config, recorder: Recorder) -> MessagingClientEvolution:
    client = MessagingClientEvolution(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(recorder))
    client.use_credentials("http://evolution.test/", "evo-key")
    return client


class TestManagers:
    async def test_default_engines(self, helper_config):
        assert isinstance(LLMClientManager(helper_config).get_client(), LLMClientOpenrouter)
        assert isinstance(MessagingClientManager(helper_config).get_client(), MessagingClientEvolution)

    async def test_unknown_engine(self, helper_config, monkeypatch):
        monkeypatch.setenv("LLM_ENGINE", "nonexistent")
        with pytest.raises(ValueError):
            LLMClientManager(helper_config)


class TestOpenrouterClient:
    async def test_completion_request_and_reply(self, helper_config):
        recorder = Recorder(payload={"choices": [{"message": {"role": "assistant", "content": "Resposta."}}]})
        client = await booted_llm(helper_config, recorder)

        reply = await client.do_complete("prompt", "pergunta", model="openai/gpt-4", api_key="sk-test")
        await client.close()

        request = recorder.requests[0]
        assert reply == "Resposta."
        assert request.url == "https://openrouter.ai/api/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert recorder.last_body == {
            "model": "openai/gpt-4",
            "messages": [{"role": "system", "content": "prompt"}, {"role": "user", "content": "pergunta"}],
            "max_tokens": 2000,
            "temperature": 0.7,
        }

    async def test_upstream_error_keeps_status_and_message(self, helper_config):
        recorder = Recorder(status_code=401, payload={"error": {"message": "No auth credentials found", "code": 401}})
        client = await booted_llm(helper_config, recorder)

        with pytest.raises(LLMUpstreamError) as excinfo:
            await client.do_complete("prompt", "pergunta", model="openai/gpt-4", api_key="sk-bad")

        assert excinfo.value.upstream_status == 401
        assert excinfo.value.upstream_message == "No auth credentials found"
        assert excinfo.value.status_code == 502

    async def test_reply_without_choices(self, helper_config):
        client = await booted_llm(helper_config, Recorder(payload={"id": "gen-1"}))

        with pytest.raises(LLMUpstreamError):
            await client.do_complete("prompt", "pergunta", model="openai/gpt-4", api_key="sk-test")

    async def test_transport_failure(self, helper_config):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = LLMClientOpenrouter(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(refuse))

        with pytest.raises(LLMUpstreamError) as excinfo:
            await client.do_complete("prompt", "pergunta", model="openai/gpt-4", api_key="sk-test")
        assert excinfo.value.upstream_status == 502

    async def test_missing_key_never_calls_upstream(self, helper_config):
        recorder = Recorder()
        client = await booted_llm(helper_config, recorder)

        with pytest.raises(ConfigurationError):
            await client.do_complete("prompt", "pergunta", model="openai/gpt-4", api_key="")
        assert recorder.requests == []

    async def test_validate_api_key(self, helper_config):
        valid = await booted_llm(helper_config, Recorder(payload={"data": {"label": "sk-or-v1-abc", "usage": 0}}))
        invalid = await booted_llm(helper_config, Recorder(status_code=401, payload={"error": {"message": "bad"}}))

        assert await valid.do_validate_api_key("sk-good") == {"label": "sk-or-v1-abc", "usage": 0}
        assert await invalid.do_validate_api_key("sk-bad") is None


class TestEvolutionClient:
    async def test_send_text(self, helper_config):
        recorder = Recorder(payload={"key": {"id": "ABC"}})
        client = await booted_gateway(helper_config, recorder)

        result = await client.do_send_text("loja", "5511999990000", "Olá")

        request = recorder.requests[0]
        assert result == {"key": {"id": "ABC"}}
        assert request.url == "http://evolution.test/message/sendText/loja"
        assert request.headers["apikey"] == "evo-key"
        assert recorder.last_body == {"number": "5511999990000", "text": "Olá"}

    async def test_send_text_failure(self, helper_config):
        client = await booted_gateway(helper_config, Recorder(status_code=500, payload={"error": "down"}))

        with pytest.raises(MessagingGatewayError):
            await client.do_send_text("loja", "5511999990000", "Olá")

    async def test_send_text_without_credentials(self, helper_config):
        recorder = Recorder()
        client = MessagingClientEvolution(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(recorder))

        with pytest.raises(MessagingGatewayError):
            await client.do_send_text("loja", "5511999990000", "Olá")
        assert recorder.requests == []

    async def test_mark_as_read(self, helper_config):
        recorder = Recorder(payload={"read": "success"})
        client = await booted_gateway(helper_config, recorder)

        assert await client.do_mark_as_read("loja", "MSG1", "5511999990000@s.whatsapp.net")
        assert recorder.requests[0].url.path == "/chat/markMessageAsRead/loja"
        assert recorder.last_body == {
            "read_messages": [{"id": "MSG1", "fromMe": False, "remoteJid": "5511999990000@s.whatsapp.net"}]
        }

    async def test_mark_as_read_failure_is_absorbed(self, helper_config):
        client = await booted_gateway(helper_config, Recorder(status_code=500))

        assert await client.do_mark_as_read("loja", "MSG1", "jid") is False

    @pytest.mark.parametrize("flag", ["false", "0", "no"])
    async def test_read_receipts_can_be_disabled(self, helper_config, monkeypatch, flag):
        monkeypatch.setenv("MESSAGING_EVOLUTION_MARK_AS_READ", flag)
        recorder = Recorder(payload={"read": "success"})
        client = await booted_gateway(helper_config, recorder)

        assert client.mark_as_read_enabled is False
        assert await client.do_mark_as_read("loja", "MSG1", "jid") is False
        assert recorder.requests == []

    async def test_read_receipts_enabled_by_default(self, helper_config, monkeypatch):
        monkeypatch.delenv("MESSAGING_EVOLUTION_MARK_AS_READ", raising=False)

        assert MessagingClientEvolution(helper_config=helper_config).mark_as_read_enabled is True

    async def test_check_is_whatsapp(self, helper_config):
        recorder = Recorder(payload=[{"exists": True, "jid": "5511999990000@s.whatsapp.net"}])
        client = await booted_gateway(helper_config, recorder)

        result = await client.do_check_is_whatsapp("loja", "5511999990000")

        assert result == [{"exists": True, "jid": "5511999990000@s.whatsapp.net"}]
        assert recorder.last_body == {"numbers": ["5511999990000"]}
