"""
Shared pytest fixtures: temporary SQLite database, stores and fake outbound clients.
"""

import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# logs and the default database location must not land in the working tree
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="ragchat-tests-"))

from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import LLMUpstreamError, MessagingGatewayError
from shared.logging.logging_setup import ColorLogger
from shared.models.document import DocumentMetadata
from shared.store.ConfigStore import ConfigStore
from shared.store.ConversationStore import ConversationStore
from shared.store.Database import Database
from shared.store.DocumentStore import DocumentStore

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def helper_config():
    return HelperConfig(logger=ColorLogger(logging.getLogger("ragchat.tests")))


@pytest.fixture
def database(helper_config, tmp_path):
    db = Database(helper_config=helper_config, url=f"sqlite:///{tmp_path / 'ragchat-test.db'}")
    db.boot()
    yield db
    db.close()


@pytest.fixture
def document_store(helper_config, database):
    return DocumentStore(helper_config=helper_config, database=database)


@pytest.fixture
def conversation_store(helper_config, database):
    return ConversationStore(helper_config=helper_config, database=database)


@pytest.fixture
def config_store(helper_config, database):
    return ConfigStore(helper_config=helper_config, database=database)


async def insert_document(store: DocumentStore, name: str, content: str, minutes: int = 0, mime_type: str = "text/plain"):
    """Insert a document created ``minutes`` after BASE_TIME (larger means newer)."""
    return await store.do_insert(
        name=name,
        mime_type=mime_type,
        content=content,
        metadata=DocumentMetadata.from_content(content, size=len(content.encode())),
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


class FakeLLMClient:
    """Records completions and answers with a canned reply (or fails)."""

    def __init__(self, reply: str = "Resposta gerada.", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []
        self.valid_keys: dict[str, dict] = {}

    async def do_complete(self, system_content, user_content, model, api_key, max_tokens=None, temperature=None):
        self.calls.append(
            {"system_content": system_content, "user_content": user_content, "model": model, "api_key": api_key}
        )
        if self.error is not None:
            raise self.error
        return self.reply

    async def do_validate_api_key(self, api_key):
        return self.valid_keys.get(api_key)


class FakeMessagingClient:
    """Records gateway calls. ``fail_send`` makes every send raise MessagingGatewayError."""

    def __init__(self, fail_send: bool = False):
        self.fail_send = fail_send
        self.credentials: tuple[str, str] | None = None
        self.sent: list[tuple[str, str, str]] = []
        self.read: list[tuple[str, str, str]] = []

    def use_credentials(self, base_url, api_key):
        self.credentials = (base_url, api_key)

    async def do_send_text(self, instance, number, text):
        if self.fail_send:
            raise MessagingGatewayError("Messaging gateway error: 500 - boom")
        self.sent.append((instance, number, text))
        return {"key": {"id": "sent-1"}}

    async def do_mark_as_read(self, instance, message_id, remote_jid):
        self.read.append((instance, message_id, remote_jid))
        return True

    async def do_check_is_whatsapp(self, instance, number):
        return [{"exists": number.startswith("55"), "jid": f"{number}@s.whatsapp.net", "number": number}]


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def failing_llm():
    return FakeLLMClient(error=LLMUpstreamError(401, "No auth credentials found"))


@pytest.fixture
def fake_messaging():
    return FakeMessagingClient()
