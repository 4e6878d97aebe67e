"""Conversation accumulator: records completed turns.

A turn is only written once both halves exist, so every stored message
list has even length (user, assistant, user, assistant, ...).
"""

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from shared.helper.HelperConfig import HelperConfig
from shared.models.conversation import ChatMessage
from shared.store.ConversationStore import ConversationStore

TITLE_MAX_CHARS = 50


class ConversationAccumulator:
    """Starts conversations and appends turns.

    Appends are a read-modify-write of the whole message list. They are
    serialised per conversation id with an asyncio.Lock, which covers
    concurrent turns inside this process only; several worker processes
    sharing one database can still lose an update (last writer wins).
    A lock only lives while some task holds or waits for it.
    """

    def __init__(self, helper_config: HelperConfig, conversation_store: ConversationStore) -> None:
        self.logging = helper_config.get_logger()
        self._store = conversation_store
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    ##########################################
    ################ CORE ####################
    ##########################################

    async def start_conversation(
        self,
        user_message: str,
        assistant_message: str,
        title: str | None = None,
        sender: str | None = None,
    ) -> str:
        """Create a conversation holding its first turn.

        Args:
            user_message (str): The question.
            assistant_message (str): The model's reply.
            title (str | None): Defaults to the first 50 characters of the question.
            sender (str | None): Sender id stored as ``from`` on the user message.

        Returns:
            str: The new conversation id.
        """
        conversation_id = str(uuid.uuid4())
        messages = [
            ChatMessage(role="user", content=user_message, sender=sender),
            ChatMessage(role="assistant", content=assistant_message),
        ]
        await self._store.do_create(
            conversation_id=conversation_id,
            title=title if title is not None else user_message[:TITLE_MAX_CHARS],
            messages=messages,
        )
        self.logging.info("Started conversation %s", conversation_id)
        return conversation_id

    async def append_turn(self, conversation_id: str, user_message: str, assistant_message: str) -> bool:
        """Append a user/assistant pair to an existing conversation.

        An unknown id is a no-op: nothing is created and False is returned.

        Returns:
            bool: True if the turn was persisted.
        """
        async with self._conversation_lock(conversation_id):
            conversation = await self._store.do_find(conversation_id)
            if conversation is None:
                self.logging.warning("Conversation %s does not exist, turn not persisted.", conversation_id)
                return False

            messages = [
                *conversation.messages,
                ChatMessage(role="user", content=user_message),
                ChatMessage(role="assistant", content=assistant_message),
            ]
            persisted = await self._store.do_replace_messages(conversation_id, messages)

        self.logging.debug("Conversation %s now has %d messages", conversation_id, len(messages))
        return persisted

    async def delete_conversation(self, conversation_id: str) -> None:
        async with self._conversation_lock(conversation_id):
            await self._store.do_delete(conversation_id)

    def active_lock_count(self) -> int:
        return len(self._locks)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @asynccontextmanager
    async def _conversation_lock(self, conversation_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        self._lock_users[conversation_id] = self._lock_users.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[conversation_id] -= 1
            if not self._lock_users[conversation_id]:
                del self._lock_users[conversation_id]
                del self._locks[conversation_id]
