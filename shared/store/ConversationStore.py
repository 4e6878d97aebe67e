"""Persistence for conversations. The message log is one JSON list per row."""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import NotFoundError
from shared.models.conversation import ChatMessage, Conversation, ConversationSummary, ConversationsListResponse
from shared.store.Database import Database
from shared.store.tables import ConversationRow


class ConversationStore:
    """Get / create / rewrite / list / delete conversations.

    There is no per-message update: a turn is recorded by rewriting the whole
    ``messages`` list (see ``do_replace_messages``). Serialising concurrent
    rewrites of the same conversation is the caller's job.
    """

    def __init__(self, helper_config: HelperConfig, database: Database) -> None:
        self.logging = helper_config.get_logger()
        self._db = database

    @staticmethod
    def _to_conversation(row: ConversationRow) -> Conversation:
        return Conversation(
            id=row.id,
            title=row.title or "",
            messages=[ChatMessage.model_validate(m) for m in (row.messages or [])],
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    ##########################################
    ################# READS ##################
    ##########################################

    async def do_find(self, conversation_id: str) -> Conversation | None:
        """Return the conversation or None when the id is unknown."""

        def _get(session: Session) -> Conversation | None:
            row = session.get(ConversationRow, conversation_id)
            return self._to_conversation(row) if row is not None else None

        return await self._db.run(_get)

    async def do_get(self, conversation_id: str) -> Conversation:
        """Raises NotFoundError when the id is unknown."""
        conversation = await self.do_find(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", conversation_id)
        return conversation

    async def do_list(self, page: int = 1, page_size: int = 20) -> ConversationsListResponse:
        """One page of summaries, most recently updated first."""
        page = max(page, 1)
        page_size = max(page_size, 1)

        def _list(session: Session) -> list[ConversationSummary]:
            rows = session.scalars(
                select(ConversationRow)
                .order_by(ConversationRow.updated_at.desc())
                .limit(page_size)
                .offset((page - 1) * page_size)
            ).all()
            return [
                ConversationSummary(id=r.id, title=r.title or "", created_at=r.created_at, updated_at=r.updated_at)
                for r in rows
            ]

        summaries = await self._db.run(_list)
        return ConversationsListResponse(conversations=summaries, page=page, limit=page_size)

    ##########################################
    ################ WRITES ##################
    ##########################################

    async def do_create(self, conversation_id: str, title: str, messages: list[ChatMessage]) -> Conversation:
        now = datetime.now(timezone.utc)
        row = ConversationRow(
            id=conversation_id,
            title=title,
            messages=[m.to_record() for m in messages],
            created_at=now,
            updated_at=now,
        )

        def _create(session: Session) -> Conversation:
            session.add(row)
            session.flush()
            return self._to_conversation(row)

        return await self._db.run(_create)

    async def do_replace_messages(self, conversation_id: str, messages: list[ChatMessage]) -> bool:
        """Overwrite the full message list and refresh updated_at.

        Returns:
            bool: False if the conversation does not exist (nothing written).
        """
        records = [m.to_record() for m in messages]

        def _replace(session: Session) -> bool:
            row = session.get(ConversationRow, conversation_id)
            if row is None:
                return False
            # assign a new list so the JSON column is flagged dirty
            row.messages = records
            row.updated_at = datetime.now(timezone.utc)
            return True

        return await self._db.run(_replace)

    async def do_delete(self, conversation_id: str) -> None:
        """Raises NotFoundError when the id is unknown."""

        def _delete(session: Session) -> bool:
            row = session.get(ConversationRow, conversation_id)
            if row is None:
                return False
            session.delete(row)
            return True

        if not await self._db.run(_delete):
            raise NotFoundError("Conversation", conversation_id)
        self.logging.info("Deleted conversation %s", conversation_id)
