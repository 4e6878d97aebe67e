"""Persistence for uploaded documents and their extracted text."""

import math
import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import EmptyContentError, NotFoundError
from shared.models.document import (
    Document,
    DocumentMetadata,
    DocumentStats,
    DocumentSummary,
    DocumentTypeCount,
    DocumentsListResponse,
)
from shared.store.Database import Database
from shared.store.tables import DocumentRow


class DocumentStore:
    """CRUD over the documents table. Content is written once and never updated."""

    def __init__(self, helper_config: HelperConfig, database: Database) -> None:
        self.logging = helper_config.get_logger()
        self._db = database

    ##########################################
    ################ MAPPING #################
    ##########################################

    @staticmethod
    def _to_document(row: DocumentRow) -> Document:
        return Document(
            id=row.id,
            name=row.name,
            mime_type=row.type,
            content=row.content,
            metadata=DocumentMetadata(**(row.doc_metadata or {})),
            created_at=row.created_at,
        )

    @staticmethod
    def _to_summary(row: DocumentRow) -> DocumentSummary:
        return DocumentSummary(
            id=row.id,
            name=row.name,
            mime_type=row.type,
            metadata=DocumentMetadata(**(row.doc_metadata or {})),
            created_at=row.created_at,
        )

    ##########################################
    ################ WRITES ##################
    ##########################################

    async def do_insert(
        self,
        name: str,
        mime_type: str,
        content: str,
        metadata: DocumentMetadata,
        created_at: datetime | None = None,
    ) -> Document:
        """Persist a new document.

        Args:
            name (str): Original file name.
            mime_type (str): One of the allowed upload MIME types.
            content (str): Extracted plain text, must not be blank.
            metadata (DocumentMetadata): Size and derived content fields.
            created_at (datetime | None): Insertion time, defaults to now (UTC).

        Returns:
            Document: The stored document with its new id.

        Raises:
            EmptyContentError: If content is empty or whitespace only.
        """
        if not content or not content.strip():
            raise EmptyContentError(name)

        row = DocumentRow(
            id=str(uuid.uuid4()),
            name=name,
            type=mime_type,
            content=content,
            doc_metadata=metadata.model_dump(),
            created_at=created_at or datetime.now(timezone.utc),
        )

        def _insert(session: Session) -> Document:
            session.add(row)
            session.flush()
            return self._to_document(row)

        document = await self._db.run(_insert)
        self.logging.info("Stored document %s (%r, %d chars)", document.id, name, len(content))
        return document

    async def do_delete(self, document_id: str) -> DocumentSummary:
        """Hard-delete a document.

        Raises:
            NotFoundError: If no document has this id.
        """

        def _delete(session: Session) -> DocumentSummary | None:
            row = session.get(DocumentRow, document_id)
            if row is None:
                return None
            summary = self._to_summary(row)
            session.execute(delete(DocumentRow).where(DocumentRow.id == document_id))
            return summary

        summary = await self._db.run(_delete)
        if summary is None:
            raise NotFoundError("Document", document_id)
        self.logging.info("Deleted document %s (%r)", document_id, summary.name)
        return summary

    ##########################################
    ################# READS ##################
    ##########################################

    async def do_get(self, document_id: str) -> Document:
        """Fetch one document including its content.

        Raises:
            NotFoundError: If no document has this id.
        """

        def _get(session: Session) -> Document | None:
            row = session.get(DocumentRow, document_id)
            return self._to_document(row) if row is not None else None

        document = await self._db.run(_get)
        if document is None:
            raise NotFoundError("Document", document_id)
        return document

    async def do_list(self, page: int = 1, page_size: int = 10) -> DocumentsListResponse:
        """Return one page of document summaries, newest first, plus the total count."""
        page = max(page, 1)
        page_size = max(page_size, 1)

        def _list(session: Session) -> tuple[list[DocumentSummary], int]:
            rows = session.scalars(
                select(DocumentRow)
                .order_by(DocumentRow.created_at.desc())
                .limit(page_size)
                .offset((page - 1) * page_size)
            ).all()
            total = session.scalar(select(func.count()).select_from(DocumentRow)) or 0
            return [self._to_summary(row) for row in rows], total

        summaries, total = await self._db.run(_list)
        return DocumentsListResponse(
            documents=summaries,
            page=page,
            limit=page_size,
            total=total,
            total_pages=math.ceil(total / page_size),
        )

    async def do_list_for_search(self) -> list[Document]:
        """Return the whole corpus, newest first. This is what relevance search scans."""

        def _list(session: Session) -> list[Document]:
            rows = session.scalars(select(DocumentRow).order_by(DocumentRow.created_at.desc())).all()
            return [self._to_document(row) for row in rows]

        return await self._db.run(_list)

    async def do_stats(self) -> DocumentStats:
        def _stats(session: Session) -> DocumentStats:
            total = session.scalar(select(func.count()).select_from(DocumentRow)) or 0
            by_type = session.execute(
                select(DocumentRow.type, func.count()).group_by(DocumentRow.type).order_by(DocumentRow.type)
            ).all()
            total_chars = session.scalar(select(func.sum(func.length(DocumentRow.content)))) or 0
            return DocumentStats(
                total=total,
                by_type=[DocumentTypeCount(mime_type=mime, count=count) for mime, count in by_type],
                total_chars=int(total_chars),
            )

        return await self._db.run(_stats)
