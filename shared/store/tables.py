"""SQLAlchemy table definitions for documents, conversations and the app config row."""

from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentRow(Base):
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True)  # uuid4 string
    name = Column(String(512), nullable=False)
    type = Column(String(128), nullable=False)
    content = Column(Text, nullable=False)
    doc_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (Index("ix_documents_created_at", "created_at"),)


class ConversationRow(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True)
    title = Column(String(256), nullable=False, default="")
    messages = Column(JSON, nullable=False, default=list)  # list of message dicts, rewritten on every turn
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (Index("ix_conversations_updated_at", "updated_at"),)


class AppConfigRow(Base):
    __tablename__ = "app_config"

    id = Column(Integer, primary_key=True, default=1)
    open_router_api_key = Column(Text, nullable=True)
    selected_model = Column(String(256), nullable=False)
    system_prompt = Column(Text, nullable=False)
    evolution_api_url = Column(String(512), nullable=True)
    evolution_api_key = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (CheckConstraint("id = 1", name="single_row"),)
