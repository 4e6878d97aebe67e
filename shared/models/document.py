"""Pydantic models for uploaded documents.

Hierarchy:
  DocumentSummary : listing view, everything except the extracted text.
  Document        : full record including the extracted content.
  RankedDocument  : transient search hit: a Document plus its tier rank.
"""

import math
from datetime import datetime

from pydantic import BaseModel, Field

CHUNK_SIZE = 1000  # characters per estimated chunk


class DocumentMetadata(BaseModel):
    """Metadata stored alongside each document.

    Attributes:
        size: Original upload size in bytes.
        extracted: Whether the content came out of a text extraction step.
        content_length: Number of characters in the extracted content.
        chunks: Estimated chunk count, ceil(content_length / CHUNK_SIZE).
    """

    size: int = 0
    extracted: bool = True
    content_length: int = 0
    chunks: int = 0

    @classmethod
    def from_content(cls, content: str, size: int) -> "DocumentMetadata":
        return cls(
            size=size,
            extracted=True,
            content_length=len(content),
            chunks=math.ceil(len(content) / CHUNK_SIZE),
        )


class DocumentSummary(BaseModel):
    id: str
    name: str
    mime_type: str
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    created_at: datetime


class Document(DocumentSummary):
    content: str

    def to_summary(self) -> DocumentSummary:
        return DocumentSummary(
            id=self.id,
            name=self.name,
            mime_type=self.mime_type,
            metadata=self.metadata,
            created_at=self.created_at,
        )


class RankedDocument(BaseModel):
    """A search hit. The rank is only comparable within the tier that produced it."""

    document: Document
    rank: float


class DocumentsListResponse(BaseModel):
    documents: list[DocumentSummary] = []
    page: int
    limit: int
    total: int
    total_pages: int


class DocumentTypeCount(BaseModel):
    mime_type: str
    count: int


class DocumentStats(BaseModel):
    total: int
    by_type: list[DocumentTypeCount] = []
    total_chars: int
