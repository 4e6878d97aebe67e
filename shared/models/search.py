"""Pydantic models for relevance search results."""

from typing import Literal

from pydantic import BaseModel

from shared.models.document import RankedDocument

SearchTier = Literal["full_text", "keyword", "recency", "none"]


class SearchOutcome(BaseModel):
    """Result of one relevance search.

    Attributes:
        documents: Ranked hits, at most the requested limit.
        tier: Which tier produced the hits ("none" when nothing was returned).
        degraded: True when the document store failed and the empty result
            is a stand-in rather than a real answer.
    """

    documents: list[RankedDocument] = []
    tier: SearchTier = "none"
    degraded: bool = False


class SourceReference(BaseModel):
    """A document cited in a chat answer."""

    id: str
    name: str
    relevance: float
