"""Relevance search: picks the stored documents that feed a prompt.

Three lexical tiers, tried in order; the first non-empty tier wins and
tiers are never blended:

  1. full text: stemmed lexeme match, ranked by TextAnalyzer.score
  2. keyword  : substring match on long non-stop-word query words, rank 0.7
  3. recency  : newest documents, rank 0.5

Within a tier ties go to the most recently created document.
"""

import asyncio
import re

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, RankedDocument
from shared.models.search import SearchOutcome
from shared.rag.TextAnalyzer import TextAnalyzer
from shared.store.DocumentStore import DocumentStore

KEYWORD_RANK = 0.7
RECENCY_RANK = 0.5
KEYWORD_MIN_LENGTH = 4  # words must be longer than 3 characters

KEYWORD_RE = re.compile(r"\w+", re.UNICODE)

# interrogatives and connectives that say nothing about the subject asked for
KEYWORD_STOP_WORDS = frozenset("""
qual quais quando onde como porque porquê quem quanto quanta quantos quantas sobre para pelo pela
pelos pelas entre depois antes também mais menos muito muita muitos muitas isso essa esse este esta
isto aquilo aquele aquela você vocês pode podem poderia podia fazer favor seria então porém assim
ainda desde após existe existem tenho temos está estão qualquer algum alguma
""".split())


class RelevanceSearch:
    """Ranks the document corpus against a query."""

    def __init__(self, helper_config: HelperConfig, document_store: DocumentStore, analyzer: TextAnalyzer | None = None) -> None:
        self.logging = helper_config.get_logger()
        self._store = document_store
        self._analyzer = analyzer or TextAnalyzer(helper_config.get_string_val("SEARCH_LANGUAGE", default="portuguese"))
        # content is immutable, so lexeme positions can be cached per document id
        self._positions_cache: dict[str, dict[str, list[int]]] = {}

    ##########################################
    ################ CORE ####################
    ##########################################

    async def search(self, query: str, limit: int) -> list[RankedDocument]:
        """Return at most ``limit`` ranked documents for ``query``."""
        outcome = await self.search_with_outcome(query, limit)
        return outcome.documents

    async def search_with_outcome(self, query: str, limit: int) -> SearchOutcome:
        """Run the tiers and report which one answered.

        A failing document store is not an error for the caller: it is
        logged and reported as an empty, degraded outcome.

        Args:
            query (str): The user's question.
            limit (int): Maximum number of documents to return.

        Returns:
            SearchOutcome: Ranked documents, producing tier, degraded flag.
        """
        if limit <= 0:
            return SearchOutcome()

        try:
            corpus = await self._store.do_list_for_search()
        except Exception as e:
            self.logging.error("Document search failed, continuing without context: %s", e)
            return SearchOutcome(degraded=True)

        if not corpus:
            return SearchOutcome()
        self._prune_cache(corpus)

        # stemming a large uncached corpus is CPU bound, keep it off the event loop
        ranked = await asyncio.to_thread(self.rank_full_text, query, corpus, limit)
        if ranked:
            return self._outcome(query, ranked, "full_text")

        ranked = self.rank_keywords(query, corpus, limit)
        if ranked:
            return self._outcome(query, ranked, "keyword")

        return self._outcome(query, self.rank_recency(corpus, limit), "recency")

    ##########################################
    ################ TIERS ###################
    ##########################################

    def rank_full_text(self, query: str, corpus: list[Document], limit: int) -> list[RankedDocument]:
        """Tier 1. ``corpus`` must be ordered newest first."""
        lexemes = self._analyzer.query_lexemes(query)
        if not lexemes:
            return []

        hits: list[RankedDocument] = []
        for document in corpus:
            rank = self._analyzer.score(lexemes, self._positions(document))
            if rank > 0.0:
                hits.append(RankedDocument(document=document, rank=rank))

        # stable sort keeps newest-first order among equal ranks
        hits.sort(key=lambda hit: hit.rank, reverse=True)
        return hits[:limit]

    def rank_keywords(self, query: str, corpus: list[Document], limit: int) -> list[RankedDocument]:
        """Tier 2. ``corpus`` must be ordered newest first."""
        keywords = self.extract_keywords(query)
        if not keywords:
            return []

        hits: list[RankedDocument] = []
        for document in corpus:
            content = document.content.lower()
            if any(keyword in content for keyword in keywords):
                hits.append(RankedDocument(document=document, rank=KEYWORD_RANK))
                if len(hits) >= limit:
                    break
        return hits

    def rank_recency(self, corpus: list[Document], limit: int) -> list[RankedDocument]:
        """Tier 3. ``corpus`` must be ordered newest first."""
        return [RankedDocument(document=document, rank=RECENCY_RANK) for document in corpus[:limit]]

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def extract_keywords(query: str) -> list[str]:
        keywords: list[str] = []
        for word in KEYWORD_RE.findall(query.lower()):
            if len(word) >= KEYWORD_MIN_LENGTH and word not in KEYWORD_STOP_WORDS and word not in keywords:
                keywords.append(word)
        return keywords

    def _positions(self, document: Document) -> dict[str, list[int]]:
        positions = self._positions_cache.get(document.id)
        if positions is None:
            positions = self._analyzer.lexeme_positions(document.content)
            self._positions_cache[document.id] = positions
        return positions

    def _prune_cache(self, corpus: list[Document]) -> None:
        live_ids = {document.id for document in corpus}
        for stale_id in [doc_id for doc_id in list(self._positions_cache) if doc_id not in live_ids]:
            self._positions_cache.pop(stale_id, None)

    def _outcome(self, query: str, ranked: list[RankedDocument], tier: str) -> SearchOutcome:
        self.logging.debug("Search %r answered by %s tier with %d document(s)", query[:80], tier, len(ranked))
        return SearchOutcome(documents=ranked, tier=tier)
