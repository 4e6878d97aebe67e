import threading

import pytest

from conftest import insert_document
from shared.rag.RelevanceSearch import KEYWORD_RANK, RECENCY_RANK, RelevanceSearch
from shared.rag.TextAnalyzer import TextAnalyzer

pytestmark = pytest.mark.anyio


class BrokenDocumentStore:
    async def do_list_for_search(self):
        raise RuntimeError("connection refused")


class ThreadRecordingAnalyzer(TextAnalyzer):
    """Remembers which threads stemmed document content."""

    def __init__(self, language: str):
        super().__init__(language)
        self.threads: set[int] = set()

    def lexeme_positions(self, text):
        self.threads.add(threading.get_ident())
        return super().lexeme_positions(text)

@pytest.fixture
def search(helper_config, document_store):
    return RelevanceSearch(helper_config=helper_config, document_store=document_store, analyzer=TextAnalyzer("english"))


class TestRelevanceSearch:
    """Tier selection, limits and ordering"""

    async def test_full_text_tier_returns_matching_documents(self, search, document_store):
        refund = await insert_document(document_store, "Policy.pdf", "Refund policy: refunds are issued within 30 days.", minutes=0)
        await insert_document(document_store, "Shipping.txt", "Shipping times vary by region.", minutes=1)

        outcome = await search.search_with_outcome("What is the refund policy?", 3)

        assert outcome.tier == "full_text"
        assert not outcome.degraded
        assert [hit.document.id for hit in outcome.documents] == [refund.id]
        assert 0.0 < outcome.documents[0].rank < 1.0

    async def test_better_match_ranks_first(self, search, document_store):
        partial = await insert_document(document_store, "a.txt", "Refund requests go to support.", minutes=5)
        full = await insert_document(document_store, "b.txt", "The refund policy covers all orders.", minutes=0)

        hits = await search.search("refund policy", 3)

        assert [hit.document.id for hit in hits] == [full.id, partial.id]
        assert hits[0].rank > hits[1].rank

    async def test_limit_is_respected(self, search, document_store):
        for minute in range(5):
            await insert_document(document_store, f"invoice-{minute}.txt", "Invoice number and invoice total.", minutes=minute)

        hits = await search.search("invoice", 3)

        assert len(hits) == 3

    async def test_equal_ranks_prefer_newest(self, search, document_store):
        older = await insert_document(document_store, "old.txt", "Warranty terms for laptops.", minutes=0)
        newer = await insert_document(document_store, "new.txt", "Warranty terms for laptops.", minutes=10)

        hits = await search.search("warranty", 2)

        assert [hit.document.id for hit in hits] == [newer.id, older.id]

    async def test_keyword_tier_matches_substrings(self, search, document_store):
        table = await insert_document(document_store, "table.txt", "See the repricingtable for details.", minutes=0)
        await insert_document(document_store, "other.txt", "Nothing relevant here.", minutes=1)

        outcome = await search.search_with_outcome("pricing", 3)

        assert outcome.tier == "keyword"
        assert [hit.document.id for hit in outcome.documents] == [table.id]
        assert outcome.documents[0].rank == KEYWORD_RANK

    async def test_recency_tier_when_nothing_matches(self, search, document_store):
        first = await insert_document(document_store, "1.txt", "Alpha content.", minutes=0)
        second = await insert_document(document_store, "2.txt", "Beta content.", minutes=1)
        third = await insert_document(document_store, "3.txt", "Gamma content.", minutes=2)

        outcome = await search.search_with_outcome("xyzzy", 2)

        assert outcome.tier == "recency"
        assert [hit.document.id for hit in outcome.documents] == [third.id, second.id]
        assert all(hit.rank == RECENCY_RANK for hit in outcome.documents)
        assert first.id not in [hit.document.id for hit in outcome.documents]

    @pytest.mark.parametrize("limit", [0, -1])
    async def test_non_positive_limit_returns_nothing(self, search, document_store, limit):
        await insert_document(document_store, "doc.txt", "Refund policy.")

        assert await search.search("refund", limit) == []

    async def test_empty_corpus(self, search):
        outcome = await search.search_with_outcome("refund policy", 3)

        assert outcome.documents == []
        assert outcome.tier == "none"
        assert not outcome.degraded

    async def test_store_failure_degrades_to_empty(self, helper_config):
        search = RelevanceSearch(helper_config=helper_config, document_store=BrokenDocumentStore())

        outcome = await search.search_with_outcome("refund policy", 3)

        assert outcome.documents == []
        assert outcome.degraded

    async def test_deleted_documents_are_not_returned(self, search, document_store):
        doomed = await insert_document(document_store, "doomed.txt", "Refund policy draft.", minutes=0)
        kept = await insert_document(document_store, "kept.txt", "Refund policy final.", minutes=1)
        await search.search("refund", 3)

        await document_store.do_delete(doomed.id)
        hits = await search.search("refund", 3)

        assert [hit.document.id for hit in hits] == [kept.id]

    async def test_portuguese_query_matches_inflected_content(self, helper_config, document_store):
        search = RelevanceSearch(helper_config=helper_config, document_store=document_store)
        policy = await insert_document(document_store, "Politica.pdf", "Políticas de reembolso: o reembolso é feito em até 30 dias.")

        outcome = await search.search_with_outcome("Qual é a política de reembolso?", 3)

        assert outcome.tier == "full_text"
        assert outcome.documents[0].document.id == policy.id

    async def test_full_text_ranking_runs_off_the_event_loop(self, helper_config, document_store):
        analyzer = ThreadRecordingAnalyzer("english")
        search = RelevanceSearch(helper_config=helper_config, document_store=document_store, analyzer=analyzer)
        await insert_document(document_store, "Policy.txt", "Refund policy: refunds within 30 days.")

        hits = await search.search("refund", 3)

        assert len(hits) == 1
        assert analyzer.threads
        assert threading.get_ident() not in analyzer.threads


class TestKeywordExtraction:
    def test_short_and_interrogative_words_are_dropped(self):
        assert RelevanceSearch.extract_keywords("Qual é a política de reembolso?") == ["política", "reembolso"]

    def test_duplicates_are_removed(self):
        assert RelevanceSearch.extract_keywords("prazo PRAZO prazo") == ["prazo"]
