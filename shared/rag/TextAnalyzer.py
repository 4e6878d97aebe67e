"""Language-aware lexical analysis for full-text ranking.

Mirrors what a database text-search configuration does: lower-case, split
into words, drop the language's stop words, reduce each word to its
Snowball stem. Positions count every word (stop words included) so that
proximity between lexemes matches the original text.
"""

import math
import re
import threading

import snowballstemmer

WORD_RE = re.compile(r"\w+", re.UNICODE)

PORTUGUESE_STOP_WORDS = frozenset("""
a à ao aos aquela aquelas aquele aqueles aquilo as às até com como da das de dela delas dele deles
depois do dos e é ela elas ele eles em entre era eram essa essas esse esses esta está estamos estão
estas estava estavam este esteja estes estou eu foi fomos for foram fosse fossem fui há isso isto já
lhe lhes mais mas me mesmo meu meus minha minhas muito na não nas nem no nos nós nossa nossas nosso
nossos num numa o os ou para pela pelas pelo pelos por qual quando que quem são se seja sem ser será
seu seus só somos sou sua suas também te tem têm temos tenho teu teus tu tua tuas um uma você vocês vos
""".split())

ENGLISH_STOP_WORDS = frozenset("""
a about above after again against all am an and any are as at be because been before being below
between both but by can could did do does doing down during each few for from further had has have
having he her here hers herself him himself his how i if in into is it its itself just me more most
my myself no nor not now of off on once only or other our ours ourselves out over own same she should
so some such than that the their theirs them themselves then there these they this those through to
too under until up very was we were what when where which while who whom why will with would you your
yours yourself yourselves
""".split())

STOP_WORDS: dict[str, frozenset[str]] = {
    "portuguese": PORTUGUESE_STOP_WORDS,
    "english": ENGLISH_STOP_WORDS,
}


class TextAnalyzer:
    """Turns text into stemmed lexemes with word positions and scores matches."""

    def __init__(self, language: str = "portuguese") -> None:
        language = language.strip().lower()
        if language not in snowballstemmer.algorithms():
            raise ValueError(f"Unsupported search language '{language}'.")
        self.language = language
        self._stemmer = snowballstemmer.stemmer(language)
        # stemmer objects keep per-call state and are shared by search worker threads
        self._stemmer_lock = threading.Lock()
        self._stop_words = STOP_WORDS.get(language, frozenset())

    ##########################################
    ############### ANALYSIS #################
    ##########################################

    def tokenize(self, text: str) -> list[str]:
        return WORD_RE.findall(text.lower())

    def lexeme_positions(self, text: str) -> dict[str, list[int]]:
        """Map every non-stop-word stem to the 1-based positions where it occurs."""
        positions: dict[str, list[int]] = {}
        words = self.tokenize(text)
        with self._stemmer_lock:
            stems = self._stemmer.stemWords(words)
        for position, (word, stem) in enumerate(zip(words, stems), start=1):
            if word in self._stop_words:
                continue
            positions.setdefault(stem, []).append(position)
        return positions

    def query_lexemes(self, query: str) -> list[str]:
        """Unique stems of the query in first-seen order, stop words removed."""
        seen: list[str] = []
        for word in self.tokenize(query):
            if word in self._stop_words:
                continue
            with self._stemmer_lock:
                stem = self._stemmer.stemWord(word)
            if stem not in seen:
                seen.append(stem)
        return seen

    ##########################################
    ################ SCORING #################
    ##########################################

    @staticmethod
    def score(query_lexemes: list[str], positions: dict[str, list[int]]) -> float:
        """Relevance of a document for the query, in [0, 1).

        Frequency part: sum of 1 + ln(tf) over matched lexemes, scaled by the
        share of query lexemes the document covers. Proximity part: 1 / gap
        for the closest pair of positions holding two different matched
        lexemes. The raw sum is squashed with raw / (raw + 1).
        Returns 0.0 when no query lexeme occurs in the document.
        """
        matched = [lexeme for lexeme in query_lexemes if lexeme in positions]
        if not matched:
            return 0.0

        frequency = sum(1.0 + math.log(len(positions[lexeme])) for lexeme in matched)
        coverage = len(matched) / len(query_lexemes)
        raw = frequency * coverage + TextAnalyzer._proximity(matched, positions)
        return raw / (raw + 1.0)

    @staticmethod
    def _proximity(matched: list[str], positions: dict[str, list[int]]) -> float:
        if len(matched) < 2:
            return 0.0
        labelled = sorted((pos, lexeme) for lexeme in matched for pos in positions[lexeme])
        smallest_gap = None
        for (pos_a, lex_a), (pos_b, lex_b) in zip(labelled, labelled[1:]):
            if lex_a != lex_b:
                gap = pos_b - pos_a
                if smallest_gap is None or gap < smallest_gap:
                    smallest_gap = gap
        return 1.0 / smallest_gap if smallest_gap else 0.0
