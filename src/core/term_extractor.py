"""
Search term extraction.

A raw query becomes an ordered, duplicate-free list of terms. The full query is
always the first term so an exact title never gets lost; individual words (or
the phrases a text-analysis service suggests) follow.
"""

import asyncio

from contracts.protocols import TermExtractionService
from utils.get_logger import get_logger

logger = get_logger(__name__)

STOP_WORDS = {"the", "and", "for", "with", "in", "on", "at", "to", "of", "a", "an"}
MIN_TOKEN_LENGTH = 3


def _collapse(text: str) -> str:
    return " ".join(text.lower().split())


def _dedupe(terms: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered = []
    for term in terms:
        if term and term not in seen:
            seen.add(term)
            ordered.append(term)
    return ordered


def tokenize_query(raw_query: str) -> list[str]:
    """
    Local fallback tokenizer.

    Lowercase, split on whitespace, drop short tokens and stop words. The whole
    query leads the list.

        >>> tokenize_query("The Dark Knight")
        ['the dark knight', 'dark', 'knight']
    """
    query = _collapse(raw_query or "")
    if not query:
        return []
    words = [w for w in query.split() if len(w) >= MIN_TOKEN_LENGTH and w not in STOP_WORDS]
    return _dedupe([query, *words])


class TermExtractor:
    """Turns a raw query into search terms. Never raises."""

    def __init__(self, service: TermExtractionService | None = None, timeout: float = 4.0):
        self.service = service
        self.timeout = timeout

    async def extract(self, raw_query: str) -> list[str]:
        query = _collapse(raw_query or "")
        if not query:
            return []
        if self.service is None:
            return tokenize_query(query)

        try:
            terms = await asyncio.wait_for(self.service.extract_terms(query), timeout=self.timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Term extraction service failed, tokenizing locally: {e!r}")
            return tokenize_query(query)

        if not isinstance(terms, list):
            logger.warning(f"Term extraction service returned {type(terms).__name__}, tokenizing locally")
            return tokenize_query(query)

        cleaned = [_collapse(t) for t in terms if isinstance(t, str)]
        cleaned = [t for t in cleaned if t]
        if not cleaned:
            return tokenize_query(query)

        return _dedupe([query, *cleaned])
