"""
Merge & Score Engine.

Fans every search term out to the catalog's title and person searches, folds
the per-term results into one map keyed by tmdb id, orders and paginates it.
The full ordered candidate list is cached per query, so every page of a query
is served from a single fan-out.
"""

from dataclasses import dataclass, field

from api.tmdb.models import MCCandidateItem
from contracts.errors import UpstreamUnavailable
from contracts.protocols import CatalogProvider
from core.ranking import (
    DEFAULT_PAGE_SIZE,
    merge_candidates,
    paginate,
    sort_candidates,
    total_pages,
)
from utils.async_runner import gather_bounded
from utils.cache import ResultCache
from utils.get_logger import get_logger

logger = get_logger(__name__)


def merge_cache_key(raw_query: str) -> str:
    return f"merge:{' '.join(raw_query.lower().split())}"


@dataclass
class MergePage:
    items: list[MCCandidateItem] = field(default_factory=list)
    total_results: int = 0
    total_pages: int = 0
    page: int = 1
    # False when some catalog searches failed; such a page must not be cached
    complete: bool = True

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages


class MergeScoreEngine:
    def __init__(
        self,
        catalog: CatalogProvider,
        cache: ResultCache,
        max_in_flight: int = 8,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.catalog = catalog
        self.cache = cache
        self.max_in_flight = max_in_flight
        self.page_size = page_size

    async def _fan_out(self, terms: list[str]) -> tuple[dict[int, MCCandidateItem], int]:
        """
        Run title and person search for every term and fold the results.

        A failed call contributes nothing. If every call failed the catalog is
        considered down.

        Returns:
            The folded candidates and the number of calls that failed

        Raises:
            UpstreamUnavailable: when no seed call succeeded
        """
        calls = []
        labels = []
        for term in terms:
            calls.append(self.catalog.search_titles(term))
            labels.append(("titles", term))
            calls.append(self.catalog.search_persons(term))
            labels.append(("persons", term))

        results = await gather_bounded(calls, limit=self.max_in_flight)

        merged: dict[int, MCCandidateItem] = {}
        failures = 0
        for (source, term), result in zip(labels, results, strict=True):
            if isinstance(result, BaseException):
                failures += 1
                logger.warning(f"{source} search failed for term '{term}': {result!r}")
                continue
            merge_candidates(merged, result)

        if calls and failures == len(calls):
            raise UpstreamUnavailable("tmdb", f"All {failures} catalog searches failed")

        logger.info(
            f"Merged {len(merged)} candidates from {len(terms)} terms "
            f"({failures}/{len(calls)} calls failed)"
        )
        return merged, failures

    async def _ranked(
        self, raw_query: str, terms: list[str]
    ) -> tuple[list[MCCandidateItem], bool]:
        if not terms:
            return [], True

        failures = 0

        async def compute() -> list[MCCandidateItem]:
            nonlocal failures
            merged, failures = await self._fan_out(terms)
            return sort_candidates(merged.values(), raw_query)

        ranked = await self.cache.get_or_compute(
            merge_cache_key(raw_query), compute, cacheable=lambda _: failures == 0
        )
        return ranked, failures == 0

    async def ranked_candidates(self, raw_query: str, terms: list[str]) -> list[MCCandidateItem]:
        """Full ordered candidate list for a query, read through the cache.

        Only a fan-out in which every search succeeded is cached.

        Raises:
            UpstreamUnavailable: when every catalog search failed (nothing is cached)
        """
        ranked, _ = await self._ranked(raw_query, terms)
        return ranked

    async def search_page(self, raw_query: str, terms: list[str], page: int = 1) -> MergePage:
        ranked, complete = await self._ranked(raw_query, terms)
        return MergePage(
            items=paginate(ranked, page, self.page_size),
            total_results=len(ranked),
            total_pages=total_pages(len(ranked), self.page_size),
            page=page,
            complete=complete,
        )
