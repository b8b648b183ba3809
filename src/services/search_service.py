"""
Aggregation Orchestrator.

Drives one search request: validate, extract terms, merge and rank catalog
candidates, enrich the requested page with detail facets and ratings, then
dedupe, score for display and wrap the page in the response envelope.
"""

import asyncio

from adapters.config import Settings
from adapters.redis_manager import RedisConfig, RedisManager
from api.llm import build_term_client
from api.omdb import MCRatingsItem, MCRatingsSearchResponse, build_ratings
from api.tmdb import MCCandidateItem, MCDetailFragment, build_catalog
from contracts.errors import InternalError, SearchError, UpstreamUnavailable, ValidationError
from contracts.models import EnrichedResult, MCSources, PersonalizedWeights, SearchResponse
from contracts.protocols import CatalogProvider, PreferenceSource, RatingsProvider
from core.merge_engine import MergePage, MergeScoreEngine
from core.ranking import (
    DEFAULT_PAGE_SIZE,
    dedupe_by_title,
    recommendation_score,
    sort_by_recommendation,
    total_pages,
)
from core.term_extractor import TermExtractor
from services.feedback_service import FeedbackService
from utils.async_runner import gather_bounded
from utils.cache import MemoryResultCache, RedisResultCache, ResultCache
from utils.get_logger import get_logger
from utils.normalize import normalize_title

logger = get_logger(__name__)

QUERY_REQUIRED = "Search query is required"


def page_cache_key(raw_query: str, page: int, user_id: str | None) -> str:
    query = " ".join(raw_query.lower().split())
    return f"search:{query}:{page}:{user_id or ''}"


class SearchService:
    def __init__(
        self,
        catalog: CatalogProvider,
        ratings: RatingsProvider | None,
        extractor: TermExtractor,
        cache: ResultCache,
        preferences: PreferenceSource | None = None,
        max_in_flight: int = 8,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.catalog = catalog
        self.ratings = ratings
        self.extractor = extractor
        self.cache = cache
        self.preferences = preferences
        self.max_in_flight = max_in_flight
        self.page_size = page_size
        self.engine = MergeScoreEngine(
            catalog, cache, max_in_flight=max_in_flight, page_size=page_size
        )

    async def search(
        self, query: str | None, page: int = 1, user_id: str | None = None
    ) -> SearchResponse:
        """
        Run a search and return one page of enriched, display-ordered results.

        Raises:
            ValidationError: empty query or page < 1
            InternalError: unexpected failure while merging, scoring or formatting
        """
        raw_query = (query or "").strip()
        if not raw_query:
            raise ValidationError(QUERY_REQUIRED)
        if page < 1:
            raise ValidationError("Page must be a positive integer")

        key = page_cache_key(raw_query, page, user_id)
        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug(f"Page cache hit: {key}")
            return cached.data

        try:
            response, complete = await self._search(raw_query, page, user_id)
        except UpstreamUnavailable as e:
            logger.warning(f"Search '{raw_query}' degraded to empty result: {e}")
            return SearchResponse.empty(page)
        except SearchError:
            raise
        except Exception as e:
            logger.error(f"Search '{raw_query}' failed: {e!r}", exc_info=True)
            raise InternalError(str(e)) from e

        if complete:
            await self.cache.put(key, response)
        else:
            logger.info(f"Not caching '{raw_query}' page {page}: built while an upstream was failing")
        return response

    async def _search(
        self, raw_query: str, page: int, user_id: str | None
    ) -> tuple[SearchResponse, bool]:
        """One uncached search. The flag is False when any upstream search failed."""
        terms = await self.extractor.extract(raw_query)
        logger.info(f"Search '{raw_query}' page {page}: terms={terms}")

        merge_result, ratings_result, weights = await asyncio.gather(
            self._merge_page(raw_query, terms, page),
            self._search_ratings(raw_query),
            self._load_weights(user_id),
        )

        if isinstance(merge_result, UpstreamUnavailable):
            if not ratings_result.results:
                raise merge_result
            merge_result = MergePage(page=page, complete=False)
        complete = merge_result.complete and ratings_result.error is None

        if merge_result.total_results == 0 and ratings_result.results:
            response, ratings_complete = await self._ratings_only_page(
                raw_query, ratings_result, page, weights
            )
            return response, complete and ratings_complete

        results = await self._enrich(merge_result.items, ratings_result)
        results = dedupe_by_title(results)
        for result in results:
            result.recommendation_score = recommendation_score(result, raw_query, weights)

        response = SearchResponse(
            total_results=merge_result.total_results,
            total_pages=merge_result.total_pages,
            page=page,
            has_more=merge_result.has_more,
            results=sort_by_recommendation(results),
        )
        return response, complete

    async def _merge_page(
        self, raw_query: str, terms: list[str], page: int
    ) -> MergePage | UpstreamUnavailable:
        # The ratings path can still answer when the catalog is down
        try:
            return await self.engine.search_page(raw_query, terms, page)
        except UpstreamUnavailable as e:
            return e

    async def _search_ratings(self, raw_query: str, page: int = 1) -> MCRatingsSearchResponse:
        if self.ratings is None:
            return MCRatingsSearchResponse.empty(query=raw_query)
        try:
            return await self.ratings.search_by_title(raw_query, page=page)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Ratings search failed for '{raw_query}': {e!r}")
            return MCRatingsSearchResponse.empty(query=raw_query, error=str(e))

    async def _load_weights(self, user_id: str | None) -> PersonalizedWeights | None:
        if not user_id or self.preferences is None:
            return None
        try:
            return await self.preferences.get_personalized_weights(user_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Personalized weights unavailable for {user_id}: {e!r}")
            return None

    async def _lookup_ratings(self, imdb_ids: list[str]) -> dict[str, MCRatingsItem]:
        if self.ratings is None or not imdb_ids:
            return {}
        unique_ids = list(dict.fromkeys(imdb_ids))
        lookups = await gather_bounded(
            (self.ratings.lookup_by_id(i) for i in unique_ids), limit=self.max_in_flight
        )
        records: dict[str, MCRatingsItem] = {}
        for imdb_id, record in zip(unique_ids, lookups, strict=True):
            if isinstance(record, BaseException):
                logger.warning(f"Ratings lookup failed for {imdb_id}: {record!r}")
            elif record is not None:
                records[imdb_id] = record
        return records

    async def _enrich(
        self, candidates: list[MCCandidateItem], ratings: MCRatingsSearchResponse
    ) -> list[EnrichedResult]:
        details = await gather_bounded(
            (self.catalog.fetch_details(c.tmdb_id) for c in candidates),
            limit=self.max_in_flight,
        )

        fragments: list[MCDetailFragment] = []
        for candidate, fragment in zip(candidates, details, strict=True):
            if isinstance(fragment, BaseException):
                logger.warning(f"Details failed for movie {candidate.tmdb_id}: {fragment!r}")
                fragment = MCDetailFragment(tmdb_id=candidate.tmdb_id)
            fragments.append(fragment)

        # Join ratings by IMDb id when details revealed one, else by title
        hits_by_title = {normalize_title(r.title): r for r in reversed(ratings.results)}
        join_ids: list[str | None] = []
        for candidate, fragment in zip(candidates, fragments, strict=True):
            if fragment.imdb_id:
                join_ids.append(fragment.imdb_id)
            else:
                hit = hits_by_title.get(normalize_title(candidate.title))
                join_ids.append(hit.imdb_id if hit else None)

        records = await self._lookup_ratings([i for i in join_ids if i])

        return [
            self._build_result(candidate, fragment, records.get(imdb_id) if imdb_id else None)
            for candidate, fragment, imdb_id in zip(candidates, fragments, join_ids, strict=True)
        ]

    @staticmethod
    def _build_result(
        candidate: MCCandidateItem,
        fragment: MCDetailFragment,
        record: MCRatingsItem | None,
    ) -> EnrichedResult:
        result = EnrichedResult(
            id=candidate.tmdb_id,
            title=candidate.title,
            original_title=candidate.original_title,
            release_date=candidate.release_date,
            overview=candidate.overview,
            poster_path=candidate.poster_path,
            popularity=candidate.popularity,
            vote_average=candidate.vote_average,
            vote_count=candidate.vote_count,
            genre_ids=list(candidate.genre_ids),
            score=candidate.score,
            matched_terms=sorted(candidate.matched_terms),
            cast_matches=sorted(candidate.cast_matches),
            keywords=list(fragment.keywords),
            genres=list(fragment.genres),
            watch_providers=fragment.watch_providers,
            cast=list(fragment.cast),
            director=fragment.director,
            runtime=fragment.runtime,
            imdb_id=fragment.imdb_id,
        )
        if record is not None:
            result.imdb_id = result.imdb_id or record.imdb_id
            result.imdb_rating = record.imdb_rating
            result.metascore = record.metascore
            result.ratings = dict(record.ratings)
        return result

    async def _ratings_only_page(
        self,
        raw_query: str,
        ratings: MCRatingsSearchResponse,
        page: int,
        weights: PersonalizedWeights | None,
    ) -> tuple[SearchResponse, bool]:
        """Build the page from ratings records when the catalog found nothing.

        The flag is False when re-querying ratings for a later page failed.
        """
        logger.info(f"No catalog candidates for '{raw_query}', serving ratings results")
        total = max(ratings.total_results, len(ratings.results))
        if page > 1:
            ratings = await self._search_ratings(raw_query, page)
        hits = ratings.results[: self.page_size]
        records = await self._lookup_ratings([h.imdb_id for h in hits])

        results = []
        for hit in hits:
            record = records.get(hit.imdb_id, hit)
            results.append(
                EnrichedResult(
                    id=record.imdb_id,
                    source=MCSources.OMDB,
                    title=record.title,
                    release_date=record.year,
                    overview=record.plot or "",
                    poster_path=record.poster,
                    vote_average=record.imdb_rating or 0.0,
                    vote_count=record.imdb_votes or 0,
                    genres=list(record.genres),
                    cast=list(record.actors),
                    director=record.director,
                    imdb_id=record.imdb_id,
                    imdb_rating=record.imdb_rating,
                    metascore=record.metascore,
                    ratings=dict(record.ratings),
                )
            )

        results = dedupe_by_title(results)
        for result in results:
            result.recommendation_score = recommendation_score(result, raw_query, weights)

        pages = total_pages(total, self.page_size)
        response = SearchResponse(
            total_results=total,
            total_pages=pages,
            page=page,
            has_more=page < pages,
            results=sort_by_recommendation(results),
        )
        return response, ratings.error is None


def build_cache(settings: Settings, redis_manager: RedisManager | None = None) -> ResultCache:
    if settings.cache_backend == "redis":
        manager = redis_manager or RedisManager(RedisConfig.from_settings(settings))
        return RedisResultCache(
            manager.get_redis(decode_responses=False), duration_ms=settings.cache_duration_ms
        )
    return MemoryResultCache(duration_ms=settings.cache_duration_ms)


def build_search_service(
    settings: Settings,
    feedback: FeedbackService | None = None,
    redis_manager: RedisManager | None = None,
) -> SearchService:
    """Wire the production pipeline from settings."""
    return SearchService(
        catalog=build_catalog(settings),
        ratings=build_ratings(settings) if settings.omdb_api_key else None,
        extractor=TermExtractor(
            build_term_client(settings), timeout=settings.llm_timeout_seconds
        ),
        cache=build_cache(settings, redis_manager),
        preferences=feedback,
        max_in_flight=settings.max_in_flight,
        page_size=settings.page_size,
    )
