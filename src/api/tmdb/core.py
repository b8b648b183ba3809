"""
TMDB Core Service - Base service for TMDB API operations
Handles core API communication and per-movie detail enrichment.
"""

from __future__ import annotations

import asyncio
from typing import Any

from api.tmdb.auth import Auth
from api.tmdb.models import MCDetailFragment
from api.tmdb.tmdb_models import (
    TMDBCreditsResponse,
    TMDBKeywordsResponse,
    TMDBMovieDetailsResult,
    TMDBPersonMovieCreditsResponse,
    TMDBProvidersResponse,
)
from contracts.errors import PartialEnrichmentFailure, UpstreamUnavailable
from utils.base_api_client import BaseAPIClient
from utils.get_logger import get_logger

logger = get_logger(__name__)

DEFAULT_CAST_LIMIT = 10
PROVIDER_TYPES = ("flatrate", "free", "ads", "rent", "buy")


class TMDBService(Auth, BaseAPIClient):
    """
    Core TMDB service for API communication and media details.
    """

    # TMDB allows roughly 40 requests per second; stay under it
    _rate_limit_max = 35
    _rate_limit_period = 1

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 8.0,
        max_retries: int = 2,
        region: str = "US",
    ):
        Auth.__init__(self, api_key=api_key, base_url=base_url)
        BaseAPIClient.__init__(self, timeout=timeout, max_retries=max_retries)
        self.region = region

    async def _make_request(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Make async HTTP request to TMDB API.

        Args:
            endpoint: API endpoint (e.g., 'movie/123')
            params: Optional query parameters

        Returns:
            JSON response dict

        Raises:
            UpstreamUnavailable: on transport failure, timeout or a non-200 status
        """
        url = f"{self.base_url}/{endpoint}"
        query = {"language": "en-US", **(params or {}), **self.auth_params()}
        try:
            result = await self._core_async_request(url=url, params=query)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise UpstreamUnavailable("tmdb", f"TMDB request {endpoint} failed: {e!r}") from e

        if not isinstance(result, dict):
            raise UpstreamUnavailable("tmdb", f"TMDB request {endpoint} returned no data")
        return result

    # ------------------------------------------------------------------
    # Capability calls
    # ------------------------------------------------------------------

    async def person_credits(self, person_id: int) -> TMDBPersonMovieCreditsResponse:
        data = await self._make_request(f"person/{person_id}/movie_credits")
        return TMDBPersonMovieCreditsResponse.model_validate(data)

    async def item_details(self, tmdb_id: int) -> TMDBMovieDetailsResult:
        data = await self._make_request(f"movie/{tmdb_id}")
        return TMDBMovieDetailsResult.model_validate(data)

    async def item_keywords(self, tmdb_id: int) -> TMDBKeywordsResponse:
        data = await self._make_request(f"movie/{tmdb_id}/keywords")
        return TMDBKeywordsResponse.model_validate(data)

    async def item_providers(self, tmdb_id: int) -> TMDBProvidersResponse:
        data = await self._make_request(f"movie/{tmdb_id}/watch/providers")
        return TMDBProvidersResponse.model_validate(data)

    async def item_credits(self, tmdb_id: int) -> TMDBCreditsResponse:
        data = await self._make_request(f"movie/{tmdb_id}/credits")
        return TMDBCreditsResponse.model_validate(data)

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    async def fetch_details(self, tmdb_id: int) -> MCDetailFragment:
        """
        Fetch detail facets for one movie: details (genres, imdb id, runtime),
        keywords, watch providers and credits, all concurrently.

        A facet whose call fails is left empty and listed in failed_facets;
        the fragment itself is always returned.
        """
        facets = ("details", "keywords", "providers", "credits")
        results = await asyncio.gather(
            self.item_details(tmdb_id),
            self.item_keywords(tmdb_id),
            self.item_providers(tmdb_id),
            self.item_credits(tmdb_id),
            return_exceptions=True,
        )

        fragment = MCDetailFragment(tmdb_id=tmdb_id)
        for facet, result in zip(facets, results, strict=True):
            if isinstance(result, BaseException):
                failure = PartialEnrichmentFailure(facet, tmdb_id, f"{facet}: {result}")
                logger.warning(f"Detail facet failed for movie {tmdb_id}: {failure}")
                fragment.failed_facets.append(facet)
                continue
            self._apply_facet(fragment, facet, result)

        return fragment

    def _apply_facet(self, fragment: MCDetailFragment, facet: str, result: Any) -> None:
        if facet == "details":
            fragment.imdb_id = result.imdb_id or None
            fragment.runtime = result.runtime
            fragment.genres = [g.name for g in result.genres]
        elif facet == "keywords":
            fragment.keywords = self._parse_keywords(result)
        elif facet == "providers":
            fragment.watch_providers = self._parse_watch_providers(result)
        elif facet == "credits":
            cast, director = self._parse_cast_and_crew(result)
            fragment.cast = cast
            fragment.director = director

    @staticmethod
    def _parse_keywords(response: TMDBKeywordsResponse) -> list[str]:
        return [kw.name for kw in response.keywords if kw.name]

    def _parse_watch_providers(
        self, response: TMDBProvidersResponse
    ) -> dict[str, dict[str, list[str]]]:
        """Region -> availability type -> provider names (sorted by display priority).

        Only the configured region is kept; TMDB returns every country.
        """
        region = response.results.get(self.region)
        if region is None:
            return {}

        availability: dict[str, list[str]] = {}
        for provider_type in PROVIDER_TYPES:
            providers = sorted(getattr(region, provider_type), key=lambda p: p.display_priority)
            if providers:
                availability[provider_type] = [p.provider_name for p in providers]
        return {self.region: availability} if availability else {}

    @staticmethod
    def _parse_cast_and_crew(
        response: TMDBCreditsResponse, limit: int = DEFAULT_CAST_LIMIT
    ) -> tuple[list[str], str | None]:
        cast = [m.name for m in sorted(response.cast, key=lambda m: m.order)[:limit]]
        director = next((m.name for m in response.crew if m.job == "Director"), None)
        return cast, director
