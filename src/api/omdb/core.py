"""
OMDb Core Service - ratings provider client.
Handles title search and lookup by IMDb id.
"""

import asyncio
import os
from typing import Any

from api.omdb.models import (
    MCRatingsItem,
    MCRatingsSearchResponse,
    OMDbSearchHit,
    OMDbSearchResponse,
    OMDbTitleResult,
)
from contracts.errors import UpstreamUnavailable
from utils.base_api_client import BaseAPIClient
from utils.get_logger import get_logger

logger = get_logger(__name__)

OMDB_BASE_URL = "https://www.omdbapi.com/"


class OMDbService(BaseAPIClient):
    """
    Core OMDb service. Every call is an idempotent GET carrying `apikey`.
    OMDb reports "no results" as `"Response": "False"`, which maps to an empty
    result rather than an error.
    """

    # Free OMDb keys are limited per day; keep bursts small
    _rate_limit_max = 5
    _rate_limit_period = 1

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 8.0,
        max_retries: int = 2,
    ):
        super().__init__(timeout=timeout, max_retries=max_retries)
        self.api_key = api_key if api_key is not None else os.getenv("OMDB_API_KEY")
        self.base_url = base_url or OMDB_BASE_URL
        if not self.api_key:
            logger.warning("OMDB_API_KEY not set; ratings calls will be rejected upstream")

    async def _make_request(self, params: dict[str, Any]) -> dict[str, Any]:
        """
        Raises:
            UpstreamUnavailable: on transport failure, timeout or a non-200 status
        """
        query = {**params, "apikey": self.api_key or ""}
        try:
            result = await self._core_async_request(url=self.base_url, params=query)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise UpstreamUnavailable("omdb", f"OMDb request failed: {e!r}") from e

        if not isinstance(result, dict):
            raise UpstreamUnavailable("omdb", "OMDb request returned no data")
        return result

    async def search_by_title(self, query: str, page: int = 1) -> MCRatingsSearchResponse:
        """
        Search OMDb movies by title.

        Args:
            query: Raw user query
            page: OMDb results page (10 per page)

        Returns:
            MCRatingsSearchResponse; empty when OMDb finds nothing

        Raises:
            UpstreamUnavailable: when the call fails or the payload is malformed
        """
        data = await self._make_request({"s": query, "type": "movie", "page": page})
        try:
            response = OMDbSearchResponse.model_validate(data)
        except ValueError as e:
            raise UpstreamUnavailable("omdb", f"Malformed OMDb search payload: {e}") from e

        if response.response != "True":
            logger.debug(f"OMDb search '{query}' found nothing: {response.error}")
            return MCRatingsSearchResponse.empty(query=query, error=response.error)

        results = [MCRatingsItem.from_search_hit(hit) for hit in self._unique_hits(response.search)]
        try:
            total = int(response.total_results or len(results))
        except ValueError:
            total = len(results)

        return MCRatingsSearchResponse(results=results, total_results=total, query=query)

    @staticmethod
    def _unique_hits(hits: list[OMDbSearchHit]) -> list[OMDbSearchHit]:
        seen: set[str] = set()
        unique = []
        for hit in hits:
            if hit.imdb_id in seen:
                continue
            seen.add(hit.imdb_id)
            unique.append(hit)
        return unique

    async def lookup_by_id(self, imdb_id: str) -> MCRatingsItem | None:
        """
        Full OMDb record for one IMDb id, or None when OMDb does not know it.

        Raises:
            UpstreamUnavailable: when the call fails or the payload is malformed
        """
        data = await self._make_request({"i": imdb_id, "plot": "short"})
        try:
            result = OMDbTitleResult.model_validate(data)
        except ValueError as e:
            raise UpstreamUnavailable("omdb", f"Malformed OMDb lookup payload: {e}") from e

        if result.response != "True":
            logger.debug(f"OMDb lookup {imdb_id} found nothing: {result.error}")
            return None

        try:
            return MCRatingsItem.from_title_result(result)
        except ValueError as e:
            raise UpstreamUnavailable("omdb", str(e)) from e
