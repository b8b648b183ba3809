"""
Unit tests for TMDB Core Service.
Tests request handling and detail enrichment.
"""

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from api.tmdb.core import TMDBService
from contracts.errors import UpstreamUnavailable

pytestmark = pytest.mark.unit


class TestMakeRequest:
    @pytest.mark.asyncio
    async def test_adds_api_key_and_language(self, mock_tmdb_api_key):
        service = TMDBService(api_key=mock_tmdb_api_key)

        with patch.object(
            service, "_core_async_request", new=AsyncMock(return_value={"results": []})
        ) as mock_request:
            result = await service._make_request("search/movie", {"query": "heat"})

        assert result == {"results": []}
        kwargs = mock_request.call_args.kwargs
        assert kwargs["url"] == "https://api.themoviedb.org/3/search/movie"
        assert kwargs["params"] == {
            "language": "en-US",
            "query": "heat",
            "api_key": mock_tmdb_api_key,
        }

    @pytest.mark.asyncio
    async def test_custom_base_url(self, mock_tmdb_api_key):
        service = TMDBService(api_key=mock_tmdb_api_key, base_url="http://tmdb.local/3/")

        with patch.object(
            service, "_core_async_request", new=AsyncMock(return_value={})
        ) as mock_request:
            await service._make_request("movie/1")

        assert mock_request.call_args.kwargs["url"] == "http://tmdb.local/3/movie/1"

    @pytest.mark.asyncio
    async def test_transport_error_becomes_upstream_unavailable(self, mock_tmdb_api_key):
        service = TMDBService(api_key=mock_tmdb_api_key)

        with (
            patch.object(
                service,
                "_core_async_request",
                new=AsyncMock(side_effect=aiohttp.ClientConnectionError("refused")),
            ),
            pytest.raises(UpstreamUnavailable) as exc_info,
        ):
            await service._make_request("search/movie", {"query": "heat"})

        assert exc_info.value.source == "tmdb"

    @pytest.mark.asyncio
    async def test_error_status_becomes_upstream_unavailable(self, mock_tmdb_api_key):
        service = TMDBService(api_key=mock_tmdb_api_key)

        # _core_async_request returns None for 4xx and exhausted 5xx
        with (
            patch.object(service, "_core_async_request", new=AsyncMock(return_value=None)),
            pytest.raises(UpstreamUnavailable),
        ):
            await service._make_request("movie/1")


class TestFetchDetails:
    @pytest.mark.asyncio
    async def test_all_facets(self, mock_tmdb_api_key, movie_155_responses):
        service = TMDBService(api_key=mock_tmdb_api_key)

        async def mock_request(endpoint, params=None):
            return movie_155_responses[endpoint]

        with patch.object(service, "_make_request", new=AsyncMock(side_effect=mock_request)):
            fragment = await service.fetch_details(155)

        assert fragment.tmdb_id == 155
        assert fragment.imdb_id == "tt0468569"
        assert fragment.runtime == 152
        assert fragment.genres == ["Drama", "Action", "Crime", "Thriller"]
        assert fragment.keywords == ["dc comics", "crime fighter", "superhero", "based on comic"]
        # Region filtered, sorted by display priority
        assert fragment.watch_providers == {"US": {"flatrate": ["Hulu", "Max"], "rent": ["Apple TV"]}}
        # Cast ordered by billing
        assert fragment.cast == ["Christian Bale", "Heath Ledger", "Gary Oldman"]
        assert fragment.director == "Christopher Nolan"
        assert fragment.failed_facets == []

    @pytest.mark.asyncio
    async def test_keywords_failure_leaves_other_facets(
        self, mock_tmdb_api_key, movie_155_responses
    ):
        service = TMDBService(api_key=mock_tmdb_api_key)

        async def mock_request(endpoint, params=None):
            if endpoint.endswith("/keywords"):
                raise UpstreamUnavailable("tmdb", "keywords timed out")
            return movie_155_responses[endpoint]

        with patch.object(service, "_make_request", new=AsyncMock(side_effect=mock_request)):
            fragment = await service.fetch_details(155)

        assert fragment.keywords == []
        assert fragment.failed_facets == ["keywords"]
        assert fragment.genres == ["Drama", "Action", "Crime", "Thriller"]
        assert fragment.cast[0] == "Christian Bale"

    @pytest.mark.asyncio
    async def test_every_facet_failing_still_returns_fragment(self, mock_tmdb_api_key):
        service = TMDBService(api_key=mock_tmdb_api_key)

        with patch.object(
            service,
            "_make_request",
            new=AsyncMock(side_effect=UpstreamUnavailable("tmdb", "down")),
        ):
            fragment = await service.fetch_details(155)

        assert fragment.tmdb_id == 155
        assert fragment.imdb_id is None
        assert fragment.keywords == []
        assert fragment.watch_providers == {}
        assert sorted(fragment.failed_facets) == ["credits", "details", "keywords", "providers"]

    @pytest.mark.asyncio
    async def test_malformed_facet_payload_is_a_facet_failure(
        self, mock_tmdb_api_key, movie_155_responses
    ):
        service = TMDBService(api_key=mock_tmdb_api_key)
        responses = dict(movie_155_responses)
        responses["movie/155/credits"] = {"cast": "not a list"}

        async def mock_request(endpoint, params=None):
            return responses[endpoint]

        with patch.object(service, "_make_request", new=AsyncMock(side_effect=mock_request)):
            fragment = await service.fetch_details(155)

        assert fragment.failed_facets == ["credits"]
        assert fragment.cast == []
        assert fragment.director is None
        assert fragment.keywords
