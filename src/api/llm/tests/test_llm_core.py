"""
Unit tests for the term extraction client.
"""

import os

os.environ["ENVIRONMENT"] = "test"

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from api.llm.core import MAX_TERMS, TermExtractionClient
from contracts.errors import UpstreamUnavailable

pytestmark = pytest.mark.unit


def _completion(content: str) -> dict:
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def client():
    return TermExtractionClient(api_url="http://llm.local/v1/", api_key="sk-test")


class TestExtractTerms:
    @pytest.mark.asyncio
    async def test_extract_terms(self, client):
        body = _completion('{"terms": ["The Dark Knight", "christian bale", "the dark knight"]}')

        with patch.object(
            client, "_core_async_post_request", new=AsyncMock(return_value=(body, 200))
        ) as mock_post:
            terms = await client.extract_terms("dark knight with bale")

        assert terms == ["the dark knight", "christian bale"]
        args, kwargs = mock_post.call_args
        assert args[0] == "http://llm.local/v1/chat/completions"
        assert kwargs["headers"] == {"Authorization": "Bearer sk-test"}
        assert kwargs["json_body"]["messages"][-1]["content"] == "dark knight with bale"

    @pytest.mark.asyncio
    async def test_no_key_sends_no_auth_header(self):
        client = TermExtractionClient(api_url="http://llm.local/v1")
        body = _completion('["heat"]')

        with patch.object(
            client, "_core_async_post_request", new=AsyncMock(return_value=(body, 200))
        ) as mock_post:
            assert await client.extract_terms("heat") == ["heat"]

        assert mock_post.call_args.kwargs["headers"] == {}

    @pytest.mark.asyncio
    async def test_error_status_raises(self, client):
        with (
            patch.object(
                client, "_core_async_post_request", new=AsyncMock(return_value=(None, 503))
            ),
            pytest.raises(UpstreamUnavailable),
        ):
            await client.extract_terms("heat")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, client):
        with (
            patch.object(
                client,
                "_core_async_post_request",
                new=AsyncMock(side_effect=aiohttp.ClientConnectionError("refused")),
            ),
            pytest.raises(UpstreamUnavailable),
        ):
            await client.extract_terms("heat")

    @pytest.mark.asyncio
    async def test_unusable_content_raises(self, client):
        body = _completion("I could not find any movies, sorry.")

        with (
            patch.object(
                client, "_core_async_post_request", new=AsyncMock(return_value=(body, 200))
            ),
            pytest.raises(UpstreamUnavailable),
        ):
            await client.extract_terms("heat")


class TestParseTerms:
    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"choices": []},
            {"choices": [{"message": {}}]},
            _completion('{"terms": "heat"}'),
            _completion('{"keywords": ["heat"]}'),
            _completion('{"terms": [1, null, ""]}'),
            "not a dict",
        ],
    )
    def test_malformed_bodies_give_no_terms(self, body):
        assert TermExtractionClient.parse_terms(body) == []

    def test_terms_are_capped(self):
        terms = [f"term {i}" for i in range(MAX_TERMS + 5)]
        body = _completion('{"terms": [' + ", ".join(f'"{t}"' for t in terms) + "]}")

        assert TermExtractionClient.parse_terms(body) == terms[:MAX_TERMS]
