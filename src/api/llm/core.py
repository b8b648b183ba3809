"""
Term extraction client for an OpenAI-compatible chat completions endpoint.
The model is asked for a JSON object {"terms": [...]} of movie search phrases.
"""

import asyncio
from typing import Any

from contracts.errors import UpstreamUnavailable
from utils.base_api_client import BaseAPIClient
from utils.get_logger import get_logger
from utils.parse_json import parse_json

logger = get_logger(__name__)

MAX_TERMS = 8

SYSTEM_PROMPT = """You turn a movie search request into short search phrases.
Return ONLY a JSON object, no explanations and no markdown:
{"terms": ["phrase", ...]}
Include titles, person names (actors, directors), genres and themes mentioned
or clearly implied by the request. At most 8 phrases, most specific first."""


class TermExtractionClient(BaseAPIClient):
    """Client for the text-analysis service used by the term extractor."""

    _rate_limit_max = 5
    _rate_limit_period = 1

    def __init__(
        self,
        api_url: str,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        timeout: float = 4.0,
    ):
        super().__init__(timeout=timeout, max_retries=1)
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.model = model

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    def _payload(self, query: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "temperature": 0,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": query},
            ],
        }

    async def extract_terms(self, query: str) -> list[str]:
        """
        Ask the service for search terms.

        Returns:
            Non-empty list of lowercased terms, in the order the service gave them

        Raises:
            UpstreamUnavailable: on transport failure, a non-200 status, or a
                response without a usable term list
        """
        url = f"{self.api_url}/chat/completions"
        try:
            body, status = await self._core_async_post_request(
                url, json_body=self._payload(query), headers=self._headers()
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise UpstreamUnavailable("llm", f"Term extraction request failed: {e!r}") from e

        if body is None:
            raise UpstreamUnavailable("llm", f"Term extraction returned status {status}")

        terms = self.parse_terms(body)
        if not terms:
            raise UpstreamUnavailable("llm", "Term extraction returned no usable terms")
        return terms

    @staticmethod
    def parse_terms(body: Any) -> list[str]:
        """Pull the term list out of a chat completions body; [] when it is not there."""
        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            logger.warning("Term extraction response missing choices[0].message.content")
            return []

        parsed = parse_json(content)
        if isinstance(parsed, dict):
            parsed = parsed.get("terms")
        if not isinstance(parsed, list):
            logger.warning(f"Term extraction content is not a term list: {str(content)[:200]}")
            return []

        terms = []
        for term in parsed:
            if not isinstance(term, str):
                continue
            cleaned = " ".join(term.lower().split())
            if cleaned and cleaned not in terms:
                terms.append(cleaned)
        return terms[:MAX_TERMS]
