"""
TMDB Auth Service - Base service with authentication utilities.
TMDB v3 endpoints take the API key as a query parameter.
"""

import os

from utils.get_logger import get_logger

logger = get_logger(__name__)


class Auth:
    """
    Base TMDB service with authentication utilities.
    Provides foundation for TMDB API operations.
    """

    _tmdb_api_key: str | None = None
    base_url: str = "https://api.themoviedb.org/3"

    def __init__(self, api_key: str | None = None, base_url: str | None = None):
        if base_url:
            self.base_url = base_url.rstrip("/")
        self._tmdb_api_key = api_key

    @property
    def tmdb_api_key(self) -> str | None:
        """Lazy-load the TMDB API key from the environment when not injected."""
        if self._tmdb_api_key is None:
            self._tmdb_api_key = os.getenv("TMDB_API_KEY")
            if not self._tmdb_api_key:
                logger.error("TMDB_API_KEY not available in settings or environment")
        return self._tmdb_api_key

    def auth_params(self) -> dict[str, str]:
        """Query parameters carrying the API key."""
        return {"api_key": self.tmdb_api_key or ""}
