"""
OMDb wrappers - construction from settings.
"""

from adapters.config import Settings
from api.omdb.core import OMDbService


def build_ratings(settings: Settings) -> OMDbService:
    return OMDbService(
        api_key=settings.omdb_api_key,
        base_url=settings.omdb_base_url,
        timeout=settings.request_timeout_seconds,
        max_retries=settings.max_retries,
    )
