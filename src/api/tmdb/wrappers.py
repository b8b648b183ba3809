"""
TMDB Catalog - the combined title/person/details client handed to the merge
engine and the orchestrator.
"""

from adapters.config import Settings
from api.tmdb.person import TMDBPersonService
from api.tmdb.search import TMDBSearchService


class TMDBCatalog(TMDBSearchService, TMDBPersonService):
    """Title search, person search and detail enrichment on one client."""


def build_catalog(settings: Settings) -> TMDBCatalog:
    return TMDBCatalog(
        api_key=settings.tmdb_api_key,
        base_url=settings.tmdb_base_url,
        timeout=settings.request_timeout_seconds,
        max_retries=settings.max_retries,
    )
