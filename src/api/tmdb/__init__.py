"""
TMDB Services - catalog client for the search pipeline.
Title search, person (cast/crew) search and per-movie detail enrichment.
"""

from api.tmdb.core import TMDBService
from api.tmdb.models import MCCandidateItem, MCDetailFragment
from api.tmdb.person import PERSON_MATCH_MULTIPLIER, TMDBPersonService
from api.tmdb.search import TITLE_MATCH_WEIGHT, TMDBSearchService
from api.tmdb.wrappers import TMDBCatalog, build_catalog

__all__ = [
    # Services
    "TMDBService",
    "TMDBSearchService",
    "TMDBPersonService",
    "TMDBCatalog",
    "build_catalog",
    # Models
    "MCCandidateItem",
    "MCDetailFragment",
    # Weights
    "TITLE_MATCH_WEIGHT",
    "PERSON_MATCH_MULTIPLIER",
]
