"""
OMDb Services - ratings provider client.
"""

from api.omdb.core import OMDbService
from api.omdb.models import MCRatingsItem, MCRatingsSearchResponse
from api.omdb.wrappers import build_ratings

__all__ = [
    "OMDbService",
    "MCRatingsItem",
    "MCRatingsSearchResponse",
    "build_ratings",
]
