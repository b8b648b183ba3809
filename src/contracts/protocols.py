"""
Capability interfaces the pipeline depends on. Concrete clients live under
api/, tests substitute AsyncMock objects with the same method names.
"""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from api.omdb.models import MCRatingsItem, MCRatingsSearchResponse
    from api.tmdb.models import MCCandidateItem, MCDetailFragment
    from contracts.models import PersonalizedWeights


class CatalogProvider(Protocol):
    async def search_titles(self, term: str) -> dict[int, "MCCandidateItem"]: ...

    async def search_persons(self, term: str) -> dict[int, "MCCandidateItem"]: ...

    async def fetch_details(self, tmdb_id: int) -> "MCDetailFragment": ...


class RatingsProvider(Protocol):
    async def search_by_title(self, query: str, page: int = 1) -> "MCRatingsSearchResponse": ...

    async def lookup_by_id(self, imdb_id: str) -> "MCRatingsItem | None": ...


class TermExtractionService(Protocol):
    async def extract_terms(self, query: str) -> list[str]: ...


class PreferenceSource(Protocol):
    async def get_personalized_weights(self, user_id: str) -> "PersonalizedWeights": ...
