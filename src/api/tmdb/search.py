"""
TMDB Search Service - title search for the merge pipeline.
"""

from api.tmdb.core import TMDBService
from api.tmdb.models import MCCandidateItem
from api.tmdb.tmdb_models import TMDBSearchMovieResponse
from contracts.errors import UpstreamUnavailable
from utils.get_logger import get_logger

logger = get_logger(__name__)

# Base relevance credited to a movie each time a term finds it by title
TITLE_MATCH_WEIGHT = 1.0


class TMDBSearchService(TMDBService):
    """
    TMDB Search Service - turns a search term into scored title candidates.
    """

    async def search_titles(self, term: str, page: int = 1) -> dict[int, MCCandidateItem]:
        """
        Search movies by title.

        Args:
            term: One extracted search term
            page: TMDB results page

        Returns:
            Mapping of tmdb id to candidate, each scored TITLE_MATCH_WEIGHT with
            matched_terms={term}

        Raises:
            UpstreamUnavailable: when the search call fails or returns a malformed payload
        """
        data = await self._make_request(
            "search/movie", {"query": term, "page": page, "include_adult": "false"}
        )
        try:
            response = TMDBSearchMovieResponse.model_validate(data)
        except ValueError as e:
            raise UpstreamUnavailable("tmdb", f"Malformed title search payload: {e}") from e

        candidates: dict[int, MCCandidateItem] = {}
        for item in response.results:
            if item.id is None or item.id in candidates:
                continue
            candidates[item.id] = MCCandidateItem.from_movie_search(
                item, term=term, score=TITLE_MATCH_WEIGHT
            )

        logger.debug(f"Title search '{term}' -> {len(candidates)} candidates")
        return candidates
