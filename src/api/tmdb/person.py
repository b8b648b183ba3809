"""
TMDB Person Service - cast and crew search for the merge pipeline.
A term that names a person pulls in that person's filmography.
"""

import asyncio

from api.tmdb.core import TMDBService
from api.tmdb.models import MCCandidateItem
from api.tmdb.search import TITLE_MATCH_WEIGHT
from api.tmdb.tmdb_models import (
    TMDBSearchMovie,
    TMDBSearchPersonItem,
    TMDBSearchPersonResponse,
)
from contracts.errors import UpstreamUnavailable
from utils.get_logger import get_logger

logger = get_logger(__name__)

# A credit found through a person weighs three title matches
PERSON_MATCH_MULTIPLIER = 3.0
# Only the most popular matches for a name are expanded into credits
PERSON_SEARCH_LIMIT = 3


class TMDBPersonService(TMDBService):
    """
    TMDB Person Service - Handles person search and credit expansion.
    Extends TMDBService with person-specific functionality.
    """

    async def search_person_index(self, term: str) -> list[TMDBSearchPersonItem]:
        """Resolve a term against the TMDB person index, most popular first.

        Raises:
            UpstreamUnavailable: when the person search fails
        """
        data = await self._make_request("search/person", {"query": term, "page": 1})
        try:
            response = TMDBSearchPersonResponse.model_validate(data)
        except ValueError as e:
            raise UpstreamUnavailable("tmdb", f"Malformed person search payload: {e}") from e
        people = sorted(response.results, key=lambda p: p.popularity, reverse=True)
        return people[:PERSON_SEARCH_LIMIT]

    async def _credited_movies(self, person: TMDBSearchPersonItem) -> list[TMDBSearchMovie]:
        """Every movie credit (cast and crew) for a person.

        Falls back to the person's known_for movies when the credits call fails.
        """
        try:
            credits = await self.person_credits(person.id)
            return [*credits.cast, *credits.crew]
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Credits unavailable for {person.name} ({person.id}), using known_for: {e}")
            known_for: list[TMDBSearchMovie] = []
            for entry in person.known_for:
                if entry.get("media_type", "movie") != "movie":
                    continue
                try:
                    known_for.append(TMDBSearchMovie.model_validate(entry))
                except ValueError:
                    continue
            return known_for

    async def search_persons(self, term: str) -> dict[int, MCCandidateItem]:
        """
        Find movies through the people a term names.

        Each credited movie becomes a candidate scored
        TITLE_MATCH_WEIGHT * PERSON_MATCH_MULTIPLIER with
        matched_terms={"term (as Person Name)"} and cast_matches={"Person Name"}.
        A movie credited several times to one person counts once for that person;
        credits from different people are folded together.

        Raises:
            UpstreamUnavailable: when the person index search fails
        """
        people = await self.search_person_index(term)
        if not people:
            return {}

        filmographies = await asyncio.gather(*(self._credited_movies(p) for p in people))

        person_score = TITLE_MATCH_WEIGHT * PERSON_MATCH_MULTIPLIER
        candidates: dict[int, MCCandidateItem] = {}
        for person, movies in zip(people, filmographies, strict=True):
            seen: set[int] = set()
            for movie in movies:
                if movie.id is None or movie.id in seen:
                    continue
                if not (movie.title or movie.original_title):
                    continue
                seen.add(movie.id)
                candidate = MCCandidateItem.from_movie_search(
                    movie, term=term, score=person_score, person_name=person.name
                )
                if movie.id in candidates:
                    candidates[movie.id].absorb(candidate)
                else:
                    candidates[movie.id] = candidate

        logger.debug(
            f"Person search '{term}' -> {len(people)} people, {len(candidates)} credited movies"
        )
        return candidates
