"""
Pipeline-facing TMDB models: merge candidates and detail fragments.
"""

from __future__ import annotations

from pydantic import Field

from api.tmdb.tmdb_models import TMDBSearchMovie
from utils.pydantic_tools import BaseModelWithMethods


class MCCandidateItem(BaseModelWithMethods):
    """A catalog movie plus the relevance accumulated while merging search terms."""

    tmdb_id: int
    title: str
    original_title: str | None = None
    release_date: str | None = None
    overview: str = ""
    poster_path: str | None = None
    popularity: float = 0.0
    vote_average: float = 0.0
    vote_count: int = 0
    genre_ids: list[int] = Field(default_factory=list)

    score: float = 0.0
    matched_terms: set[str] = Field(default_factory=set)
    cast_matches: set[str] = Field(default_factory=set)

    @classmethod
    def from_movie_search(
        cls,
        item: TMDBSearchMovie,
        term: str,
        score: float,
        person_name: str | None = None,
    ) -> MCCandidateItem:
        """Build a candidate from a search hit or a person credit.

        Raises:
            ValueError: if the item has no id
        """
        if item.id is None:
            raise ValueError("Movie item must have an id")

        title = item.title or item.original_title or "Untitled"
        matched = f"{term} (as {person_name})" if person_name else term

        return cls(
            tmdb_id=item.id,
            title=title,
            original_title=item.original_title,
            release_date=item.release_date or None,
            overview=item.overview or "",
            poster_path=item.poster_path,
            popularity=item.popularity or 0.0,
            vote_average=item.vote_average or 0.0,
            vote_count=item.vote_count or 0,
            genre_ids=list(item.genre_ids),
            score=score,
            matched_terms={matched},
            cast_matches={person_name} if person_name else set(),
        )

    def absorb(self, other: MCCandidateItem) -> None:
        """Fold another sighting of the same movie into this one.

        Scores add and term sets union, so the result does not depend on the
        order sightings arrive in.
        """
        self.score += other.score
        self.matched_terms |= other.matched_terms
        self.cast_matches |= other.cast_matches


class MCDetailFragment(BaseModelWithMethods):
    """Per-movie facets gathered after merging. Every facet defaults to empty."""

    tmdb_id: int
    imdb_id: str | None = None
    runtime: int | None = None
    genres: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    watch_providers: dict[str, dict[str, list[str]]] = Field(default_factory=dict)
    cast: list[str] = Field(default_factory=list)
    director: str | None = None
    failed_facets: list[str] = Field(default_factory=list)
