"""
Response and request contracts shared by the search pipeline, the feedback
subsystem and the HTTP surface. Everything the frontend sees is camelCase.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from utils.pydantic_tools import BaseModelWithMethods


class MCSources(str, Enum):
    TMDB = "tmdb"
    OMDB = "omdb"


class CamelModel(BaseModelWithMethods):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EnrichedResult(CamelModel):
    """A merged candidate joined with its detail facets and ratings."""

    id: int | str
    source: MCSources = MCSources.TMDB
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
    matched_terms: list[str] = Field(default_factory=list)
    cast_matches: list[str] = Field(default_factory=list)

    keywords: list[str] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    watch_providers: dict[str, dict[str, list[str]]] = Field(default_factory=dict)
    cast: list[str] = Field(default_factory=list)
    director: str | None = None
    runtime: int | None = None

    imdb_id: str | None = None
    imdb_rating: float | None = None
    metascore: int | None = None
    ratings: dict[str, str] = Field(default_factory=dict)

    recommendation_score: int = 0


class SearchResponse(CamelModel):
    total_results: int = 0
    total_pages: int = 0
    page: int = 1
    has_more: bool = False
    results: list[EnrichedResult] = Field(default_factory=list, alias="Search")

    @classmethod
    def empty(cls, page: int = 1) -> "SearchResponse":
        return cls(total_results=0, total_pages=0, page=page, has_more=False, results=[])


class FeedbackResultItem(CamelModel):
    movie_id: str
    title: str = ""
    position: int | None = None
    clicked: bool = False


class FeedbackRecord(CamelModel):
    """One piece of user feedback on a search result list."""

    user_id: str
    search_context: str = ""
    match_factors: list[str] = Field(default_factory=list)
    rating: Literal["positive", "negative", "neutral"] = "neutral"
    note: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    search_results: list[FeedbackResultItem] = Field(default_factory=list)
    ai_credits_used: int | None = None


PREFERENCE_CATEGORIES = ("genres", "actors", "directors", "keywords", "eras")


class PersonalizedWeights(BaseModelWithMethods):
    """Per-category value -> weight maps, every weight within [0.1, 2.0]."""

    genres: dict[str, float] = Field(default_factory=dict)
    actors: dict[str, float] = Field(default_factory=dict)
    directors: dict[str, float] = Field(default_factory=dict)
    keywords: dict[str, float] = Field(default_factory=dict)
    eras: dict[str, float] = Field(default_factory=dict)

    @classmethod
    def default_weights(cls) -> "PersonalizedWeights":
        return cls(**{category: {"weight": 1.0} for category in PREFERENCE_CATEGORIES})

    def weight_for(self, category: str, values: list[str]) -> float:
        """Largest stored weight among values (case-insensitive), 1.0 when none is stored."""
        stored: dict[str, Any] = {k.lower(): v for k, v in getattr(self, category).items()}
        weights = [float(stored[v.lower()]) for v in values if v and v.lower() in stored]
        return max(weights) if weights else 1.0
