"""
OMDb Models - Pydantic models for OMDb API payloads and the pipeline-facing
ratings record.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from contracts.models import MCSources
from utils.pydantic_tools import BaseModelWithMethods

NOT_AVAILABLE = "N/A"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return None if not value or value == NOT_AVAILABLE else value


def _split_list(value: str | None) -> list[str]:
    cleaned = _clean(value)
    if cleaned is None:
        return []
    return [part.strip() for part in cleaned.split(",") if part.strip()]


def _to_float(value: str | None) -> float | None:
    cleaned = _clean(value)
    if cleaned is None:
        return None
    try:
        return float(cleaned.replace(",", ""))
    except ValueError:
        return None


def _to_int(value: str | None) -> int | None:
    number = _to_float(value)
    return int(number) if number is not None else None


# ========== OMDb API Response Models ==========


class OMDbRating(BaseModel):
    source: str = Field(alias="Source")
    value: str = Field(alias="Value")


class OMDbSearchHit(BaseModel):
    """One entry of an `s=` search response."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    title: str = Field(alias="Title")
    year: str | None = Field(default=None, alias="Year")
    imdb_id: str = Field(alias="imdbID")
    type: str | None = Field(default=None, alias="Type")
    poster: str | None = Field(default=None, alias="Poster")


class OMDbSearchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    search: list[OMDbSearchHit] = Field(default_factory=list, alias="Search")
    total_results: str | None = Field(default=None, alias="totalResults")
    response: str = Field(default="False", alias="Response")
    error: str | None = Field(default=None, alias="Error")


class OMDbTitleResult(BaseModel):
    """Response of an `i=` lookup."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    title: str | None = Field(default=None, alias="Title")
    year: str | None = Field(default=None, alias="Year")
    genre: str | None = Field(default=None, alias="Genre")
    director: str | None = Field(default=None, alias="Director")
    actors: str | None = Field(default=None, alias="Actors")
    plot: str | None = Field(default=None, alias="Plot")
    poster: str | None = Field(default=None, alias="Poster")
    ratings: list[OMDbRating] = Field(default_factory=list, alias="Ratings")
    metascore: str | None = Field(default=None, alias="Metascore")
    imdb_rating: str | None = Field(default=None, alias="imdbRating")
    imdb_votes: str | None = Field(default=None, alias="imdbVotes")
    imdb_id: str | None = Field(default=None, alias="imdbID")
    type: str | None = Field(default=None, alias="Type")
    response: str = Field(default="False", alias="Response")
    error: str | None = Field(default=None, alias="Error")


# ========== MediaCircle Models ==========


class MCRatingsItem(BaseModelWithMethods):
    """A ratings-provider record, from either a search hit or a full lookup."""

    imdb_id: str
    title: str
    year: str | None = None
    imdb_rating: float | None = None
    imdb_votes: int | None = None
    metascore: int | None = None
    ratings: dict[str, str] = Field(default_factory=dict)
    genres: list[str] = Field(default_factory=list)
    actors: list[str] = Field(default_factory=list)
    director: str | None = None
    plot: str | None = None
    poster: str | None = None
    source: MCSources = MCSources.OMDB

    @classmethod
    def from_search_hit(cls, hit: OMDbSearchHit) -> MCRatingsItem:
        return cls(
            imdb_id=hit.imdb_id,
            title=hit.title,
            year=_clean(hit.year),
            poster=_clean(hit.poster),
        )

    @classmethod
    def from_title_result(cls, result: OMDbTitleResult) -> MCRatingsItem:
        """Build a record from a lookup.

        Raises:
            ValueError: if the lookup carries no imdb id or title
        """
        if not result.imdb_id or not result.title:
            raise ValueError("OMDb lookup result must have imdbID and Title")
        return cls(
            imdb_id=result.imdb_id,
            title=result.title,
            year=_clean(result.year),
            imdb_rating=_to_float(result.imdb_rating),
            imdb_votes=_to_int(result.imdb_votes),
            metascore=_to_int(result.metascore),
            ratings={r.source: r.value for r in result.ratings},
            genres=_split_list(result.genre),
            actors=_split_list(result.actors),
            director=_clean(result.director),
            plot=_clean(result.plot),
            poster=_clean(result.poster),
        )


class MCRatingsSearchResponse(BaseModelWithMethods):
    results: list[MCRatingsItem] = Field(default_factory=list)
    total_results: int = 0
    query: str = ""
    error: str | None = None

    @classmethod
    def empty(cls, query: str = "", error: str | None = None) -> MCRatingsSearchResponse:
        return cls(query=query, error=error)
