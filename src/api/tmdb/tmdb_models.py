"""
TMDB Models - Pydantic models for raw TMDB v3 responses.
Every field has a default so partial payloads validate; a payload of the wrong
shape altogether raises pydantic.ValidationError, which callers treat as an
upstream failure.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# ============================================================================
# Search
# ============================================================================


class TMDBSearchMovie(BaseModel):
    """Model for a movie result from TMDB search API."""

    adult: bool = False
    backdrop_path: str | None = None
    id: int | None = None
    title: str | None = None
    original_language: str | None = None
    original_title: str | None = None
    overview: str | None = ""
    poster_path: str | None = None
    media_type: str | None = "movie"
    genre_ids: list[int] = Field(default_factory=list)
    popularity: float | None = 0.0
    release_date: str | None = None
    video: bool = False
    vote_average: float | None = 0.0
    vote_count: int | None = 0


class TMDBSearchMovieResponse(BaseModel):
    page: int = 1
    results: list[TMDBSearchMovie] = Field(default_factory=list)
    total_pages: int = 0
    total_results: int = 0


class TMDBSearchPersonItem(BaseModel):
    """Model for a person result from TMDB search API."""

    adult: bool = False
    gender: int | None = None
    id: int
    known_for_department: str | None = None
    name: str
    original_name: str | None = None
    popularity: float = 0.0
    profile_path: str | None = None
    known_for: list[dict[str, Any]] = Field(default_factory=list)


class TMDBSearchPersonResponse(BaseModel):
    page: int = 1
    results: list[TMDBSearchPersonItem] = Field(default_factory=list)
    total_pages: int = 0
    total_results: int = 0


# ============================================================================
# Person credits
# ============================================================================


class TMDBPersonMovieCredit(TMDBSearchMovie):
    character: str | None = None
    job: str | None = None
    department: str | None = None
    credit_id: str | None = None


class TMDBPersonMovieCreditsResponse(BaseModel):
    id: int | None = None
    cast: list[TMDBPersonMovieCredit] = Field(default_factory=list)
    crew: list[TMDBPersonMovieCredit] = Field(default_factory=list)


# ============================================================================
# Details facets
# ============================================================================


class TMDBGenre(BaseModel):
    id: int
    name: str


class TMDBKeyword(BaseModel):
    id: int
    name: str


class TMDBKeywordsResponse(BaseModel):
    id: int | None = None
    keywords: list[TMDBKeyword] = Field(default_factory=list)


class TMDBCastMember(BaseModel):
    id: int
    name: str
    character: str | None = None
    order: int = 999


class TMDBCrewMember(BaseModel):
    id: int
    name: str
    job: str | None = None
    department: str | None = None


class TMDBCreditsResponse(BaseModel):
    id: int | None = None
    cast: list[TMDBCastMember] = Field(default_factory=list)
    crew: list[TMDBCrewMember] = Field(default_factory=list)


class TMDBWatchProvider(BaseModel):
    provider_id: int
    provider_name: str
    display_priority: int = 999
    logo_path: str | None = None


class TMDBWatchProviderRegion(BaseModel):
    link: str | None = None
    flatrate: list[TMDBWatchProvider] = Field(default_factory=list)
    free: list[TMDBWatchProvider] = Field(default_factory=list)
    ads: list[TMDBWatchProvider] = Field(default_factory=list)
    rent: list[TMDBWatchProvider] = Field(default_factory=list)
    buy: list[TMDBWatchProvider] = Field(default_factory=list)


class TMDBProvidersResponse(BaseModel):
    id: int | None = None
    results: dict[str, TMDBWatchProviderRegion] = Field(default_factory=dict)


class TMDBMovieDetailsResult(BaseModel):
    id: int
    title: str | None = None
    original_title: str | None = None
    imdb_id: str | None = None
    genres: list[TMDBGenre] = Field(default_factory=list)
    runtime: int | None = None
    release_date: str | None = None
    overview: str | None = None
    popularity: float = 0.0
    vote_average: float = 0.0
    vote_count: int = 0
