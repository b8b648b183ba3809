"""
Search result ranking/scoring system.

Two independent orderings are applied to a search:

Merge ordering (provider relevance):
    Candidates accumulate `score` across terms and sources. They are ordered by
    score * max(popularity, 1) descending, tmdb id ascending on ties. A query
    containing "latest" orders by release date instead, undated items last.

Display ordering (recommendation score):
    round(vote_average*10 + popularity*0.1 + vote_count*0.01
          + 50*w_kw   when a keyword appears in the query
          + 30*w_gen  when a genre name appears in the query
          + 100*w_cast when a cast member appears in the query)
    The w_* weights are 1.0 unless a user's feedback history says otherwise.
"""

import math
from collections.abc import Iterable
from datetime import date

from api.tmdb.models import MCCandidateItem
from contracts.models import EnrichedResult, PersonalizedWeights
from utils.normalize import contains_phrase, normalize_title

DEFAULT_PAGE_SIZE = 10
LATEST_MARKER = "latest"

VOTE_AVERAGE_WEIGHT = 10
POPULARITY_WEIGHT = 0.1
VOTE_COUNT_WEIGHT = 0.01
KEYWORD_BONUS = 50
GENRE_BONUS = 30
CAST_BONUS = 100


# ============================================================================
# Merge fold
# ============================================================================


def merge_candidates(
    running: dict[int, MCCandidateItem], incoming: dict[int, MCCandidateItem]
) -> dict[int, MCCandidateItem]:
    """
    Fold one term/source result set into the running map (in place).

    First sight inserts a copy; a repeat sight adds the incoming score and
    unions matched_terms and cast_matches. Addition and set union commute, so
    the folded map is the same for any order of incoming sets.
    """
    for tmdb_id, candidate in incoming.items():
        existing = running.get(tmdb_id)
        if existing is None:
            running[tmdb_id] = candidate.model_copy(deep=True)
        else:
            existing.absorb(candidate)
    return running


# ============================================================================
# Merge ordering
# ============================================================================


def relevance(candidate: MCCandidateItem) -> float:
    return candidate.score * max(candidate.popularity, 1.0)


def wants_latest(raw_query: str) -> bool:
    return LATEST_MARKER in (raw_query or "").lower()


def release_date_key(release_date: str | None) -> date:
    """Parse YYYY, YYYY-MM or YYYY-MM-DD; anything else is the oldest possible date."""
    if not release_date:
        return date.min
    parts = release_date.strip().split("-")
    try:
        year = int(parts[0])
        month = int(parts[1]) if len(parts) > 1 and parts[1] else 1
        day = int(parts[2]) if len(parts) > 2 and parts[2] else 1
        return date(year, month, day)
    except (ValueError, IndexError):
        return date.min


def sort_candidates(candidates: Iterable[MCCandidateItem], raw_query: str) -> list[MCCandidateItem]:
    if wants_latest(raw_query):
        return sorted(
            candidates,
            key=lambda c: (
                -release_date_key(c.release_date).toordinal(),
                -relevance(c),
                c.tmdb_id,
            ),
        )
    return sorted(candidates, key=lambda c: (-relevance(c), c.tmdb_id))


# ============================================================================
# Pagination
# ============================================================================


def total_pages(total: int, page_size: int = DEFAULT_PAGE_SIZE) -> int:
    return math.ceil(total / page_size) if total > 0 else 0


def paginate(items: list, page: int, page_size: int = DEFAULT_PAGE_SIZE) -> list:
    """One page of items; pages outside 1..total_pages are empty."""
    if page < 1:
        return []
    start = (page - 1) * page_size
    return items[start : start + page_size]


# ============================================================================
# Display ordering
# ============================================================================


def _matched(raw_query: str, values: Iterable[str]) -> list[str]:
    return [v for v in values if contains_phrase(raw_query, v)]


def recommendation_score(
    result: EnrichedResult,
    raw_query: str,
    weights: PersonalizedWeights | None = None,
) -> int:
    score = (
        result.vote_average * VOTE_AVERAGE_WEIGHT
        + result.popularity * POPULARITY_WEIGHT
        + result.vote_count * VOTE_COUNT_WEIGHT
    )

    keywords = _matched(raw_query, result.keywords)
    if keywords:
        score += KEYWORD_BONUS * (weights.weight_for("keywords", keywords) if weights else 1.0)

    genres = _matched(raw_query, result.genres)
    if genres:
        score += GENRE_BONUS * (weights.weight_for("genres", genres) if weights else 1.0)

    cast = _matched(raw_query, result.cast)
    if cast:
        score += CAST_BONUS * (weights.weight_for("actors", cast) if weights else 1.0)

    return round(score)


def sort_by_recommendation(results: list[EnrichedResult]) -> list[EnrichedResult]:
    # sorted() is stable: equal scores keep merge order
    return sorted(results, key=lambda r: -r.recommendation_score)


def dedupe_by_title(results: Iterable[EnrichedResult]) -> list[EnrichedResult]:
    """
    Collapse results whose normalized titles collide. The first occurrence
    wins and absorbs the later ones' matched terms and cast matches.
    """
    kept: dict[str, EnrichedResult] = {}
    ordered: list[EnrichedResult] = []
    for result in results:
        key = normalize_title(result.title) or f"id:{result.id}"
        first = kept.get(key)
        if first is None:
            kept[key] = result
            ordered.append(result)
            continue
        first.matched_terms = sorted(set(first.matched_terms) | set(result.matched_terms))
        first.cast_matches = sorted(set(first.cast_matches) | set(result.cast_matches))
    return ordered
