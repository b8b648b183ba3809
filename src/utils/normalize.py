import re


def normalize(name: str) -> str:
    """
    Normalize a name for comparison by:
    - Converting to lowercase
    - Removing special characters
    - Removing extra whitespace

    Args:
        name: The name to normalize

    Returns:
        Normalized name string
    """
    if not name:
        return ""

    normalized = name.lower().strip()

    # Keep only letters, numbers, and spaces
    normalized = re.sub(r"[^a-z0-9\s]", "", normalized)

    return " ".join(normalized.split())


def normalize_title(title: str | None) -> str:
    """Join key for titles coming from different providers.

    "The Dark Knight", "the dark knight " and "The Dark Knight!" all map to
    "the dark knight". Accented letters are dropped, same as normalize().
    """
    return normalize(title or "")


def contains_phrase(haystack: str, phrase: str | None) -> bool:
    """Case-insensitive substring test used for query/facet overlap bonuses."""
    if not phrase:
        return False
    needle = phrase.strip().lower()
    return bool(needle) and needle in haystack.lower()
