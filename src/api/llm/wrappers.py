"""
LLM wrappers - construction from settings.
"""

from adapters.config import Settings
from api.llm.core import TermExtractionClient


def build_term_client(settings: Settings) -> TermExtractionClient | None:
    """None when no service is configured; the extractor then tokenizes locally."""
    if not settings.llm_api_url:
        return None
    return TermExtractionClient(
        api_url=settings.llm_api_url,
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        timeout=settings.llm_timeout_seconds,
    )
