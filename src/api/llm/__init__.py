"""
Text-analysis service client used for search term extraction.
"""

from api.llm.core import TermExtractionClient
from api.llm.wrappers import build_term_client

__all__ = ["TermExtractionClient", "build_term_client"]
