"""
Shared fixtures and utilities for TMDB service tests.

Fixtures under fixtures/ are trimmed copies of real TMDB v3 responses.
"""

# Set environment to test mode FIRST, before any imports
import os

os.environ["ENVIRONMENT"] = "test"

import json
from pathlib import Path

import pytest


def pytest_configure(config):
    """Pytest hook to configure test environment before any tests run."""
    os.environ["ENVIRONMENT"] = "test"


FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(filename: str) -> dict:
    """Load a fixture from JSON file.

    Raises:
        FileNotFoundError: If fixture file doesn't exist
    """
    fixture_path = FIXTURES_DIR / filename
    if not fixture_path.exists():
        raise FileNotFoundError(f"Fixture file not found: {fixture_path}")

    with open(fixture_path) as f:
        return json.load(f)


@pytest.fixture
def mock_tmdb_api_key():
    """Mock TMDB API key."""
    return "test_tmdb_key_12345"


@pytest.fixture
def movie_155_responses():
    """Endpoint -> payload for every detail facet of The Dark Knight."""
    return {
        "movie/155": load_fixture("movie_details_155.json"),
        "movie/155/keywords": load_fixture("movie_keywords_155.json"),
        "movie/155/watch/providers": load_fixture("movie_providers_155.json"),
        "movie/155/credits": load_fixture("movie_credits_155.json"),
    }
