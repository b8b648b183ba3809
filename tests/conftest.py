"""
Shared fixtures for pipeline and HTTP tests.
"""

# Set environment to test mode FIRST, before any imports
import os

os.environ["ENVIRONMENT"] = "test"

import pytest

from doubles import FakeRedis


@pytest.fixture
def fake_redis():
    return FakeRedis()
