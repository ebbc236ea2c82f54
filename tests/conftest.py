"""
Shared pytest fixtures for all tests.
"""
import tempfile
from pathlib import Path
from typing import Iterator

import pytest

from core.models import Session
from core.sessions import InMemorySessionService
from helpers import MockAgent, make_context


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def session_service() -> InMemorySessionService:
    """Create an empty in-memory session store."""
    return InMemorySessionService()


@pytest.fixture
def session() -> Session:
    """Create a detached session with no events."""
    return Session(id="s1", app_name="test_app", user_id="u1")


@pytest.fixture
def root_agent() -> MockAgent:
    """Create a root agent with no sub-agents."""
    return MockAgent("root_agent")


@pytest.fixture
def invocation_context(root_agent, session):
    """Create an invocation context for the root agent without plugins."""
    return make_context(root_agent, session=session)
