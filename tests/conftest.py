"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from quizcore.config import get_settings
from quizcore.question_types import OverrideResolver, QuestionTypeRegistry
from quizcore.stores import InMemoryDefinitionStore, InMemoryOverrideStore


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (in-memory SQLite)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached; drop the cache around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def definition_store():
    """Empty in-memory definition store."""
    return InMemoryDefinitionStore()


@pytest.fixture
def override_store():
    """Empty in-memory override store."""
    return InMemoryOverrideStore()


@pytest.fixture
def registry(definition_store):
    """Registry over the in-memory store, with process-independent collation."""
    return QuestionTypeRegistry(definition_store, collation="casefold")


@pytest.fixture
def resolver(registry, override_store):
    """Override resolver over the in-memory stores."""
    return OverrideResolver(registry, override_store)


@pytest.fixture
def sample_type_payload():
    """Provide a user-defined question type payload in wire form."""
    return {
        "key": "ordering_4",
        "title": "Ordering (4 steps)",
        "description": "Put four steps in the right order",
        "uiTemplate": "sequence_digits",
        "scoringRule": {
            "formula": "tiers",
            "mistakeMetric": "hamming_digits",
            "correctPoints": 3,
            "tiers": [
                {"maxMistakes": 1, "points": 2},
                {"maxMistakes": 2, "points": 1},
            ],
        },
    }


@pytest.fixture
def sample_choice_body():
    """Provide a multiple choice question body."""
    return {
        "options": [
            {"id": "a", "text": "TCP"},
            {"id": "b", "text": "UDP"},
            {"id": "c", "text": "ICMP"},
        ],
        "correct": ["a", "b"],
    }
