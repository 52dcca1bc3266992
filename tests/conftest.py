"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from wortdrill.learning import PerformanceLedger, SelectionEngine, SessionMachine, Word  # noqa: E402
from wortdrill.storage import MemoryStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite on tmp_path)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


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


@pytest.fixture
def store():
    """Empty in-memory key-value store."""
    return MemoryStore()


@pytest.fixture
def ledger(store):
    return PerformanceLedger(store)


@pytest.fixture
def rng():
    """Seeded random generator for reproducible draws."""
    return random.Random(1234)


@pytest.fixture
def engine(ledger, rng):
    return SelectionEngine(ledger, rng=rng)


@pytest.fixture
def machine(store, ledger, engine, rng):
    return SessionMachine(store, ledger, engine, rng=rng)


@pytest.fixture
def sample_words():
    """Provide a small German vocabulary for testing."""
    return [
        Word(text="der Hund", translation="the dog"),
        Word(text="die Katze", translation="the cat"),
        Word(text="das Haus", translation="the house"),
        Word(text="der Tisch", translation="the table"),
        Word(text="die Schule", translation="the school"),
    ]
