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

from bactericards.deck import CardDeck  # noqa: E402
from bactericards.state_store import MemoryStore  # noqa: E402

START_TIME = 1_700_000_000.0


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FakeClock:
    """Controllable clock returning epoch seconds."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FixedFlipRandom(random.Random):
    """random.Random whose coin flips always return the same value."""

    def __init__(self, flip: float, seed: int = 0):
        super().__init__(seed)
        self.flip = flip

    def random(self) -> float:
        return self.flip


def make_records(count: int) -> list[dict]:
    """Dataset records shaped like the real bacteriology deck."""
    return [
        {
            "Noms": f"Bacterie {i:02d}",
            "Localisation": f"Site {i}",
            "Symptomes maladies": f"Maladie {i}",
            "Spécificités Diagnostic": f"Diagnostic {i}",
            "Traitement Prévention": f"Traitement {i}",
        }
        for i in range(count)
    ]


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def deck():
    """A ten-card deck."""
    return CardDeck.from_records(make_records(10))


@pytest.fixture
def big_deck():
    """A twenty-card deck."""
    return CardDeck.from_records(make_records(20))


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    """Frozen clock; tests advance it explicitly."""
    return FakeClock()


@pytest.fixture
def normal_rng():
    """Random source that always draws the normal orientation."""
    return FixedFlipRandom(0.9)


@pytest.fixture
def deck_file(tmp_path):
    """A ten-card deck written to disk."""
    import json

    path = tmp_path / "bacteries.json"
    path.write_text(json.dumps(make_records(10), ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def make_deck():
    """Factory for decks of any size."""
    return lambda count: CardDeck.from_records(make_records(count))


@pytest.fixture
def record_factory():
    """Factory for raw dataset records."""
    return make_records


@pytest.fixture
def flip_rng():
    """Factory: flip_rng(0.1) always draws reversed, flip_rng(0.9) never does."""
    return FixedFlipRandom
