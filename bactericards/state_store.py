"""
State Store for BacteriCards.

Provides persistence for:
- Card status per deck card (difficulty, streaks, failures, interval)
- Deck proportion (share of the deck in play)
- Included subset indices

The scheduler only needs a key-value port with synchronous get/set of
JSON-serialisable values. Two implementations ship here: an in-memory store
for tests and embedding, and a SQLite store (default: ~/.bactericards/state.db).
"""

from __future__ import annotations

import json
import sqlite3
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from .config import ALLOWED_PROPORTIONS
from .deck import CardDeck

CARD_STATUSES_KEY = "card-statuses"
DECK_PROPORTION_KEY = "deck-proportion"
INCLUDED_INDICES_KEY = "included-indices"

DEFAULT_DECK_PROPORTION = 100

# =============================================================================
# Data Classes
# =============================================================================


class Difficulty(str, Enum):
    """Self-reported difficulty judgment for a card."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class CardStatus(BaseModel):
    """
    Scheduling state for a single card.

    Serialised with camelCase keys (lastSeen, timesReviewed, ...). A difficulty
    of None means the card has never been answered.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    difficulty: Difficulty | None = None
    last_seen: int = 0  # epoch milliseconds
    times_reviewed: int = 0  # easy answers only
    streak: int = 0
    failure_count: int = 0
    last_interval: float = 0.0  # seconds, 0 = never scheduled
    reverse_streak: int = 0
    reverse_failure_count: int = 0
    is_included: bool = True

    @property
    def is_mastered(self) -> bool:
        """Mastered once judged easy at least twice, and still easy."""
        return self.difficulty == Difficulty.EASY and self.times_reviewed >= 2

    def current_streak(self, reversed: bool) -> int:
        return self.reverse_streak if reversed else self.streak

    def current_failures(self, reversed: bool) -> int:
        return self.reverse_failure_count if reversed else self.failure_count

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dictionary."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_dict(cls, data: dict) -> CardStatus:
        """Create from a stored dictionary."""
        return cls.model_validate(data)


def default_statuses(deck: CardDeck, included: set[int], now_ms: int) -> list[CardStatus]:
    """
    Fresh statuses for every deck card.

    Args:
        deck: The card deck
        included: Indices of the active subset
        now_ms: Creation timestamp in epoch milliseconds

    Returns:
        One default CardStatus per card, in deck order
    """
    return [
        CardStatus(id=card.name, last_seen=now_ms, is_included=i in included)
        for i, card in enumerate(deck)
    ]


# =============================================================================
# Key-Value Port
# =============================================================================


class KeyValueStore(Protocol):
    """Synchronous key-value persistence for JSON-serialisable values."""

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value, or default if the key is absent."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any previous one."""
        ...


class MemoryStore:
    """
    Dict-backed store.

    Values pass through JSON on the way in and out, so callers never share
    references with the stored state.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class SQLiteStore:
    """
    SQLite-backed key-value store.

    A single table maps keys to JSON text. Writes commit immediately; there
    is no transaction spanning several keys.
    """

    DEFAULT_DB_PATH = Path.home() / ".bactericards" / "state.db"

    def __init__(self, db_path: Path | None = None):
        """
        Initialize the store.

        Args:
            db_path: Custom database path (defaults to ~/.bactericards/state.db)
        """
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._init_schema()

        logger.info(f"SQLiteStore initialized at {self.db_path}")

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_schema(self) -> None:
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        self.conn.commit()

    def get(self, key: str, default: Any = None) -> Any:
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cursor.fetchone()

        if row is None:
            return default

        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding unreadable value for {key!r}: {e}")
            return default

    def set(self, key: str, value: Any) -> None:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO kv_store (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
        """,
            (key, json.dumps(value)),
        )
        self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None


# =============================================================================
# Card Status Store
# =============================================================================


class CardStatusStore:
    """
    Typed access to the persisted scheduling state.

    Handles:
    - card-statuses: list of CardStatus dicts aligned with the deck
    - deck-proportion: int in {25, 50, 75, 100}
    - included-indices: sorted list of subset indices
    """

    def __init__(self, backend: KeyValueStore):
        self.backend = backend

    # =========================================================================
    # Card Statuses
    # =========================================================================

    def load_statuses(self, deck: CardDeck) -> list[CardStatus] | None:
        """
        Load statuses aligned with the deck.

        Stored records are matched to deck cards by name, so a deck that
        gained, lost or reordered cards keeps the history of the cards it
        still has. Cards without a record are returned as None entries for
        the caller to fill.

        Args:
            deck: The current card deck

        Returns:
            List aligned with the deck (None where no record exists), or
            None if nothing usable is stored
        """
        raw = self.backend.get(CARD_STATUSES_KEY)
        if not isinstance(raw, list) or not raw:
            return None

        by_name: dict[str, CardStatus] = {}
        for entry in raw:
            try:
                status = CardStatus.from_dict(entry)
            except ValidationError as e:
                logger.warning(f"Ignoring corrupt card status: {e.error_count()} error(s)")
                continue
            by_name[status.id] = status

        if not by_name:
            return None

        aligned = [by_name.get(name) for name in deck.names]
        if [s.id for s in by_name.values()] != deck.names:
            matched = sum(1 for s in aligned if s is not None)
            logger.warning(
                f"Stored statuses realigned to deck: {matched}/{len(deck)} cards matched "
                f"({len(by_name) - matched} dropped)"
            )
        return aligned

    def save_statuses(self, statuses: list[CardStatus]) -> None:
        self.backend.set(CARD_STATUSES_KEY, [s.to_dict() for s in statuses])

    # =========================================================================
    # Deck Proportion & Subset
    # =========================================================================

    def load_proportion(self, default: int = DEFAULT_DECK_PROPORTION) -> int:
        """Stored proportion, or `default` if absent or not an allowed value."""
        value = self.backend.get(DECK_PROPORTION_KEY)
        if value is None:
            return default
        valid = isinstance(value, int) and not isinstance(value, bool)
        if not valid or value not in ALLOWED_PROPORTIONS:
            logger.warning(f"Discarding stored deck proportion {value!r}; using {default}")
            return default
        return value

    def save_proportion(self, proportion: int) -> None:
        self.backend.set(DECK_PROPORTION_KEY, proportion)

    def load_included(self, deck_size: int) -> set[int] | None:
        """Stored subset indices, or None if absent or out of range."""
        raw = self.backend.get(INCLUDED_INDICES_KEY)
        if not isinstance(raw, list) or not raw:
            return None
        if not all(isinstance(i, int) and 0 <= i < deck_size for i in raw):
            logger.warning("Stored subset does not fit the deck; reselecting")
            return None
        return set(raw)

    def save_included(self, included: set[int]) -> None:
        self.backend.set(INCLUDED_INDICES_KEY, sorted(included))
