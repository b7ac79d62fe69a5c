"""
BacteriCards: Spaced-repetition scheduler for a bacteriology flashcard deck.

Components:
- CardDeck: JSON loading of the card records
- CardStatusStore: persisted per-card scheduling state (SQLite or memory)
- NextCardSelector: priority scoring with an anti-repeat window
- StudySession: the answer cycle, reset and deck-proportion changes
- DeckStats: mastery and progress figures
"""

from .deck import Card, CardDeck, CardView
from .errors import DeckError, EmptySubsetError, InvalidProportionError, SchedulerConfigError
from .mastery import DeckStats, compute_stats
from .scheduler import (
    AntiRepeatWindow,
    Draw,
    NextCardSelector,
    apply_answer,
    calculate_next_interval,
    priority_score,
    select_subset,
)
from .session import SessionContext, StudySession
from .state_store import CardStatus, CardStatusStore, Difficulty, MemoryStore, SQLiteStore

__all__ = [
    # Deck
    "Card",
    "CardDeck",
    "CardView",
    # Persistence
    "CardStatus",
    "CardStatusStore",
    "Difficulty",
    "MemoryStore",
    "SQLiteStore",
    # Scheduling
    "AntiRepeatWindow",
    "Draw",
    "NextCardSelector",
    "apply_answer",
    "calculate_next_interval",
    "priority_score",
    "select_subset",
    # Session
    "SessionContext",
    "StudySession",
    # Statistics
    "DeckStats",
    "compute_stats",
    # Errors
    "SchedulerConfigError",
    "DeckError",
    "InvalidProportionError",
    "EmptySubsetError",
]
