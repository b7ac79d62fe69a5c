"""
Study Session: orchestration of the answer cycle.

One StudySession ties together the deck, the persisted card statuses and a
SessionContext (current card, orientation, session streak, shown-answer
flag, anti-repeat window). Each user action is a method call; every action
that mutates state ends with exactly one save through the key-value store.

Cycle:
    get_current_card() -> reveal_answer() -> submit_difficulty(d)
        -> apply_answer -> save -> NextCardSelector.select -> next card
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from .deck import CardDeck, CardView, create_card_view
from .errors import EmptySubsetError
from .mastery import DeckStats, compute_stats
from .scheduler import (
    AntiRepeatWindow,
    NextCardSelector,
    RandomSource,
    RankedCard,
    apply_answer,
    select_subset,
    subset_size,
)
from .state_store import (
    DEFAULT_DECK_PROPORTION,
    CardStatus,
    CardStatusStore,
    Difficulty,
    KeyValueStore,
    default_statuses,
)


@dataclass
class SessionContext:
    """Per-session state that is never persisted."""

    current_index: int = 0
    reversed: bool = False
    session_streak: int = 0
    show_answer: bool = False
    window: AntiRepeatWindow = field(default_factory=AntiRepeatWindow)


class StudySession:
    """
    Session controller for a single learner and deck.

    Handles:
    - Loading (or creating) card statuses and the included subset
    - Presenting the current card in its drawn orientation
    - Recording difficulty judgments and drawing the next card
    - Reset and deck-proportion changes
    """

    def __init__(
        self,
        deck: CardDeck,
        store: KeyValueStore,
        rng: RandomSource | None = None,
        clock: Callable[[], float] | None = None,
        default_proportion: int = DEFAULT_DECK_PROPORTION,
    ):
        """
        Initialize the session, loading persisted state.

        Args:
            deck: The card deck
            store: Key-value persistence backend
            rng: Random source for subset and orientation (random.Random() if None)
            clock: Returns the current time in epoch seconds (time.time if None)
            default_proportion: Proportion used when none is stored yet

        Raises:
            InvalidProportionError: If the proportion is not allowed
            EmptySubsetError: If the proportion leaves no card in play
        """
        self.deck = deck
        self.store = CardStatusStore(store)
        self.rng = rng or random.Random()
        self.clock = clock or time.time
        self.selector = NextCardSelector(self.rng)
        self.context = SessionContext()

        self.deck_proportion = self.store.load_proportion(default_proportion)
        subset_size(len(deck), self.deck_proportion)

        self.included: set[int] = set()
        self.statuses: list[CardStatus] = []
        self._load()
        self._restart_context()

    # =========================================================================
    # Loading & Saving
    # =========================================================================

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _load(self) -> None:
        aligned = self.store.load_statuses(self.deck)

        if aligned is None:
            self.included = select_subset(len(self.deck), self.deck_proportion, self.rng)
            self.statuses = default_statuses(self.deck, self.included, self._now_ms())
            logger.info(f"Created {len(self.statuses)} card statuses")
            self._save()
            return

        included = self._reconcile_included(aligned)
        if not included:
            included = select_subset(len(self.deck), self.deck_proportion, self.rng)

        now_ms = self._now_ms()
        self.included = included
        self.statuses = [
            (
                status if status is not None else CardStatus(id=card.name, last_seen=now_ms)
            ).model_copy(update={"is_included": i in included})
            for i, (card, status) in enumerate(zip(self.deck, aligned))
        ]
        logger.info(
            f"Loaded {len(self.statuses)} card statuses ({len(self.included)} included)"
        )
        self._save()

    def _reconcile_included(self, aligned: list[CardStatus | None]) -> set[int]:
        """
        Rebuild the subset for the current deck.

        The isIncluded flags travel with the records, which are matched by
        name; the stored indices are positional. When the two disagree the
        deck changed order or content, and the flags win. At 100% every
        card is in play, including cards new to the deck.
        """
        if self.deck_proportion == 100:
            return set(range(len(self.deck)))

        flagged = {i for i, s in enumerate(aligned) if s is not None and s.is_included}
        stored = self.store.load_included(len(self.deck))

        if stored is None:
            return flagged
        if stored != flagged:
            logger.warning(
                f"Stored subset {sorted(stored)} does not match the deck; "
                f"using {len(flagged)} cards matched by name"
            )
            return flagged
        return stored

    def _save(self) -> None:
        self.store.save_statuses(self.statuses)
        self.store.save_included(self.included)
        self.store.save_proportion(self.deck_proportion)

    def _restart_context(self) -> None:
        self.context = SessionContext(current_index=self.first_included_index)
        self.context.window.add(self.context.current_index)

    # =========================================================================
    # Current Card
    # =========================================================================

    @property
    def first_included_index(self) -> int:
        if not self.included:
            raise EmptySubsetError("No card is included in the current subset")
        return min(self.included)

    @property
    def current_index(self) -> int:
        """Current card index, re-clamped if it no longer points at an included card."""
        if self.context.current_index not in self.included:
            fallback = self.first_included_index
            logger.debug(f"Stale index {self.context.current_index}; falling back to {fallback}")
            self.context.current_index = fallback
        return self.context.current_index

    @property
    def current_status(self) -> CardStatus:
        return self.statuses[self.current_index]

    def get_current_card(self) -> CardView:
        """The current card, in the orientation drawn for it."""
        index = self.current_index
        return create_card_view(self.deck[index], index, self.context.reversed)

    def reveal_answer(self) -> None:
        self.context.show_answer = True

    # =========================================================================
    # Actions
    # =========================================================================

    def submit_difficulty(self, difficulty: Difficulty | str) -> None:
        """
        Record a judgment on the current card and move to the next one.

        Args:
            difficulty: easy, medium or hard

        Raises:
            ValueError: If difficulty is not a known judgment
        """
        difficulty = Difficulty(difficulty)
        index = self.current_index
        reversed = self.context.reversed

        self.statuses[index] = apply_answer(
            self.statuses[index], difficulty, reversed, self._now_ms()
        )

        if difficulty == Difficulty.EASY:
            self.context.session_streak += 1
        else:
            self.context.session_streak = 0

        self._save()

        draw = self.selector.select(
            self.statuses, self.included, self.context.window, self.clock(), reversed
        )
        self.context.current_index = draw.index
        self.context.reversed = draw.reversed
        self.context.show_answer = False

    def reset_progress(self) -> None:
        """Wipe all card history for the current subset and restart the session."""
        self.statuses = default_statuses(self.deck, self.included, self._now_ms())
        self._save()
        self._restart_context()
        logger.info(f"Progress reset ({len(self.included)} cards in play)")

    def change_deck_proportion(self, proportion: int) -> None:
        """
        Switch to a new share of the deck.

        Reselects the subset from scratch and resets all progress.

        Raises:
            InvalidProportionError: If proportion is not 25, 50, 75 or 100
            EmptySubsetError: If the new subset would be empty
        """
        included = select_subset(len(self.deck), proportion, self.rng)
        self.deck_proportion = proportion
        self.included = included
        self.reset_progress()

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> DeckStats:
        return compute_stats(
            self.statuses,
            self.included,
            session_streak=self.context.session_streak,
            deck_proportion=self.deck_proportion,
        )

    def preview(self, limit: int = 10) -> list[RankedCard]:
        """
        Upcoming candidates in selection order, without drawing.

        Args:
            limit: Maximum candidates to return
        """
        ranked = self.selector.rank(
            self.statuses,
            self.included,
            self.context.window,
            self.clock(),
            self.context.reversed,
        )
        return ranked[:limit]
