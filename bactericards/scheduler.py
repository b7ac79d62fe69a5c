"""
Priority Scheduler with Anti-Repeat Window.

Implements:
- Deck subset selection (play with 25/50/75/100% of the deck)
- Priority scoring: how "due" a card is right now
- Anti-repeat window: the last 3 shown cards are skipped
- Next-card selection with a 50/50 orientation flip
- Interval calculation from streak and failure history
- Answer update for a single card

Priority score:
    difficulty_base * urgency * failure_factor * streak_penalty

    difficulty_base: unset=4, hard=3, medium=2, easy=1
    urgency:         seconds since last seen / last interval
    failure_factor:  (failures + 1) * 1.5
    streak_penalty:  1 / (streak + 1)

Streaks and failures are tracked separately for the normal orientation
(name -> details) and the reversed one (details -> name).
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterable, Iterator, MutableSequence
from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger

from .config import ALLOWED_PROPORTIONS
from .errors import EmptySubsetError, InvalidProportionError
from .state_store import CardStatus, Difficulty

BASE_INTERVAL = 30  # seconds
ANTI_REPEAT_SIZE = 3
REVERSED_PROBABILITY = 0.5

# Finite stand-in for "always due" when a card has never been scheduled
UNSCHEDULED_URGENCY = 1e9

DIFFICULTY_BASE = {
    Difficulty.HARD: 3,
    Difficulty.MEDIUM: 2,
    Difficulty.EASY: 1,
    None: 4,
}


class RandomSource(Protocol):
    """The slice of random.Random the scheduler relies on."""

    def random(self) -> float:
        ...

    def shuffle(self, x: MutableSequence[Any]) -> None:
        ...


# =============================================================================
# Deck Subset Selector
# =============================================================================


def subset_size(deck_size: int, proportion: int) -> int:
    """
    Number of cards in play for a proportion.

    Raises:
        InvalidProportionError: If proportion is not 25, 50, 75 or 100
        EmptySubsetError: If the subset would be empty
    """
    if proportion not in ALLOWED_PROPORTIONS:
        raise InvalidProportionError(
            f"Deck proportion must be one of {ALLOWED_PROPORTIONS}, got {proportion}"
        )

    size = deck_size * proportion // 100
    if size == 0:
        raise EmptySubsetError(
            f"{proportion}% of a {deck_size}-card deck leaves no card to study"
        )
    return size


def select_subset(deck_size: int, proportion: int, rng: RandomSource) -> set[int]:
    """
    Pick the indices in play with an unweighted random permutation.

    Args:
        deck_size: Total number of cards
        proportion: Percentage of the deck to include
        rng: Random source used for the permutation

    Returns:
        Set of included card indices
    """
    size = subset_size(deck_size, proportion)
    indices = list(range(deck_size))
    rng.shuffle(indices)
    included = set(indices[:size])

    logger.info(f"Selected {size}/{deck_size} cards ({proportion}% of the deck)")
    return included


# =============================================================================
# Priority Scorer
# =============================================================================


def priority_score(status: CardStatus, now: float, reversed: bool) -> float:
    """
    How urgently a card should be redrawn. Higher is more due.

    Args:
        status: Current card status
        now: Current time in epoch seconds
        reversed: Orientation whose streak/failure counters are used

    Returns:
        Non-negative finite score
    """
    time_since_last_seen = now - status.last_seen / 1000

    if status.last_interval > 0:
        urgency = max(0.0, time_since_last_seen / status.last_interval)
    else:
        urgency = UNSCHEDULED_URGENCY

    failure_factor = (status.current_failures(reversed) + 1) * 1.5
    streak_penalty = 1 / (status.current_streak(reversed) + 1)

    return DIFFICULTY_BASE[status.difficulty] * urgency * failure_factor * streak_penalty


# =============================================================================
# Anti-Repeat Window
# =============================================================================


class AntiRepeatWindow:
    """
    The most recently shown card indices, oldest evicted first.

    Adding an index already present refreshes nothing; it keeps its original
    insertion position.
    """

    def __init__(self, size: int = ANTI_REPEAT_SIZE, indices: Iterable[int] = ()):
        self.size = size
        self._indices: OrderedDict[int, None] = OrderedDict()
        for index in indices:
            self.add(index)

    def add(self, index: int) -> None:
        self._indices.setdefault(index, None)
        while len(self._indices) > self.size:
            self._indices.popitem(last=False)

    def clear(self) -> None:
        self._indices.clear()

    def __contains__(self, index: int) -> bool:
        return index in self._indices

    def __iter__(self) -> Iterator[int]:
        return iter(self._indices)

    def __len__(self) -> int:
        return len(self._indices)

    def __repr__(self) -> str:
        return f"AntiRepeatWindow({list(self._indices)})"


# =============================================================================
# Next-Card Selector
# =============================================================================


@dataclass(frozen=True)
class Draw:
    """The outcome of one selection: which card, which way round."""

    index: int
    reversed: bool


@dataclass(frozen=True)
class RankedCard:
    """A candidate with its score, as ordered by the selector."""

    index: int
    name: str
    score: float
    is_new: bool


class NextCardSelector:
    """
    Chooses the next card and its orientation.

    Key principles:
    1. Only included cards outside the anti-repeat window are candidates
    2. Never-answered cards always come first, in deck order
    3. The rest are ordered by descending priority score
    4. Orientation is a coin flip, independent of the card's history
    """

    def __init__(self, rng: RandomSource, reversed_probability: float = REVERSED_PROBABILITY):
        """
        Initialize the selector.

        Args:
            rng: Random source for the orientation flip
            reversed_probability: Chance of drawing the reversed orientation
        """
        self.rng = rng
        self.reversed_probability = reversed_probability

    def rank(
        self,
        statuses: list[CardStatus],
        included: set[int],
        window: AntiRepeatWindow,
        now: float,
        reversed: bool,
    ) -> list[RankedCard]:
        """
        Order the eligible candidates, best first.

        Args:
            statuses: Card statuses aligned with the deck
            included: Indices of the active subset
            window: Recently shown indices to skip
            now: Current time in epoch seconds
            reversed: Orientation used to score every candidate

        Returns:
            Ranked candidates (may be empty)
        """
        candidates = [
            RankedCard(
                index=i,
                name=status.id,
                score=priority_score(status, now, reversed),
                is_new=status.difficulty is None,
            )
            for i, status in enumerate(statuses)
            if i in included and i not in window
        ]
        # sort is stable: ties keep deck order
        candidates.sort(key=lambda c: (not c.is_new, 0.0 if c.is_new else -c.score))
        return candidates

    def select(
        self,
        statuses: list[CardStatus],
        included: set[int],
        window: AntiRepeatWindow,
        now: float,
        reversed: bool,
    ) -> Draw:
        """
        Pick the next card and record it in the window.

        If every included card sits in the window (subsets of 3 cards or
        fewer), the window is cleared and the ranking retried once.

        Raises:
            EmptySubsetError: If no card is included at all
        """
        ranked = self.rank(statuses, included, window, now, reversed)

        if not ranked:
            window.clear()
            ranked = self.rank(statuses, included, window, now, reversed)

        if not ranked:
            raise EmptySubsetError("No included card to draw from")

        top = ranked[0]
        window.add(top.index)

        draw = Draw(index=top.index, reversed=self.rng.random() < self.reversed_probability)
        logger.debug(
            f"Drew card {top.index} ({top.name}) score={top.score:.3f} "
            f"new={top.is_new} reversed={draw.reversed} window={list(window)}"
        )
        return draw


# =============================================================================
# Interval Calculator
# =============================================================================


def calculate_next_interval(status: CardStatus, difficulty: Difficulty, reversed: bool) -> float:
    """
    Seconds until the card is due again.

    Uses the counters as they were before this answer.

    Args:
        status: Card status before the answer
        difficulty: The judgment just given
        reversed: Orientation that was answered

    Returns:
        Interval in seconds, never below BASE_INTERVAL
    """
    streak = status.current_streak(reversed)
    failures = status.current_failures(reversed)

    if difficulty == Difficulty.EASY:
        multiplier = min(streak + 1, 5) * 2
    elif difficulty == Difficulty.MEDIUM:
        multiplier = min(streak + 1, 3) * 1.5
    else:
        multiplier = 1

    if failures > 0:
        multiplier = multiplier / (failures + 1)

    return max(BASE_INTERVAL * multiplier, BASE_INTERVAL)


# =============================================================================
# Answer Update
# =============================================================================


def is_success(status: CardStatus, difficulty: Difficulty, reversed: bool) -> bool:
    """Easy always counts; medium counts only to extend a running streak."""
    if difficulty == Difficulty.EASY:
        return True
    return difficulty == Difficulty.MEDIUM and status.current_streak(reversed) > 0


def apply_answer(
    status: CardStatus,
    difficulty: Difficulty,
    reversed: bool,
    now_ms: int,
) -> CardStatus:
    """
    Record a judgment on a card.

    Only the answered orientation's streak and failure counters change.
    Any non-hard answer clears that orientation's failure count.

    Args:
        status: Card status before the answer
        difficulty: The judgment given
        reversed: Orientation that was answered
        now_ms: Answer time in epoch milliseconds

    Returns:
        Updated CardStatus
    """
    success = is_success(status, difficulty, reversed)
    new_streak = status.current_streak(reversed) + 1 if success else 0
    new_failures = (
        status.current_failures(reversed) + 1 if difficulty == Difficulty.HARD else 0
    )

    update: dict[str, Any] = {
        "difficulty": difficulty,
        "last_seen": now_ms,
        "times_reviewed": status.times_reviewed + (1 if difficulty == Difficulty.EASY else 0),
        "last_interval": calculate_next_interval(status, difficulty, reversed),
    }
    if reversed:
        update["reverse_streak"] = new_streak
        update["reverse_failure_count"] = new_failures
    else:
        update["streak"] = new_streak
        update["failure_count"] = new_failures

    new_status = status.model_copy(update=update)

    logger.debug(
        f"Answer {difficulty.value} on {status.id} (reversed={reversed}): "
        f"streak={new_streak} failures={new_failures} "
        f"interval={new_status.last_interval:.0f}s reviewed={new_status.times_reviewed}"
    )
    return new_status
