"""
Mastery and progress accounting.

All figures are derived on demand from the card statuses and the included
subset; nothing here is stored.

A card is mastered when its last judgment was easy and it has been judged
easy at least twice in total. A later medium or hard answer takes mastery
away again.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal

from .state_store import CardStatus, Difficulty


def round_half_up(value: float) -> int:
    """Round .5 upwards, as percentages are shown to users."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class DeckStats:
    """Aggregate figures over the included subset."""

    total: int
    easy: int
    medium: int
    hard: int
    unseen: int
    mastered_cards: int
    progress_percentage: int
    is_fully_mastered: bool
    current_streak: int
    average_streak: int
    deck_proportion: int

    def to_dict(self) -> dict:
        return asdict(self)


def included_statuses(statuses: list[CardStatus], included: set[int]) -> list[CardStatus]:
    return [s for i, s in enumerate(statuses) if i in included]


def compute_stats(
    statuses: list[CardStatus],
    included: set[int],
    session_streak: int = 0,
    deck_proportion: int = 100,
) -> DeckStats:
    """
    Compute progress statistics for the included cards.

    Args:
        statuses: Card statuses aligned with the deck
        included: Indices of the active subset
        session_streak: Consecutive easy answers in this session
        deck_proportion: Configured share of the deck

    Returns:
        DeckStats snapshot
    """
    active = included_statuses(statuses, included)
    total = len(active)

    by_difficulty = {d: 0 for d in (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD, None)}
    for status in active:
        by_difficulty[status.difficulty] += 1

    mastered = sum(1 for s in active if s.is_mastered)

    if total:
        progress = round_half_up(mastered / total * 100)
        streak_sum = sum(s.streak + s.reverse_streak for s in active)
        average_streak = round_half_up(streak_sum / (total * 2))
    else:
        progress = 0
        average_streak = 0

    return DeckStats(
        total=total,
        easy=by_difficulty[Difficulty.EASY],
        medium=by_difficulty[Difficulty.MEDIUM],
        hard=by_difficulty[Difficulty.HARD],
        unseen=by_difficulty[None],
        mastered_cards=mastered,
        progress_percentage=progress,
        is_fully_mastered=total > 0 and mastered == total,
        current_streak=session_streak,
        average_streak=average_streak,
        deck_proportion=deck_proportion,
    )
