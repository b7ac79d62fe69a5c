"""
Card Deck: Fact Card Loader.

Loads the static card dataset from a JSON file. Each record describes one
bacterium with a unique name and four descriptive fields:
- Localisation (where it lives)
- Symptomes maladies (symptoms and diseases)
- Spécificités Diagnostic (diagnostic specifics)
- Traitement Prévention (treatment and prevention)

English keys (name, location, symptoms, diagnostics, treatment) are accepted
as well. The deck is ordered and immutable for the lifetime of a session;
card statuses are aligned with it by position.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from .errors import DeckError

# =============================================================================
# Card Data Class
# =============================================================================

# (attribute, dataset key, english alias)
FIELD_KEYS = [
    ("name", "Noms", "name"),
    ("location", "Localisation", "location"),
    ("symptoms", "Symptomes maladies", "symptoms"),
    ("diagnostics", "Spécificités Diagnostic", "diagnostics"),
    ("treatment", "Traitement Prévention", "treatment"),
]

DETAIL_LABELS = {
    "location": "Localisation",
    "symptoms": "Symptomes maladies",
    "diagnostics": "Spécificités Diagnostic",
    "treatment": "Traitement Prévention",
}


@dataclass(frozen=True)
class Card:
    """A single fact card. The name doubles as the card's unique key."""

    name: str
    location: str = ""
    symptoms: str = ""
    diagnostics: str = ""
    treatment: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Card:
        """
        Create a Card from a dataset record.

        Args:
            data: Dictionary from the JSON file

        Returns:
            Card instance

        Raises:
            KeyError: If the record has no name
        """
        values = {}
        for attr, key, alias in FIELD_KEYS:
            value = data.get(key, data.get(alias))
            if value is None:
                if attr == "name":
                    raise KeyError("Noms")
                value = ""
            values[attr] = str(value).strip()

        if not values["name"]:
            raise KeyError("Noms")

        return cls(**values)

    @property
    def details(self) -> dict[str, str]:
        """Descriptive fields keyed by their display label."""
        return {label: getattr(self, attr) for attr, label in DETAIL_LABELS.items()}


@dataclass(frozen=True)
class CardView:
    """
    What the front-end shows for the current draw.

    Normal orientation asks for the details given the name; reversed
    orientation shows the details and asks for the name.
    """

    index: int
    question: str
    answer: str
    details: dict[str, str]
    is_reversed: bool


def create_card_view(card: Card, index: int, reversed: bool) -> CardView:
    """Build the orientation-appropriate view of a card."""
    if reversed:
        return CardView(
            index=index,
            question="",
            answer=card.name,
            details=card.details,
            is_reversed=True,
        )
    return CardView(
        index=index,
        question=card.name,
        answer="",
        details=card.details,
        is_reversed=False,
    )


# =============================================================================
# Card Deck
# =============================================================================


class CardDeck:
    """
    Ordered, fixed collection of cards.

    Features:
    - JSON loading (top-level list or {"cards": [...]})
    - Duplicate-name rejection, since names key the persisted statuses
    - Index and name lookups
    """

    def __init__(self, cards: list[Card]):
        """
        Initialize the deck.

        Args:
            cards: Cards in dataset order

        Raises:
            DeckError: If the deck is empty or names are not unique
        """
        if not cards:
            raise DeckError("Deck is empty")

        self._cards: list[Card] = list(cards)
        self._by_name: dict[str, int] = {}

        for i, card in enumerate(self._cards):
            if card.name in self._by_name:
                raise DeckError(f"Duplicate card name: {card.name!r}")
            self._by_name[card.name] = i

    @classmethod
    def from_records(cls, records: list[dict]) -> CardDeck:
        """
        Build a deck from raw dataset records.

        Args:
            records: List of dictionaries as found in the JSON file

        Returns:
            CardDeck instance
        """
        cards = []
        for position, record in enumerate(records):
            try:
                cards.append(Card.from_dict(record))
            except (KeyError, TypeError, AttributeError) as e:
                raise DeckError(f"Invalid card record at position {position}: {e}") from e
        return cls(cards)

    @classmethod
    def load(cls, path: Path) -> CardDeck:
        """
        Load a deck from a JSON file.

        Args:
            path: Path to the dataset file

        Returns:
            CardDeck instance

        Raises:
            DeckError: If the file cannot be read or parsed
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise DeckError(f"Failed to load deck from {path}: {e}") from e

        records = data.get("cards", []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise DeckError(
                f"Deck file {path} must hold a list of cards, got {type(records).__name__}"
            )
        deck = cls.from_records(records)

        logger.info(f"CardDeck loaded: {len(deck)} cards from {path}")
        return deck

    # =========================================================================
    # Access Methods
    # =========================================================================

    @property
    def names(self) -> list[str]:
        """Card names in deck order."""
        return [card.name for card in self._cards]

    def index_of(self, name: str) -> int | None:
        """Position of a card by name, or None if absent."""
        return self._by_name.get(name)

    def __getitem__(self, index: int) -> Card:
        return self._cards[index]

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards)

    def __len__(self) -> int:
        return len(self._cards)
