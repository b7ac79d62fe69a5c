"""
Unit tests for deck loading and card views.

Run: pytest tests/unit/test_deck.py -v
"""

import json

import pytest

from bactericards.deck import Card, CardDeck, create_card_view
from bactericards.errors import DeckError

STAPH = {
    "Noms": "Staphylococcus aureus",
    "Localisation": "Peau, muqueuses",
    "Symptomes maladies": "Furoncles, intoxications alimentaires",
    "Spécificités Diagnostic": "Coagulase +",
    "Traitement Prévention": "Pénicilline M",
}


class TestCard:
    def test_from_dataset_keys(self):
        card = Card.from_dict(STAPH)

        assert card.name == "Staphylococcus aureus"
        assert card.diagnostics == "Coagulase +"
        assert card.details["Traitement Prévention"] == "Pénicilline M"

    def test_from_english_keys(self):
        card = Card.from_dict({"name": "Vibrio cholerae", "location": "Intestin"})

        assert card.name == "Vibrio cholerae"
        assert card.location == "Intestin"
        assert card.treatment == ""

    def test_missing_name_rejected(self):
        with pytest.raises(KeyError):
            Card.from_dict({"Localisation": "Peau"})

    def test_blank_name_rejected(self):
        with pytest.raises(KeyError):
            Card.from_dict({"Noms": "   "})


class TestCardView:
    def test_normal_orientation_asks_for_details(self):
        view = create_card_view(Card.from_dict(STAPH), 3, reversed=False)

        assert view.question == "Staphylococcus aureus"
        assert view.answer == ""
        assert view.is_reversed is False
        assert view.index == 3
        assert view.details["Localisation"] == "Peau, muqueuses"

    def test_reversed_orientation_asks_for_name(self):
        view = create_card_view(Card.from_dict(STAPH), 0, reversed=True)

        assert view.question == ""
        assert view.answer == "Staphylococcus aureus"
        assert view.is_reversed is True


class TestCardDeck:
    def test_load_list(self, deck_file):
        deck = CardDeck.load(deck_file)

        assert len(deck) == 10
        assert deck[0].name == "Bacterie 00"
        assert deck.index_of("Bacterie 04") == 4
        assert deck.index_of("Unknown") is None

    def test_load_wrapped_cards(self, tmp_path):
        path = tmp_path / "deck.json"
        path.write_text(json.dumps({"cards": [STAPH]}), encoding="utf-8")

        assert CardDeck.load(path).names == ["Staphylococcus aureus"]

    def test_duplicate_names_rejected(self):
        with pytest.raises(DeckError, match="Duplicate"):
            CardDeck.from_records([STAPH, dict(STAPH)])

    def test_empty_deck_rejected(self):
        with pytest.raises(DeckError):
            CardDeck.from_records([])

    def test_invalid_record_reports_position(self):
        with pytest.raises(DeckError, match="position 1"):
            CardDeck.from_records([STAPH, {"Localisation": "?"}])

    def test_missing_file(self, tmp_path):
        with pytest.raises(DeckError):
            CardDeck.load(tmp_path / "absent.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "deck.json"
        path.write_text("[{", encoding="utf-8")

        with pytest.raises(DeckError):
            CardDeck.load(path)

    @pytest.mark.parametrize("payload", [42, "cards", None, {"cards": 5}])
    def test_non_list_payload_rejected(self, tmp_path, payload):
        path = tmp_path / "deck.json"
        path.write_text(json.dumps(payload), encoding="utf-8")

        with pytest.raises(DeckError, match="list of cards"):
            CardDeck.load(path)
