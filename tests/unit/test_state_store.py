"""
Unit tests for the state store.

Tests:
- CardStatus JSON shape (camelCase keys, null difficulty)
- MemoryStore and SQLiteStore get/set semantics
- CardStatusStore realignment of stored records to the deck

Run: pytest tests/unit/test_state_store.py -v
"""

import sqlite3

import pytest

from bactericards.deck import CardDeck
from bactericards.state_store import (
    CARD_STATUSES_KEY,
    DECK_PROPORTION_KEY,
    INCLUDED_INDICES_KEY,
    CardStatus,
    CardStatusStore,
    Difficulty,
    MemoryStore,
    SQLiteStore,
    default_statuses,
)


class TestCardStatus:
    """Tests for the persisted record shape."""

    def test_to_dict_uses_camel_case(self):
        data = CardStatus(id="Escherichia coli", last_seen=1234).to_dict()

        assert data == {
            "id": "Escherichia coli",
            "difficulty": None,
            "lastSeen": 1234,
            "timesReviewed": 0,
            "streak": 0,
            "failureCount": 0,
            "lastInterval": 0.0,
            "reverseStreak": 0,
            "reverseFailureCount": 0,
            "isIncluded": True,
        }

    def test_from_dict_reads_stored_record(self):
        status = CardStatus.from_dict({
            "id": "Listeria monocytogenes",
            "difficulty": "hard",
            "lastSeen": 1700000000000,
            "timesReviewed": 3,
            "streak": 0,
            "failureCount": 2,
            "lastInterval": 30,
            "reverseStreak": 1,
            "reverseFailureCount": 0,
            "isIncluded": False,
        })

        assert status.difficulty == Difficulty.HARD
        assert status.failure_count == 2
        assert status.reverse_streak == 1
        assert status.is_included is False

    def test_difficulty_serialised_as_string(self):
        status = CardStatus(id="x", difficulty=Difficulty.MEDIUM)

        assert status.to_dict()["difficulty"] == "medium"

    def test_default_statuses(self, deck):
        statuses = default_statuses(deck, {1, 3}, 42)

        assert [s.id for s in statuses] == deck.names
        assert [i for i, s in enumerate(statuses) if s.is_included] == [1, 3]
        assert all(s.last_seen == 42 and s.difficulty is None for s in statuses)


class TestMemoryStore:
    def test_get_default(self):
        assert MemoryStore().get("missing", 7) == 7

    def test_values_are_copied(self):
        store = MemoryStore()
        value = [1, 2, 3]
        store.set("k", value)
        value.append(4)

        fetched = store.get("k")
        fetched.append(5)

        assert store.get("k") == [1, 2, 3]

    def test_initial_values(self):
        store = MemoryStore({DECK_PROPORTION_KEY: 50})

        assert store.get(DECK_PROPORTION_KEY) == 50
        assert DECK_PROPORTION_KEY in store


class TestSQLiteStore:
    def test_roundtrip_and_overwrite(self, tmp_path):
        store = SQLiteStore(tmp_path / "nested" / "state.db")
        store.set("deck-proportion", 75)
        store.set("deck-proportion", 25)

        assert store.get("deck-proportion") == 25
        assert store.get("missing") is None
        store.close()

    def test_persists_across_connections(self, tmp_path):
        path = tmp_path / "state.db"
        first = SQLiteStore(path)
        first.set(CARD_STATUSES_KEY, [{"id": "a"}])
        first.close()

        second = SQLiteStore(path)
        assert second.get(CARD_STATUSES_KEY) == [{"id": "a"}]
        second.close()

    def test_unreadable_value_returns_default(self, tmp_path):
        path = tmp_path / "state.db"
        store = SQLiteStore(path)
        store.close()

        conn = sqlite3.connect(str(path))
        conn.execute("INSERT INTO kv_store (key, value) VALUES (?, ?)", ("broken", "{not json"))
        conn.commit()
        conn.close()

        store = SQLiteStore(path)
        assert store.get("broken", "fallback") == "fallback"
        store.close()


class TestCardStatusStore:
    """Tests for typed access and realignment."""

    def test_nothing_stored(self, deck):
        assert CardStatusStore(MemoryStore()).load_statuses(deck) is None

    def test_roundtrip(self, deck):
        store = CardStatusStore(MemoryStore())
        statuses = default_statuses(deck, set(range(10)), 0)
        store.save_statuses(statuses)

        assert store.load_statuses(deck) == statuses

    def test_realigns_by_name(self, record_factory):
        old_deck = CardDeck.from_records(record_factory(4))
        store = CardStatusStore(MemoryStore())
        statuses = default_statuses(old_deck, {0, 1, 2, 3}, 0)
        statuses[2] = statuses[2].model_copy(update={"times_reviewed": 5})
        store.save_statuses(statuses)

        # Drop card 0, keep 1-3 in a new order, add a new card
        records = record_factory(5)
        new_deck = CardDeck.from_records([records[3], records[4], records[2], records[1]])
        aligned = store.load_statuses(new_deck)

        assert aligned[0].id == records[3]["Noms"]
        assert aligned[1] is None
        assert aligned[2].times_reviewed == 5
        assert aligned[3].id == records[1]["Noms"]

    def test_corrupt_records_skipped(self, deck):
        backend = MemoryStore({
            CARD_STATUSES_KEY: [
                {"id": deck.names[0], "streak": "lots"},
                {"id": deck.names[1], "timesReviewed": 1},
            ]
        })
        aligned = CardStatusStore(backend).load_statuses(deck)

        assert aligned[0] is None
        assert aligned[1].times_reviewed == 1

    def test_proportion_default_and_roundtrip(self):
        store = CardStatusStore(MemoryStore())

        assert store.load_proportion() == 100
        store.save_proportion(75)
        assert store.load_proportion() == 75

    def test_included_roundtrip(self):
        backend = MemoryStore()
        store = CardStatusStore(backend)
        store.save_included({5, 1, 3})

        assert backend.get(INCLUDED_INDICES_KEY) == [1, 3, 5]
        assert store.load_included(10) == {1, 3, 5}

    @pytest.mark.parametrize("raw", [[1, 12], [-1], "nope", []])
    def test_included_out_of_range_ignored(self, raw):
        store = CardStatusStore(MemoryStore({INCLUDED_INDICES_KEY: raw}))

        assert store.load_included(10) is None
