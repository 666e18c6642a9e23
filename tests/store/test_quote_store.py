from __future__ import annotations

import json

import pytest

from qk_core.errors import FormatError, ValidationError
from qk_core.model import LocalIdAllocator, Quote
from qk_store.persistence import MemoryKeyValueStore
from qk_store.settings import DEFAULT_QUOTES, QUOTES_KEY
from qk_store.store import QuoteStore


class FailingStorage(MemoryKeyValueStore):
    def __init__(self, initial=None) -> None:
        super().__init__(initial)
        self.fail = False

    def set(self, key: str, value: str) -> None:
        if self.fail:
            raise OSError("disk full")
        super().set(key, value)


def _clock():
    t = {"v": 1_700_000_000_000}

    def clock() -> int:
        return t["v"]

    return clock


def make_store(initial=None, storage=None) -> QuoteStore:
    storage = storage if storage is not None else MemoryKeyValueStore()
    if initial is not None:
        storage.set(QUOTES_KEY, json.dumps(initial))
    store = QuoteStore(storage, allocator=LocalIdAllocator(clock=_clock()))
    store.load()
    return store


def stored(store: QuoteStore) -> list:
    return json.loads(store.storage.get(QUOTES_KEY))


def test_load_without_snapshot_uses_defaults() -> None:
    store = make_store()
    assert [(q.text, q.category) for q in store.quotes] == DEFAULT_QUOTES
    assert len({q.id for q in store.quotes}) == len(DEFAULT_QUOTES)


@pytest.mark.parametrize("raw", ["{not json", json.dumps({"quotes": []}), json.dumps("text")])
def test_load_recovers_from_unusable_snapshot(raw: str) -> None:
    storage = MemoryKeyValueStore({QUOTES_KEY: raw})
    store = QuoteStore(storage)
    quotes = store.load()
    assert len(quotes) == len(DEFAULT_QUOTES)


def test_load_keeps_stored_quotes() -> None:
    store = make_store([{"id": 1, "text": "A", "category": "X"}])
    assert store.quotes == [Quote(1, "A", "X")]


def test_load_assigns_ids_to_records_without_one() -> None:
    store = make_store([{"text": "A", "category": "X"}, {"text": "B", "category": "Y"}])
    ids = [q.id for q in store.quotes]
    assert len(set(ids)) == 2
    assert all(isinstance(i, int) for i in ids)


def test_load_skips_malformed_records() -> None:
    store = make_store([{"id": 1, "text": "A", "category": "X"}, {"id": 2, "text": ""}, "junk"])
    assert store.quotes == [Quote(1, "A", "X")]


def test_insert_appends_and_persists() -> None:
    store = make_store([])
    q = store.insert("  Hello  ", " Greeting ")
    assert (q.text, q.category) == ("Hello", "Greeting")
    assert store.query("all") == [q]
    assert stored(store) == [q.to_dict()]


def test_sequential_inserts_get_unique_ids() -> None:
    store = make_store([])
    ids = [store.insert(f"q{i}", "c").id for i in range(20)]
    assert len(set(ids)) == 20
    assert ids == sorted(ids)


@pytest.mark.parametrize("text,category", [("", "x"), ("x", ""), ("  ", "x"), ("x", "  ")])
def test_insert_rejects_empty_fields(text: str, category: str) -> None:
    store = make_store([{"id": 1, "text": "A", "category": "X"}])
    before = stored(store)
    with pytest.raises(ValidationError):
        store.insert(text, category)
    assert len(store) == 1
    assert stored(store) == before


def test_query_unknown_category_is_empty() -> None:
    store = make_store([{"id": 1, "text": "A", "category": "X"}])
    assert store.query("Z") == []


def test_merge_scenario() -> None:
    store = make_store([{"id": 1, "text": "A", "category": "X"}])
    result = store.merge([Quote(1, "A2", "X"), Quote(2, "B", "Y")])
    assert len(store) == 2
    assert store.get(1).text == "A2"
    assert result.conflicts_resolved == 1
    assert result.new_records == 1
    assert stored(store) == [
        {"id": 1, "text": "A2", "category": "X"},
        {"id": 2, "text": "B", "category": "Y"},
    ]


def test_merge_keeps_local_only_quotes() -> None:
    store = make_store([])
    mine = store.insert("mine", "L")
    store.merge([Quote(1, "A", "X")])
    assert store.get(mine.id) == mine


def test_replace_all_appends_and_rekeys_collisions() -> None:
    store = make_store([{"id": 1, "text": "A", "category": "X"}])
    added = store.replace_all(
        [
            {"id": 1, "text": "A copy", "category": "X"},
            {"id": 2, "text": "B", "category": "Y"},
            {"text": "C", "category": "Z"},
        ]
    )
    assert len(store) == 4
    assert store.get(1) == Quote(1, "A", "X")
    assert added[1] == Quote(2, "B", "Y")
    ids = [q.id for q in store.quotes]
    assert len(set(ids)) == 4


def test_replace_all_skips_invalid_entries() -> None:
    store = make_store([])
    added = store.replace_all([{"id": 1, "text": "ok", "category": "X"}, {"id": 2, "text": ""}, 42])
    assert added == [Quote(1, "ok", "X")]


def test_replace_all_rejects_non_list() -> None:
    store = make_store([])
    with pytest.raises(FormatError):
        store.replace_all({"id": 1, "text": "A", "category": "X"})
    assert len(store) == 0


def test_failed_write_leaves_store_unchanged() -> None:
    storage = FailingStorage()
    store = make_store([{"id": 1, "text": "A", "category": "X"}], storage=storage)
    storage.fail = True
    with pytest.raises(OSError):
        store.insert("B", "Y")
    with pytest.raises(OSError):
        store.merge([Quote(1, "A2", "X")])
    assert store.quotes == [Quote(1, "A", "X")]
    assert stored(store) == [{"id": 1, "text": "A", "category": "X"}]


def test_serialize_shape() -> None:
    store = make_store([{"id": 3, "text": "A", "category": "X"}])
    assert store.serialize() == [{"id": 3, "text": "A", "category": "X"}]
