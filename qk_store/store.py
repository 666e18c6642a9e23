from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List, Optional, Sequence

from qk_core.errors import FormatError, PersistenceReadError
from qk_core.filters import available_categories, filter_quotes
from qk_core.model import LocalIdAllocator, Quote, clean_field, is_int_id, parse_record
from qk_core.reconcile import MergeResult, reconcile

from .persistence import KeyValueStore
from .settings import DEFAULT_QUOTES, QUOTES_KEY


log = logging.getLogger(__name__)


def encode_snapshot(quotes: Iterable[Quote]) -> str:
    return json.dumps([q.to_dict() for q in quotes], ensure_ascii=False)


class QuoteStore:
    """In-memory authoritative quote list backed by a key-value store.

    The store is the only writer of the persisted snapshot. Every mutation
    builds the new list, writes it, and only then swaps it in, so a failed
    write leaves both memory and storage at the previous state.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        allocator: Optional[LocalIdAllocator] = None,
        defaults: Sequence[tuple[str, str]] = DEFAULT_QUOTES,
    ) -> None:
        self.storage = storage
        self.allocator = allocator or LocalIdAllocator()
        self.defaults = list(defaults)
        self._quotes: List[Quote] = []

    def __len__(self) -> int:
        return len(self._quotes)

    @property
    def quotes(self) -> List[Quote]:
        return list(self._quotes)

    def get(self, quote_id: int) -> Optional[Quote]:
        for q in self._quotes:
            if q.id == quote_id:
                return q
        return None

    def query(self, category_filter: Optional[str] = None) -> List[Quote]:
        return filter_quotes(self._quotes, category_filter)

    def categories(self, include_all: bool = True) -> List[str]:
        return available_categories(self._quotes, include_all=include_all)

    def serialize(self) -> List[dict]:
        return [q.to_dict() for q in self._quotes]

    def load(self) -> List[Quote]:
        """Load the persisted snapshot, falling back to the built-in quotes."""
        raw = self.storage.get(QUOTES_KEY)
        try:
            quotes = self._decode_snapshot(raw)
            log.info("Loaded %d quotes from storage", len(quotes))
        except PersistenceReadError as exc:
            if raw is None:
                log.info("No stored quotes; starting with %d defaults", len(self.defaults))
            else:
                log.warning("Quote snapshot unusable (%s); using %d default quotes", exc, len(self.defaults))
            quotes = self._default_quotes()
        self._quotes = quotes
        return list(quotes)

    def _default_quotes(self) -> List[Quote]:
        return [Quote.create(self.allocator.next_id(), text, cat) for text, cat in self.defaults]

    def _decode_snapshot(self, raw: Optional[str]) -> List[Quote]:
        if raw is None:
            raise PersistenceReadError("no snapshot stored")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PersistenceReadError(f"snapshot is not valid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise PersistenceReadError("snapshot is not a list")

        self.allocator.observe(item["id"] for item in data if _has_int_id(item))
        quotes: List[Quote] = []
        seen: set[int] = set()
        skipped = 0
        for item in data:
            try:
                rid, text, category = parse_record(item, require_id=False)
            except FormatError:
                skipped += 1
                continue
            # records saved without ids (older snapshots) or with repeated ids get a local id
            if rid is None or rid in seen:
                rid = self.allocator.next_id()
            seen.add(rid)
            quotes.append(Quote(id=rid, text=text, category=category))
        if skipped:
            log.warning("Skipped %d malformed records in stored snapshot", skipped)
        return quotes

    def _commit(self, quotes: List[Quote]) -> None:
        self.storage.set(QUOTES_KEY, encode_snapshot(quotes))
        self._quotes = quotes

    def insert(self, text: Any, category: Any) -> Quote:
        text = clean_field(text, "text")
        category = clean_field(category, "category")
        quote = Quote(id=self._unused_id(), text=text, category=category)
        self._commit([*self._quotes, quote])
        log.info("Added quote id=%s category=%s", quote.id, quote.category)
        return quote

    def merge(self, remote: Sequence[Quote]) -> MergeResult:
        merged, result = reconcile(self._quotes, remote)
        self.allocator.observe(q.id for q in remote)
        self._commit(merged)
        return result

    def replace_all(self, records: Any) -> List[Quote]:
        """Append imported records to the store.

        Import is additive: existing quotes are kept. Entries that fail quote
        validation are skipped. An entry without an id, or whose id is already
        taken, is stored under a fresh local id.
        """
        if not isinstance(records, list):
            raise FormatError("import payload must be a list of quotes")

        taken = {q.id for q in self._quotes}
        self.allocator.observe(r["id"] for r in records if _has_int_id(r))
        added: List[Quote] = []
        skipped = 0
        for raw in records:
            try:
                rid, text, category = parse_record(raw, require_id=False)
            except FormatError as exc:
                skipped += 1
                log.debug("Skipping import entry %r: %s", raw, exc)
                continue
            if rid is None or rid in taken:
                rid = self._unused_id(taken)
            taken.add(rid)
            added.append(Quote(id=rid, text=text, category=category))

        if skipped:
            log.warning("Import skipped %d invalid entries", skipped)
        self._commit([*self._quotes, *added])
        log.info("Imported %d quotes", len(added))
        return added

    def _unused_id(self, taken: Optional[set[int]] = None) -> int:
        if taken is None:
            taken = {q.id for q in self._quotes}
        rid = self.allocator.next_id()
        while rid in taken:
            rid = self.allocator.next_id()
        return rid


def _has_int_id(item: Any) -> bool:
    return isinstance(item, dict) and is_int_id(item.get("id"))


__all__ = ["QuoteStore", "encode_snapshot"]
