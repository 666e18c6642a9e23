from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, cast

from .errors import FormatError, ValidationError


def now_ms() -> int:
    return int(time.time() * 1000)


def clean_field(value: Any, name: str) -> str:
    """Trim a text field; empty (or non-string) values are rejected."""
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    value = value.strip()
    if not value:
        raise ValidationError(f"{name} must not be empty")
    return value


def is_int_id(value: Any) -> bool:
    # bool is an int subclass; JSON true/false is never a valid id
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class Quote:
    id: int
    text: str
    category: str

    @classmethod
    def create(cls, id: int, text: Any, category: Any) -> "Quote":
        if not is_int_id(id):
            raise ValidationError("id must be an integer")
        return cls(id=id, text=clean_field(text, "text"), category=clean_field(category, "category"))

    def to_dict(self) -> dict:
        return {"id": self.id, "text": self.text, "category": self.category}


def parse_record(raw: Any, *, require_id: bool = True) -> tuple[Optional[int], str, str]:
    """Validate one serialized record.

    Returns (id, text, category) with text/category trimmed. When
    ``require_id`` is False a missing id is returned as None so the caller can
    allocate a local one; a present but non-integer id is always an error.
    """
    if not isinstance(raw, Mapping):
        raise FormatError("record must be an object")
    if "id" in raw and raw["id"] is not None:
        rid = raw["id"]
        if not is_int_id(rid):
            raise FormatError(f"record id must be an integer, got {rid!r}")
    elif require_id:
        raise FormatError("record is missing an id")
    else:
        rid = None
    try:
        text = clean_field(raw.get("text"), "text")
        category = clean_field(raw.get("category"), "category")
    except ValidationError as exc:
        raise FormatError(f"invalid record: {exc}") from exc
    return rid, text, category


def parse_quote(raw: Any) -> Quote:
    rid, text, category = parse_record(raw, require_id=True)
    # require_id=True never yields a None id
    return Quote(id=cast(int, rid), text=text, category=category)


class LocalIdAllocator:
    """Issue strictly increasing ids for locally created quotes.

    Ids live in the millisecond-timestamp range so they stay clear of the small
    integers a remote source assigns. Two calls in the same millisecond still
    get distinct ids.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None, floor: int = 0) -> None:
        self._clock = clock or now_ms
        self._last = int(floor)

    def observe(self, ids: Iterable[int]) -> None:
        """Raise the floor so future ids are above every id in ``ids``."""
        for rid in ids:
            if rid > self._last:
                self._last = rid

    def next_id(self) -> int:
        candidate = max(int(self._clock()), self._last + 1)
        self._last = candidate
        return candidate
