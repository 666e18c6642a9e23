from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from .model import Quote


@dataclass
class MergeResult:
    conflicts_resolved: int = 0
    new_records: int = 0
    unchanged: int = 0
    conflict_ids: List[int] = field(default_factory=list)
    new_ids: List[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.conflicts_resolved or self.new_records)


def reconcile(local: Sequence[Quote], remote: Sequence[Quote]) -> Tuple[List[Quote], MergeResult]:
    """Merge a remote quote set into the local one.

    This function is intentionally I/O-free; the store persists the result.

    Per remote id:
      - id unknown locally      -> appended (new record)
      - same id, same fields    -> left as is
      - same id, any field diff -> remote replaces local in place (conflict)

    Local-only quotes are never removed. A payload repeating an id is collapsed
    to the last copy before comparing, so re-applying it is a no-op. ``local``
    is not modified.
    """
    merged: List[Quote] = list(local)
    index: Dict[int, int] = {q.id: i for i, q in enumerate(merged)}
    result = MergeResult()

    latest: Dict[int, Quote] = {}
    for rq in remote:
        latest[rq.id] = rq

    for rq in latest.values():
        pos = index.get(rq.id)
        if pos is None:
            index[rq.id] = len(merged)
            merged.append(rq)
            result.new_records += 1
            result.new_ids.append(rq.id)
            continue

        if merged[pos] == rq:
            result.unchanged += 1
            continue

        merged[pos] = rq
        result.conflicts_resolved += 1
        result.conflict_ids.append(rq.id)

    return merged, result
