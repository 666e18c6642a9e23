from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, List, Optional, Protocol, Union

from qk_core.errors import FormatError, TransportError
from qk_core.model import Quote
from qk_core.reconcile import MergeResult
from qk_store.store import QuoteStore


log = logging.getLogger(__name__)


class QuoteSource(Protocol):
    def fetch_quotes(self) -> List[Quote]: ...


class SyncState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    RECONCILING = "reconciling"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncSummary:
    conflicts_resolved: int
    new_records: int
    unchanged: int = 0

    @classmethod
    def from_merge(cls, result: MergeResult) -> "SyncSummary":
        return cls(
            conflicts_resolved=result.conflicts_resolved,
            new_records=result.new_records,
            unchanged=result.unchanged,
        )

    @property
    def clean(self) -> bool:
        return self.conflicts_resolved == 0

    def message(self) -> str:
        if self.clean:
            return f"Quotes synced with server ({self.new_records} new, no conflicts)."
        return (
            f"Quotes synced with server: {self.conflicts_resolved} conflict(s) resolved "
            f"in favour of the server, {self.new_records} new."
        )


@dataclass(frozen=True)
class SyncFailure:
    reason: str  # "transport" | "format" | "persistence"
    detail: str

    def message(self) -> str:
        return f"Sync failed ({self.reason}): {self.detail}"


SyncOutcome = Union[SyncSummary, SyncFailure]


class SyncEngine:
    """Runs one fetch-merge-persist cycle against the remote source.

    Success: idle -> fetching -> reconciling -> idle
    Failure: idle -> fetching -> failed -> idle (store untouched)
    Write failure: idle -> fetching -> reconciling -> failed -> idle

    A trigger while a cycle is in flight is ignored and returns None. The
    engine never retries; a scheduler may call ``trigger_sync`` again later.
    """

    def __init__(
        self,
        store: QuoteStore,
        source: QuoteSource,
        on_outcome: Optional[Callable[[SyncOutcome], None]] = None,
    ) -> None:
        self.store = store
        self.source = source
        self.on_outcome = on_outcome
        self.state = SyncState.IDLE
        self.last_outcome: Optional[SyncOutcome] = None
        self.transitions: Deque[SyncState] = deque(maxlen=64)
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def _set_state(self, state: SyncState) -> None:
        self.state = state
        self.transitions.append(state)
        log.debug("sync state -> %s", state.value)

    async def trigger_sync(self) -> Optional[SyncOutcome]:
        if self._in_flight:
            log.info("Sync already in progress; trigger ignored")
            return None
        self._in_flight = True
        try:
            self._set_state(SyncState.FETCHING)
            try:
                remote = await asyncio.to_thread(self.source.fetch_quotes)
            except TransportError as exc:
                outcome: SyncOutcome = SyncFailure("transport", str(exc))
            except FormatError as exc:
                outcome = SyncFailure("format", str(exc))
            else:
                # no await between merge and persist: inserts cannot interleave here
                self._set_state(SyncState.RECONCILING)
                try:
                    outcome = SyncSummary.from_merge(self.store.merge(remote))
                except OSError as exc:
                    # store keeps its previous list when the write fails
                    outcome = SyncFailure("persistence", str(exc))

            if isinstance(outcome, SyncFailure):
                self._set_state(SyncState.FAILED)
                log.warning("%s", outcome.message())
            else:
                log.info(
                    "Sync done: conflicts_resolved=%d new_records=%d unchanged=%d",
                    outcome.conflicts_resolved,
                    outcome.new_records,
                    outcome.unchanged,
                )
            self.last_outcome = outcome
            if self.on_outcome is not None:
                self.on_outcome(outcome)
            return outcome
        finally:
            self._set_state(SyncState.IDLE)
            self._in_flight = False
