from __future__ import annotations

import asyncio
import json

import pytest

from qk_core.errors import TransportError
from qk_core.model import Quote
from qk_store.persistence import MemoryKeyValueStore
from qk_store.settings import QUOTES_KEY
from qk_store.store import QuoteStore
from qk_sync.engine import SyncEngine, SyncFailure, SyncSummary
from qk_sync.scheduler import PeriodicSync


class FlakySource:
    def __init__(self) -> None:
        self.calls = 0

    def fetch_quotes(self):
        self.calls += 1
        if self.calls == 1:
            raise TransportError("temporary failure")
        return [Quote(1, "A", "X")]


def make_engine(source, outcomes):
    store = QuoteStore(MemoryKeyValueStore({QUOTES_KEY: json.dumps([])}))
    store.load()
    return SyncEngine(store, source, on_outcome=outcomes.append)


def test_runs_bounded_cycles_and_recovers_after_failure() -> None:
    outcomes = []
    source = FlakySource()
    engine = make_engine(source, outcomes)
    timer = PeriodicSync(engine, interval_s=0.01, max_cycles=3)

    async def scenario():
        timer.start()
        await timer.wait()

    asyncio.run(scenario())

    assert timer.cycles == 3
    assert source.calls == 3
    assert isinstance(outcomes[0], SyncFailure)
    assert outcomes[1] == SyncSummary(conflicts_resolved=0, new_records=1, unchanged=0)
    assert outcomes[2].clean and outcomes[2].new_records == 0
    assert len(engine.store) == 1


def test_stop_cancels_unbounded_timer() -> None:
    outcomes = []
    engine = make_engine(FlakySource(), outcomes)
    timer = PeriodicSync(engine, interval_s=60)

    async def scenario():
        timer.start()
        await asyncio.sleep(0.05)
        assert timer.running
        await timer.stop()
        assert not timer.running

    asyncio.run(scenario())
    assert timer.cycles == 1


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        PeriodicSync(make_engine(FlakySource(), []), interval_s=0)
