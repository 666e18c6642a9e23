"""Quote keeper: local quote store with filtering, JSON import/export and
remote sync.

Usage examples
  python quote_keeper.py add "Simplicity is the soul of efficiency." Motivation
  python quote_keeper.py filter Motivation
  python quote_keeper.py list
  python quote_keeper.py export --out quotes.json
  python quote_keeper.py import quotes.json
  python quote_keeper.py sync
  python quote_keeper.py watch --interval 30
  python quote_keeper.py serve
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import random
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from qk_core.errors import QuoteKeeperError
from qk_core.filters import ALL_CATEGORIES, normalize_filter
from qk_core.model import LocalIdAllocator, Quote, parse_quote
from qk_store import codec
from qk_store.logging_config import setup_logging
from qk_store.persistence import JsonFileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from qk_store.settings import LAST_QUOTE_KEY, SELECTED_CATEGORY_KEY, Settings, load_settings
from qk_store.store import QuoteStore
from qk_sync.engine import QuoteSource, SyncEngine, SyncOutcome
from qk_sync.remote import RemoteQuoteClient
from qk_sync.scheduler import PeriodicSync


log = logging.getLogger("quote_keeper")


class QuoteKeeper:
    """Host object wiring the store, filter preference, session cache and sync.

    ``storage`` is durable (quotes + selected filter); ``session`` holds the
    last displayed quote and is expected to start empty for every session.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        session: Optional[KeyValueStore] = None,
        source: Optional[QuoteSource] = None,
        allocator: Optional[LocalIdAllocator] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.storage = storage
        self.session = session if session is not None else MemoryKeyValueStore()
        self.store = QuoteStore(storage, allocator=allocator)
        self.store.load()
        self.source = source
        self.sync_engine = SyncEngine(self.store, source) if source is not None else None
        self.rng = rng or random.Random()

    @classmethod
    def open(cls, settings: Settings) -> "QuoteKeeper":
        client = RemoteQuoteClient.from_settings(settings)
        try:
            return cls(storage=JsonFileKeyValueStore(settings.data_path), source=client)
        except BaseException:
            client.close()
            raise

    def insert(self, text: str, category: str) -> Quote:
        return self.store.insert(text, category)

    def query(self, category_filter: Optional[str] = ALL_CATEGORIES) -> List[Quote]:
        return self.store.query(category_filter)

    def visible_quotes(self) -> List[Quote]:
        return self.store.query(self.current_filter())

    def available_categories(self) -> List[str]:
        return self.store.categories(include_all=True)

    def current_filter(self) -> str:
        return self.storage.get(SELECTED_CATEGORY_KEY) or ALL_CATEGORIES

    def set_filter(self, value: str) -> str:
        value = normalize_filter(value)
        self.storage.set(SELECTED_CATEGORY_KEY, value)
        return value

    async def trigger_sync(self) -> Optional[SyncOutcome]:
        if self.sync_engine is None:
            raise RuntimeError("no remote quote source configured")
        return await self.sync_engine.trigger_sync()

    def export_payload(self) -> str:
        return codec.export_payload(self.store)

    def export_to_file(self, path: str | Path) -> Path:
        return codec.export_to_file(self.store, path)

    def import_payload(self, raw: str | bytes) -> List[Quote]:
        return codec.import_payload(self.store, raw)

    def import_file(self, path: str | Path) -> List[Quote]:
        return codec.import_file(self.store, path)

    def show_random_quote(self) -> Optional[Quote]:
        candidates = self.visible_quotes()
        if not candidates:
            return None
        quote = self.rng.choice(candidates)
        self.session.set(LAST_QUOTE_KEY, json.dumps(quote.to_dict(), ensure_ascii=False))
        return quote

    def last_displayed(self) -> Optional[Quote]:
        raw = self.session.get(LAST_QUOTE_KEY)
        if raw is None:
            return None
        try:
            return parse_quote(json.loads(raw))
        except (json.JSONDecodeError, QuoteKeeperError) as exc:
            log.debug("Ignoring unreadable last-quote cache: %s", exc)
            return None

    def initial_view(self) -> List[Quote]:
        """What to show on start: the cached quote, else the filtered list."""
        last = self.last_displayed()
        if last is not None:
            return [last]
        return self.visible_quotes()

    def close(self) -> None:
        """Release the remote source connection, if it holds one."""
        close = getattr(self.source, "close", None)
        if close is not None:
            close()


def format_quote(q: Quote) -> str:
    return f'[{q.id}] "{q.text}" ({q.category})'


def _print_quotes(quotes: Sequence[Quote], empty_msg: str) -> None:
    if not quotes:
        print(empty_msg)
        return
    for q in quotes:
        print(format_quote(q))


def _print_outcome(outcome: Optional[SyncOutcome]) -> None:
    if outcome is None:
        print("Sync already in progress.")
        return
    print(outcome.message())


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="quote-keeper", description="Local quote store with remote sync.")
    p.add_argument("--config", default=None, help="YAML config file")
    p.add_argument("--data-dir", default=None, help="Directory for persisted quotes (overrides config)")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    sub = p.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Add a quote")
    add.add_argument("text")
    add.add_argument("category")

    ls = sub.add_parser("list", help="List quotes (defaults to the saved filter)")
    ls.add_argument("--category", default=None)

    sub.add_parser("categories", help="List categories")

    flt = sub.add_parser("filter", help="Show or set the saved category filter")
    flt.add_argument("value", nargs="?", default=None)

    sub.add_parser("random", help="Show a random quote from the saved filter")

    exp = sub.add_parser("export", help="Export quotes as JSON")
    exp.add_argument("--out", default=None, help="Write to this file instead of stdout")

    imp = sub.add_parser("import", help="Import quotes from a JSON file")
    imp.add_argument("path")

    sub.add_parser("sync", help="Run one sync cycle against the remote source")

    watch = sub.add_parser("watch", help="Sync periodically")
    watch.add_argument("--interval", type=float, default=None, help="Seconds between cycles")
    watch.add_argument("--cycles", type=int, default=None, help="Stop after N cycles")

    sub.add_parser("serve", help="Serve a quote file as the remote source")
    return p


async def _watch(keeper: QuoteKeeper, interval_s: float, cycles: Optional[int]) -> None:
    assert keeper.sync_engine is not None
    keeper.sync_engine.on_outcome = _print_outcome
    timer = PeriodicSync(keeper.sync_engine, interval_s, max_cycles=cycles)
    timer.start()
    try:
        await timer.wait()
    finally:
        await timer.stop()


def run(args: argparse.Namespace, settings: Settings) -> int:
    if args.command == "serve":
        from qk_api.rest import serve

        serve(settings.rest_host, settings.rest_port, settings.rest_source, settings.remote_resource)
        return 0

    keeper = QuoteKeeper.open(settings)
    try:
        return _run_command(keeper, args, settings)
    finally:
        keeper.close()


def _run_command(keeper: QuoteKeeper, args: argparse.Namespace, settings: Settings) -> int:
    if args.command == "add":
        q = keeper.insert(args.text, args.category)
        print(f"Added {format_quote(q)}")
    elif args.command == "list":
        category = args.category if args.category is not None else keeper.current_filter()
        _print_quotes(keeper.query(category), "No quotes found for this category.")
    elif args.command == "categories":
        for cat in keeper.available_categories():
            print(cat)
    elif args.command == "filter":
        if args.value is None:
            print(keeper.current_filter())
        else:
            print(f"Filter set to {keeper.set_filter(args.value)}")
    elif args.command == "random":
        q = keeper.show_random_quote()
        print(format_quote(q) if q else "No quotes available for this category.")
    elif args.command == "export":
        if args.out:
            path = keeper.export_to_file(args.out)
            print(f"Exported {len(keeper.store)} quotes to {path}")
        else:
            print(keeper.export_payload())
    elif args.command == "import":
        added = keeper.import_file(args.path)
        print(f"Imported {len(added)} quotes.")
    elif args.command == "sync":
        _print_outcome(asyncio.run(keeper.trigger_sync()))
    elif args.command == "watch":
        interval = args.interval if args.interval is not None else settings.sync_interval_s
        asyncio.run(_watch(keeper, interval, args.cycles))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args.config)
    if args.data_dir:
        settings = replace(settings, data_dir=args.data_dir)
    setup_logging(
        args.log_level or settings.log_level,
        component="quote_keeper",
        base_dir=settings.log_dir,
        to_file=settings.log_to_file,
    )
    try:
        return run(args, settings)
    except (QuoteKeeperError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
