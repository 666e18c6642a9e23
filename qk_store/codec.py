from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List

from qk_core.errors import FormatError
from qk_core.model import Quote

from .settings import EXPORT_FILENAME
from .store import QuoteStore


log = logging.getLogger(__name__)


def export_payload(store: QuoteStore) -> str:
    """Serialize every quote as an indented JSON array."""
    return json.dumps(store.serialize(), ensure_ascii=False, indent=2)


def export_to_file(store: QuoteStore, path: str | Path = EXPORT_FILENAME) -> Path:
    path = Path(path)
    if path.is_dir():
        path = path / EXPORT_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_payload(store), encoding="utf-8")
    log.info("Exported %d quotes to %s", len(store), path)
    return path


def parse_payload(raw: str | bytes) -> List[Any]:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise FormatError(f"import payload is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise FormatError("import payload must be a JSON array of quotes")
    return data


def import_payload(store: QuoteStore, raw: str | bytes) -> List[Quote]:
    return store.replace_all(parse_payload(raw))


def import_file(store: QuoteStore, path: str | Path) -> List[Quote]:
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FormatError(f"cannot read import file {path}: {exc}") from exc
    added = import_payload(store, raw)
    log.info("Imported %d quotes from %s", len(added), path)
    return added
