from __future__ import annotations

from typing import Any, List, Optional

import requests

from qk_core.errors import FormatError, TransportError
from qk_core.model import Quote, parse_quote
from qk_store.settings import Settings


def validate_remote_payload(payload: Any) -> List[Quote]:
    """Validate a remote quote list; any bad record rejects the whole payload."""
    if not isinstance(payload, list):
        raise FormatError("remote payload must be a list of quotes")
    quotes: List[Quote] = []
    for i, raw in enumerate(payload):
        try:
            quotes.append(parse_quote(raw))
        except FormatError as exc:
            raise FormatError(f"remote record #{i}: {exc}") from exc
    return quotes


class RemoteQuoteClient:
    """Fetch the authoritative quote list from ``<base_url>/<resource>``.

    One request per call; retrying is left to whoever schedules the calls.
    """

    def __init__(
        self,
        base_url: str,
        resource: str = "quotes",
        timeout_s: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.resource = resource.strip("/")
        self.timeout_s = float(timeout_s)
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "RemoteQuoteClient":
        return cls(
            base_url=settings.remote_base_url,
            resource=settings.remote_resource,
            timeout_s=settings.remote_timeout_s,
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "RemoteQuoteClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def url(self) -> str:
        return f"{self.base_url}/{self.resource}"

    def fetch_raw(self) -> Any:
        try:
            resp = self.session.get(self.url, timeout=self.timeout_s)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise TransportError(f"GET {self.url} failed: {exc}") from exc
        try:
            return resp.json()
        except ValueError as exc:
            raise FormatError(f"GET {self.url} returned invalid JSON: {exc}") from exc

    def fetch_quotes(self) -> List[Quote]:
        return validate_remote_payload(self.fetch_raw())
