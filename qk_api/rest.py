from __future__ import annotations

import json
import logging
from functools import partial
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from urllib.parse import urlparse

from qk_store.settings import load_settings


log = logging.getLogger("qk_api.rest")


class _Handler(BaseHTTPRequestHandler):
    """Serves a JSON quote list as the remote source of truth."""

    def __init__(self, *args, source_path: Path, resource: str, **kwargs) -> None:
        self.source_path = source_path
        self.resource = resource
        super().__init__(*args, **kwargs)

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/")
        if path == "/health":
            self._send_json(200, {"status": "ok"})
            return
        if path != f"/{self.resource}":
            self._send_json(404, {"error": "not_found"})
            return

        try:
            with open(self.source_path, "r", encoding="utf-8") as fh:
                payload = json.load(fh)
        except FileNotFoundError:
            payload = []
        except Exception as exc:
            self._send_json(500, {"error": f"source_read_failed: {exc}"})
            return

        self._send_json(200, payload)

    def log_message(self, format: str, *args) -> None:  # noqa: A003
        log.debug("%s - %s", self.address_string(), format % args)

    def _send_json(self, status: int, payload) -> None:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(body)


def make_server(host: str, port: int, source_path: str | Path, resource: str = "quotes") -> HTTPServer:
    handler = partial(_Handler, source_path=Path(source_path), resource=resource.strip("/"))
    return HTTPServer((host, port), handler)


def serve(host: str, port: int, source_path: str | Path, resource: str = "quotes") -> None:
    server = make_server(host, port, source_path, resource)
    log.info("Quote source listening on http://%s:%s/%s (file: %s)", host, server.server_port, resource, source_path)
    try:
        server.serve_forever()
    finally:
        server.server_close()


def main() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    serve(settings.rest_host, settings.rest_port, settings.rest_source, settings.remote_resource)


if __name__ == "__main__":
    main()
