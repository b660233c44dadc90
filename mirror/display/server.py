"""HTTP server that feeds the mirror page to the kiosk browser."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from .board import DisplayBoard
from .page import render_board_html

LOGGER = logging.getLogger("mirror.display.server")


@dataclass(frozen=True)
class BoardServerConfig:
    bind_address: str
    port: int
    allowed_origins: tuple[str, ...] = ("*",)
    poll_ms: int = 1000


class BoardHttpServer:
    """Serve the page at ``/`` and the board snapshot at ``/state``."""

    def __init__(
        self,
        *,
        board: DisplayBoard,
        config: BoardServerConfig,
        logger: logging.Logger | None = None,
    ) -> None:
        self.board = board
        self.config = config
        self.logger = logger or LOGGER
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int | None:
        if not self._server:
            return None
        return self._server.server_address[1]

    def start(self) -> None:
        if self._server:
            return
        handler_cls = self._build_handler()
        try:
            server = ThreadingHTTPServer((self.config.bind_address, self.config.port), handler_cls)
        except OSError as exc:  # pragma: no cover - dependant on environment
            self.logger.error("[display] Failed to bind %s:%s (%s)", self.config.bind_address, self.config.port, exc)
            raise
        self._server = server
        thread = threading.Thread(target=server.serve_forever, name="mirror-board-http", daemon=True)
        thread.start()
        self._thread = thread
        self.logger.info("[display] Serving mirror page on http://%s:%s/", self.config.bind_address, self.port)

    def stop(self) -> None:
        server = self._server
        if not server:
            return
        self.logger.info("[display] Shutting down mirror page server")
        server.shutdown()
        server.server_close()
        if self._thread:
            self._thread.join(timeout=2)
        self._server = None
        self._thread = None

    def _build_handler(self):
        outer = self

        class BoardRequestHandler(BaseHTTPRequestHandler):
            def log_message(self, _format, *_args):  # noqa: D401
                return

            def _set_common_headers(self) -> None:
                origin = self.headers.get("Origin")
                allowed_origin = outer._allowed_origin(origin)
                if allowed_origin:
                    self.send_header("Access-Control-Allow-Origin", allowed_origin)
                    if allowed_origin != "*":
                        self.send_header("Vary", "Origin")
                self.send_header("Access-Control-Allow-Methods", "GET, HEAD, OPTIONS")
                self.send_header("Access-Control-Allow-Headers", "Accept, Content-Type")
                self.send_header("Cache-Control", "no-store, max-age=0")

            def do_OPTIONS(self) -> None:  # noqa: N802
                self.send_response(HTTPStatus.NO_CONTENT)
                self._set_common_headers()
                self.end_headers()

            def do_HEAD(self) -> None:  # noqa: N802
                self._route(include_body=False)

            def do_GET(self) -> None:  # noqa: N802
                self._route(include_body=True)

            def _route(self, *, include_body: bool) -> None:
                path = self.path.split("?", 1)[0]
                if path in ("/", "/index.html"):
                    body = render_board_html(outer.board.snapshot(), poll_ms=outer.config.poll_ms).encode("utf-8")
                    self._send(body, "text/html; charset=utf-8", include_body=include_body)
                elif path == "/state":
                    body = json.dumps(outer.board.snapshot()).encode("utf-8")
                    self._send(body, "application/json", include_body=include_body)
                else:
                    self.send_error(HTTPStatus.NOT_FOUND, "Not Found")

            def _send(self, body: bytes, content_type: str, *, include_body: bool) -> None:
                self.send_response(HTTPStatus.OK)
                self._set_common_headers()
                self.send_header("Content-Type", content_type)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                if include_body:
                    self.wfile.write(body)

        return BoardRequestHandler

    def _allowed_origin(self, origin: str | None) -> str | None:
        allowed = self.config.allowed_origins
        if not allowed or allowed == ("*",):
            return "*"
        if origin and origin in allowed:
            return origin
        return None
