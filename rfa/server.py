from __future__ import annotations

import json
import socket
import threading
import webbrowser
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from rich.console import Console

from .artifacts import DEFAULT_OUTPUT_DIR, write_review_artifacts
from .comments import PayloadError, decode_submit_request
from .console_render import render_startup, render_submission
from .git_diff import get_git_diff
from .ignore_rules import IgnoreConfig
from .review_page import render_review_page

DEFAULT_START_PORT = 4000
PORT_ATTEMPTS = 100
MAX_BODY_BYTES = 20 * 1024 * 1024


@dataclass(frozen=True)
class ServerConfig:
    repo: Path
    host: str = "127.0.0.1"
    port: int | None = None
    output_dir: Path = DEFAULT_OUTPUT_DIR
    open_browser: bool = True
    ignore_config: IgnoreConfig = field(default_factory=IgnoreConfig)


def find_free_port(host: str = "", start: int = DEFAULT_START_PORT, attempts: int = PORT_ATTEMPTS) -> int:
    """First port from ``start`` that can be bound, so reruns keep a stable URL."""
    for port in range(start, start + attempts):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as candidate:
            try:
                candidate.bind((host, port))
            except OSError:
                continue
        return port
    raise RuntimeError(f"No free port found in range {start}-{start + attempts - 1}")


def decode_json_body(raw: bytes) -> Any:
    try:
        return json.loads(raw.decode("utf-8"))
    except (ValueError, RecursionError) as error:
        # ValueError covers bad UTF-8, bad JSON and integers past the digit limit.
        raise PayloadError(f"Invalid JSON: {error}") from error


@dataclass
class ServerState:
    repo: Path
    output_dir: Path
    ignore_config: IgnoreConfig
    lock: threading.Lock
    console: Console

    def render_html(self) -> str:
        return render_review_page()

    def load_diff(self) -> str:
        return get_git_diff(self.repo, self.ignore_config)

    def submit(self, payload: Any) -> dict[str, str]:
        request = decode_submit_request(payload)
        with self.lock:
            written = write_review_artifacts(self.repo / self.output_dir, request)
        paths = written.relative_to(self.repo)
        render_submission(self.console, paths, request.comments)
        return paths.to_response()


def _handler_factory(state: ServerState) -> type[BaseHTTPRequestHandler]:
    class Handler(BaseHTTPRequestHandler):
        server_version = "RfaReviewServer/1.0"

        def _send_common_headers(self) -> None:
            self.send_header("Cache-Control", "no-store")

        def _write_body(self, status: int, content_type: str, body: str) -> None:
            raw = body.encode("utf-8")
            self.send_response(status)
            self._send_common_headers()
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(raw)))
            self.end_headers()
            self.wfile.write(raw)

        def _write_json(self, status: int, payload: dict[str, Any]) -> None:
            self._write_body(status, "application/json; charset=utf-8", json.dumps(payload, ensure_ascii=False))

        def _redirect(self, location: str) -> None:
            self.send_response(302)
            self._send_common_headers()
            self.send_header("Location", location)
            self.send_header("Content-Length", "0")
            self.end_headers()

        def do_GET(self) -> None:  # noqa: N802
            path = urlparse(self.path).path
            if path == "/":
                self._redirect("/review")
                return
            if path == "/review":
                self._write_body(200, "text/html; charset=utf-8", state.render_html())
                return
            if path == "/api/diff":
                try:
                    diff = state.load_diff()
                except RuntimeError as error:
                    self._write_json(500, {"ok": False, "error": str(error)})
                    return
                self._write_body(200, "text/plain; charset=utf-8", diff)
                return
            if path == "/api/health":
                self._write_json(200, {"ok": True, "repo": str(state.repo), "outputDir": str(state.output_dir)})
                return
            self._write_json(404, {"ok": False, "error": f"Not found: {path}"})

        def do_POST(self) -> None:  # noqa: N802
            path = urlparse(self.path).path
            if path != "/api/comments":
                self._write_json(404, {"ok": False, "error": f"Not found: {path}"})
                return
            try:
                length = int(self.headers.get("Content-Length", "0"))
            except ValueError:
                self._write_json(400, {"ok": False, "error": "Invalid Content-Length header."})
                return
            if length <= 0:
                self._write_json(400, {"ok": False, "error": "Request body is required."})
                return
            if length > MAX_BODY_BYTES:
                self._write_json(413, {"ok": False, "error": "Request body too large."})
                return
            raw = self.rfile.read(length)
            try:
                result = state.submit(decode_json_body(raw))
            except PayloadError as error:
                self._write_json(400, {"ok": False, "error": str(error)})
                return
            except OSError as error:
                self._write_json(500, {"ok": False, "error": f"Failed to write review files: {error}"})
                return
            self._write_json(200, result)

        def log_message(self, fmt: str, *args: Any) -> None:
            message = fmt % args
            print(f"[http] {self.address_string()} {message}")

    return Handler


def create_server(config: ServerConfig, console: Console) -> tuple[ThreadingHTTPServer, str]:
    port = config.port if config.port is not None else find_free_port(config.host)
    state = ServerState(
        repo=config.repo,
        output_dir=config.output_dir,
        ignore_config=config.ignore_config,
        lock=threading.Lock(),
        console=console,
    )
    server = ThreadingHTTPServer((config.host, port), _handler_factory(state))
    host = "localhost" if config.host in {"", "0.0.0.0", "127.0.0.1"} else config.host
    return server, f"http://{host}:{server.server_address[1]}/review"


def serve(config: ServerConfig, console: Console) -> int:
    server, url = create_server(config, console)
    render_startup(console, url, config.repo, config.output_dir, config.ignore_config, config.open_browser)
    if config.open_browser:
        webbrowser.open(url)

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        console.print("\nStopping server.")
    finally:
        server.server_close()
    return 0
