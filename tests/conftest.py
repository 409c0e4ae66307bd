"""Shared fixtures: a real local HTTP server serving expvar payloads."""

import json
import socket
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest


def expvar_payload(cmdline=None, alloc=0, sys=0, **extra) -> str:
    """Build a JSON payload the way an instrumented process would expose it."""
    payload = {
        "cmdline": cmdline if cmdline is not None else ["/usr/local/bin/app"],
        "memstats": {"Alloc": alloc, "Sys": sys, "HeapAlloc": alloc, "NumGC": 3},
    }
    payload.update(extra)
    return json.dumps(payload)


class _Server(ThreadingHTTPServer):
    daemon_threads = True
    request_queue_size = 128  # Load tests open many connections at once


class ExpvarServer:
    """Threaded HTTP server with per-path canned responses."""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, str, float]] = {}
        self.hits = 0
        server = self

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self):  # noqa: N802
                server.hits += 1
                status, body, delay = server.routes.get(self.path, (404, "404 page not found", 0.0))
                if delay:
                    time.sleep(delay)
                data = body.encode()
                self.send_response(status)
                self.send_header("Content-Type", "application/json")
                self.send_header("Content-Length", str(len(data)))
                self.end_headers()
                self.wfile.write(data)

            def log_message(self, format, *args):
                pass

        self.httpd = _Server(("127.0.0.1", 0), Handler)
        self._thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)

    @property
    def port(self) -> str:
        return str(self.httpd.server_address[1])

    def url(self, path: str = "/debug/vars") -> str:
        return f"http://127.0.0.1:{self.port}{path}"

    def serve(self, body: str, path: str = "/debug/vars", status: int = 200, delay: float = 0.0):
        self.routes[path] = (status, body, delay)

    def start(self) -> None:
        self._thread.start()

    def close(self) -> None:
        self.httpd.shutdown()
        self.httpd.server_close()


@pytest.fixture
def expvar_server():
    """A running ExpvarServer, shut down after the test."""
    server = ExpvarServer()
    server.start()
    try:
        yield server
    finally:
        server.close()


@pytest.fixture
def closed_port() -> str:
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return str(sock.getsockname()[1])


@pytest.fixture
def payload():
    """The expvar_payload builder."""
    return expvar_payload
