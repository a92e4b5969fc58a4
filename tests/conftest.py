# pyright: reportUnknownParameterType=false, reportUnknownMemberType=false
# pyright: reportMissingParameterType=false
import json
import socket
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlsplit

import pytest


class _Handler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def log_message(self, format, *args):  # noqa: A002
        pass

    def _reply(self, status, body=b"", headers=()):
        self.send_response(status)
        for name, value in headers:
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def _route(self):
        self.server.hits.append(self.path)
        parts = urlsplit(self.path)
        query = parse_qs(parts.query)
        path = parts.path

        if path == "/ok":
            self._reply(200, b"ok", [("Content-Type", "text/plain")])
        elif path.startswith("/status/"):
            status = int(path.rsplit("/", 1)[1])
            self._reply(status, f"status {status}".encode())
        elif path == "/redirect":
            self._reply(302, b"", [("Location", "/ok")])
        elif path.startswith("/redirect-chain/"):
            remaining = int(path.rsplit("/", 1)[1])
            target = "/ok" if remaining <= 1 else f"/redirect-chain/{remaining - 1}"
            self._reply(302, b"", [("Location", target)])
        elif path == "/slow":
            time.sleep(float(query.get("delay", ["0.3"])[0]))
            self._reply(200, f"slow {parts.query}".encode())
        elif path == "/drip":
            count = int(query.get("count", ["20"])[0])
            interval = float(query.get("interval", ["0.1"])[0])
            self.send_response(200)
            self.send_header("Content-Length", str(count))
            self.end_headers()
            try:
                for _ in range(count):
                    self.wfile.write(b"x")
                    self.wfile.flush()
                    time.sleep(interval)
            except (BrokenPipeError, ConnectionResetError):
                pass
        elif path == "/echo":
            length = int(self.headers.get("Content-Length") or 0)
            payload = {
                "method": self.command,
                "headers": [[k, v] for k, v in self.headers.items()],
                "body": self.rfile.read(length).decode("latin-1"),
                "query": parts.query,
            }
            self._reply(
                200,
                json.dumps(payload).encode(),
                [("Content-Type", "application/json")],
            )
        elif path == "/cookies":
            self._reply(
                200,
                b"",
                [("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")],
            )
        else:
            self._reply(404, b"not found")

    do_GET = _route
    do_POST = _route
    do_HEAD = _route


@pytest.fixture
def http_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    server.daemon_threads = True
    server.hits = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    server.base_url = f"http://{host}:{port}"
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def silent_server():
    """Listening socket that never accepts or answers."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(8)
    host, port = sock.getsockname()
    try:
        yield f"http://{host}:{port}"
    finally:
        sock.close()


@pytest.fixture
def closed_port_url():
    """URL for a local port with nothing listening."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    host, port = sock.getsockname()
    sock.close()
    return f"http://{host}:{port}"
