"""Shared fixtures: a local server emulating the endpoints the client is tested against."""

from __future__ import annotations

import base64
import gzip
import json
import ssl
import threading
import time
import urllib.parse
import zlib
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

# Self-signed certificate and key for CN=bogus.example, deliberately not matching 127.0.0.1
SELF_SIGNED_CERT = Path(__file__).parent / "data" / "bogus_example.pem"

PLAINTEXT = "The quick brown fox jumps over the lazy dog. " * 20


def payload_bytes(size: int) -> bytes:
    """Deterministic payload of ``size`` bytes served by /bytes/<size>."""
    pattern = bytes(range(256))
    return (pattern * (size // 256 + 1))[:size]


class _TestHTTPServer(ThreadingHTTPServer):
    """Threaded HTTP server recording the requests it received."""

    daemon_threads = True

    def __init__(self, server_address, RequestHandlerClass):  # type: ignore[override]
        self.requests: list[dict] = []
        self.lock = threading.Lock()
        super().__init__(server_address, RequestHandlerClass)


class _RequestHandler(BaseHTTPRequestHandler):
    server_version = "HttpsendTestServer/1.0"

    def log_message(self, format, *args):  # noqa: D401 - silence default logging
        return

    def __getattr__(self, name):
        # Every method token is served, whatever its spelling
        if name.startswith("do_"):
            return self._handle_request
        raise AttributeError(name)

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length") or 0)
        return self.rfile.read(length) if length else b""

    def _send(
        self,
        status: int,
        body: bytes = b"",
        *,
        content_type: str = "text/plain; charset=utf-8",
        headers: dict[str, str] | None = None,
        content_length: int | None = None,
    ) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        if content_length is not None:
            self.send_header("Content-Length", str(content_length))
        elif status not in (204, 304):
            self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body and status not in (204, 304):
            self.wfile.write(body)

    def _send_json(self, status: int, data: dict, headers: dict[str, str] | None = None) -> None:
        self._send(
            status,
            json.dumps(data).encode("utf-8"),
            content_type="application/json",
            headers=headers,
        )

    def _handle_request(self) -> None:
        parsed = urllib.parse.urlparse(self.path)
        params = urllib.parse.parse_qs(parsed.query)
        parts = [p for p in parsed.path.split("/") if p]
        body = self._read_body()

        with self.server.lock:
            self.server.requests.append(
                {"method": self.command, "path": self.path, "headers": dict(self.headers.items())}
            )

        # Absolute request target: this server is being used as a proxy
        if self.path.startswith("http://"):
            self._handle_proxy(body)
            return

        route = parts[0] if parts else ""

        if route == "anything":
            self._send_json(
                200,
                {
                    "method": self.command,
                    "path": parsed.path,
                    "headers": dict(self.headers.items()),
                    "data": body.decode("utf-8"),
                },
            )
        elif route == "status":
            code = int(parts[1])
            self._send(code, f"status {code}".encode())
        elif route == "basic-auth":
            user, passwd = parts[1], parts[2]
            expected = "Basic " + base64.b64encode(f"{user}:{passwd}".encode()).decode()
            if self.headers.get("Authorization") == expected:
                self._send_json(200, {"authenticated": True, "user": user})
            else:
                self._send(401, b"", headers={"WWW-Authenticate": 'Basic realm="Fake Realm"'})
        elif route == "bearer":
            self._send(401, b"token required", headers={"WWW-Authenticate": 'Bearer realm="api"'})
        elif route == "gzip":
            self._send(
                200,
                gzip.compress(PLAINTEXT.encode("utf-8")),
                headers={"Content-Encoding": "gzip"},
            )
        elif route == "deflate":
            self._send(200, zlib.compress(PLAINTEXT.encode("utf-8")), headers={"Content-Encoding": "deflate"})
        elif route == "raw-deflate":
            compressor = zlib.compressobj(wbits=-zlib.MAX_WBITS)
            data = compressor.compress(PLAINTEXT.encode("utf-8")) + compressor.flush()
            self._send(200, data, headers={"Content-Encoding": "DEFLATE"})
        elif route == "gzip-error":
            self._send(
                503,
                gzip.compress(b"service down"),
                headers={"Content-Encoding": "gzip"},
            )
        elif route == "charset":
            charset = parts[1]
            self._send(200, "café".encode(charset), content_type=f'text/plain; charset="{charset}"')
        elif route == "redirect-to":
            self._send(302, b"", headers={"Location": params["url"][0]})
        elif route == "bytes":
            self._send(200, payload_bytes(int(parts[1])), content_type="application/octet-stream")
        elif route == "stream-bytes":
            # No Content-Length: the body ends when the connection closes
            size = int(parts[1])
            self.send_response(200)
            self.send_header("Content-Type", "application/octet-stream")
            self.send_header("Connection", "close")
            self.end_headers()
            chunk = payload_bytes(64 * 1024)
            remaining = size
            while remaining > 0:
                piece = chunk[: min(len(chunk), remaining)]
                try:
                    self.wfile.write(piece)
                except OSError:
                    return
                remaining -= len(piece)
        elif route == "declare":
            # Announce a huge body and send none of it
            self._send(200, b"", content_length=int(parts[1]))
        elif route == "delay":
            time.sleep(float(parts[1]))
            self._send(200, b"finally")
        elif route == "tls":
            self._send_json(200, {"version": self.connection.version(), "cipher": self.connection.cipher()[0]})
        elif route == "multi-header":
            self.send_response(200)
            self.send_header("Set-Cookie", "a=1")
            self.send_header("Set-Cookie", "b=2")
            self.send_header("Content-Length", "0")
            self.end_headers()
        else:
            self._send(404, b"not found")

    def _handle_proxy(self, body: bytes) -> None:
        expected = getattr(self.server, "proxy_credentials", None)
        if expected is not None:
            token = "Basic " + base64.b64encode(f"{expected[0]}:{expected[1]}".encode()).decode()
            if self.headers.get("Proxy-Authorization") != token:
                self._send(407, b"", headers={"Proxy-Authenticate": 'Basic realm="proxy"'})
                return
        self._send_json(200, {"proxied": self.path, "method": self.command})


def _start_server(tls_context: ssl.SSLContext | None = None):
    server = _TestHTTPServer(("127.0.0.1", 0), _RequestHandler)
    scheme = "http"
    if tls_context is not None:
        server.socket = tls_context.wrap_socket(server.socket, server_side=True)
        scheme = "https"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    base_url = f"{scheme}://{server.server_address[0]}:{server.server_address[1]}"
    return server, thread, base_url


@pytest.fixture(scope="module")
def http_server():
    """Local HTTP server shared by the tests of a module: yields (server, base_url)."""
    server, thread, base_url = _start_server()
    try:
        yield server, base_url
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


@pytest.fixture
def base_url(http_server) -> str:
    return http_server[1]


@pytest.fixture
def proxy_server():
    """Local server acting as an HTTP proxy: yields (server, host, port)."""
    server, thread, _ = _start_server()
    try:
        yield server, server.server_address[0], server.server_address[1]
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


@pytest.fixture(scope="module")
def https_server():
    """Local HTTPS server with a self-signed certificate: yields (server, base_url)."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(SELF_SIGNED_CERT)
    server, thread, base_url = _start_server(context)
    try:
        yield server, base_url
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)
