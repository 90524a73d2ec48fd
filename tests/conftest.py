"""Shared fixtures: throwaway local HTTP servers."""

import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

HELLO = b"Hello, world\n"


class HelloHandler(BaseHTTPRequestHandler):
    """Answers every GET with a fixed status and body."""
    status = 200
    body = HELLO

    def do_GET(self):
        self.send_response(self.status)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(self.body)))
        self.end_headers()
        self.wfile.write(self.body)

    def log_message(self, format, *args):
        return


def handler(base=HelloHandler, **attrs):
    """Fresh handler subclass so per-test state never leaks between tests."""
    return type("TestHandler", (base,), attrs)


class FlakyHandler(HelloHandler):
    """Drops the connection without answering for the first ``failures`` requests."""
    failures = 0
    lock = None

    def do_GET(self):
        cls = type(self)
        with cls.lock:
            drop = cls.failures > 0
            if drop:
                cls.failures -= 1
        if drop:
            self.close_connection = True
            return
        super().do_GET()


class RecordingHandler(HelloHandler):
    """HTTP/1.1 handler remembering the client port of every request."""
    protocol_version = "HTTP/1.1"
    ports = None

    def do_GET(self):
        type(self).ports.append(self.client_address[1])
        super().do_GET()


@pytest.fixture
def serve():
    servers = []

    def start(handler_cls):
        server = ThreadingHTTPServer(("127.0.0.1", 0), handler_cls)
        server.daemon_threads = True
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        servers.append(server)
        host, port = server.server_address[:2]
        return f"http://{host}:{port}/"

    yield start

    for server in servers:
        server.shutdown()
        server.server_close()


@pytest.fixture
def hello_url(serve):
    return serve(handler())


@pytest.fixture
def error_url(serve):
    return serve(handler(status=500, body=b"Internal Server Error\n"))


@pytest.fixture
def flaky_url(serve):
    return serve(handler(FlakyHandler, failures=1, lock=threading.Lock()))


@pytest.fixture
def recording_server(serve):
    handler_cls = handler(RecordingHandler, ports=[])
    return serve(handler_cls), handler_cls


@pytest.fixture
def closed_url():
    """URL of a local port nothing listens on."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return f"http://127.0.0.1:{port}/"


class RedirectHandler(HelloHandler):
    """Redirects /old to /new and remembers every requested path."""
    paths = None

    def do_GET(self):
        type(self).paths.append(self.path)
        if self.path == "/old":
            self.send_response(302)
            self.send_header("Location", "/new")
            self.send_header("Content-Length", "0")
            self.end_headers()
            return
        super().do_GET()


@pytest.fixture
def redirect_server(serve):
    handler_cls = handler(RedirectHandler, paths=[])
    return serve(handler_cls) + "old", handler_cls
