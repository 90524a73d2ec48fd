"""Persistent request workers."""

import queue
import threading
from typing import Optional

import requests

from .config import BenchmarkConfig
from .results import Sample
from .state import BenchmarkState
from .tracer import RequestTracer, create_traced_session
from ..utils.logging import LoggerMixin

_STOP = object()

HTTP_VERSIONS = {10: "HTTP/1.0", 11: "HTTP/1.1"}


def header_length(response: requests.Response) -> int:
    """Bytes of the status line and headers as they appear on the wire."""
    version = HTTP_VERSIONS.get(getattr(response.raw, "version", 11), "HTTP/1.1")
    lines = [f"{version} {response.status_code} {response.reason or ''}".rstrip()]
    lines.extend(f"{name}: {value}" for name, value in response.raw.headers.items())
    dump = "\r\n".join(lines) + "\r\n\r\n"
    return len(dump.encode("latin-1", errors="replace"))


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


class Worker(LoggerMixin):
    """One member of the pool.

    Pulls target URLs off its own single-slot channel and executes each as
    one GET request, until it receives the stop sentinel.
    """

    def __init__(
        self,
        worker_id: int,
        config: BenchmarkConfig,
        state: BenchmarkState,
        result_queue: "queue.Queue"
    ):
        super().__init__()
        self.worker_id = worker_id
        self.config = config
        self.state = state
        self.result_queue = result_queue
        self.tasks: "queue.Queue" = queue.Queue(maxsize=1)
        self.tracer = RequestTracer(clock=state.clock)
        self.session = create_traced_session(self.tracer, keep_alive=config.keep_alive)
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run, name=f"httpbench-worker-{self.worker_id}", daemon=True
        )
        self._thread.start()

    def submit(self, url: str) -> None:
        """Hand over a task; blocks while the previous one is still queued."""
        self.tasks.put(url)

    def stop(self) -> None:
        self.tasks.put(_STOP)

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def close(self) -> None:
        self.session.close()

    def _run(self) -> None:
        while True:
            url = self.tasks.get()
            if url is _STOP:
                break
            try:
                sample = self.execute_request(url)
            except Exception:
                # done_count already advanced; keep the worker serving
                self.logger.exception(f"Worker {self.worker_id} crashed executing {url}")
                sample = None
            self.result_queue.put(sample)

    def execute_request(self, url: str) -> Optional[Sample]:
        """Run one task; returns the sample of a completed request, else None."""
        if not self.state.claim():
            return None
        try:
            return self._get(url)
        finally:
            self.state.incr_done()

    def _get(self, url: str) -> Optional[Sample]:
        trace = self.tracer.begin()
        self.state.touch()
        try:
            with self.session.get(url, stream=True, allow_redirects=False) as response:
                self.logger.debug(f"Response code = {response.status_code} {response.reason}")
                body = response.content
                trace.mark_done()
                self.state.touch()

                self.state.record_document(response.headers.get("Server", ""), len(body))
                self.state.add_total_read(header_length(response) + len(body))
                if not is_success(response.status_code):
                    self.state.incr_non_success()
                self.state.incr_good()
                return trace.to_sample()
        except requests.RequestException as e:
            trace.fail(e)
            self.state.touch()
            self.state.incr_bad()
            self.logger.error(f"Request to {url} failed: {e}")
            return None
        finally:
            self.tracer.end()
