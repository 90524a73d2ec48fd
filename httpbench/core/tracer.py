"""Per-request lifecycle tracing.

A ``RequestTrace`` walks through::

    IDLE -> CONNECTING -> CONNECTED -> REQUEST_SENT -> AWAITING_RESPONSE
         -> RECEIVING_BODY -> DONE | FAILED

stamping a ``time.perf_counter()`` timestamp on the transitions that bound
a timing phase. The worker drives the first and last transitions; the
middle ones are driven by urllib3 connection hooks installed through
``TracingAdapter``, which forward to the worker's ``RequestTracer``.
"""

import time
from enum import Enum
from typing import Callable, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool
from urllib3.poolmanager import PoolManager

from .results import Sample
from ..utils.logging import get_logger

logger = get_logger("tracer")


class TraceStateError(RuntimeError):
    """Illegal lifecycle transition."""
    pass


class Phase(str, Enum):
    """Lifecycle states of a traced request."""
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    REQUEST_SENT = "request_sent"
    AWAITING_RESPONSE = "awaiting_response"
    RECEIVING_BODY = "receiving_body"
    DONE = "done"
    FAILED = "failed"


class RequestTrace:
    """Timestamps of one request; owned by the worker executing it."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self.clock = clock if clock is not None else time.perf_counter
        self.phase = Phase.IDLE
        self.connect_start: Optional[float] = None
        self.connected: Optional[float] = None
        self.request_written: Optional[float] = None
        self.first_byte_received: Optional[float] = None
        self.request_done: Optional[float] = None
        self.error: Optional[BaseException] = None

    def _advance(self, expected: Phase, target: Phase) -> float:
        if self.phase is not expected:
            raise TraceStateError(
                f"cannot move to {target.value} from {self.phase.value} (expected {expected.value})"
            )
        self.phase = target
        return self.clock()

    def begin(self) -> None:
        self.connect_start = self._advance(Phase.IDLE, Phase.CONNECTING)

    def mark_connected(self) -> None:
        self.connected = self._advance(Phase.CONNECTING, Phase.CONNECTED)

    def mark_request_written(self) -> None:
        self.request_written = self._advance(Phase.CONNECTED, Phase.REQUEST_SENT)

    def mark_awaiting_response(self) -> None:
        self._advance(Phase.REQUEST_SENT, Phase.AWAITING_RESPONSE)

    def mark_first_byte(self) -> None:
        self.first_byte_received = self._advance(Phase.AWAITING_RESPONSE, Phase.RECEIVING_BODY)

    def mark_done(self) -> None:
        self.request_done = self._advance(Phase.RECEIVING_BODY, Phase.DONE)

    def fail(self, error: BaseException) -> None:
        if self.phase in (Phase.DONE, Phase.FAILED):
            raise TraceStateError(f"cannot fail a trace that is already {self.phase.value}")
        self.phase = Phase.FAILED
        self.error = error

    @property
    def finished(self) -> bool:
        return self.phase in (Phase.DONE, Phase.FAILED)

    def to_sample(self) -> Sample:
        """Derive the timing breakdown of a completed request."""
        if self.phase is not Phase.DONE:
            raise TraceStateError(f"no sample for a trace in state {self.phase.value}")
        return Sample(
            connect_ms=(self.connected - self.connect_start) * 1000,
            wait_ms=(self.first_byte_received - self.request_written) * 1000,
            transfer_ms=(self.request_done - self.first_byte_received) * 1000,
            total_ms=(self.request_done - self.connect_start) * 1000
        )


class RequestTracer:
    """Hook target for one worker's connections.

    Holds the trace of the request currently in flight. Hooks arriving
    outside the phase they belong to (no trace, or a reconnect after the
    trace moved on) are ignored.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self.clock = clock
        self.trace: Optional[RequestTrace] = None

    def begin(self) -> RequestTrace:
        self.trace = RequestTrace(self.clock)
        self.trace.begin()
        return self.trace

    def end(self) -> None:
        self.trace = None

    def _in(self, phase: Phase) -> Optional[RequestTrace]:
        trace = self.trace
        if trace is not None and trace.phase is phase:
            return trace
        return None

    def on_connected(self) -> None:
        trace = self._in(Phase.CONNECTING)
        if trace:
            trace.mark_connected()

    def on_connection_reused(self) -> None:
        # keep-alive: no connect event, the connection is ready at write time
        self.on_connected()

    def on_request_written(self) -> None:
        trace = self._in(Phase.CONNECTED)
        if trace:
            trace.mark_request_written()

    def on_request_failed(self, error: BaseException) -> None:
        logger.error(f"Failed to write the request: {error}")

    def on_response_start(self) -> None:
        trace = self._in(Phase.REQUEST_SENT)
        if trace:
            trace.mark_awaiting_response()

    def on_first_byte(self) -> None:
        trace = self._in(Phase.AWAITING_RESPONSE)
        if trace:
            trace.mark_first_byte()


class _TracedConnectionMixin:
    request_tracer: Optional[RequestTracer] = None

    def connect(self):
        super().connect()
        if self.request_tracer is not None:
            self.request_tracer.on_connected()

    def request(self, *args, **kwargs):
        tracer = self.request_tracer
        if tracer is not None and self.sock is not None:
            tracer.on_connection_reused()
        try:
            super().request(*args, **kwargs)
        except OSError as e:
            if tracer is not None:
                tracer.on_request_failed(e)
            raise
        if tracer is not None:
            tracer.on_request_written()

    def getresponse(self, *args, **kwargs):
        tracer = self.request_tracer
        if tracer is not None:
            tracer.on_response_start()
        response = super().getresponse(*args, **kwargs)
        if tracer is not None:
            tracer.on_first_byte()
        return response


class TracedHTTPConnection(_TracedConnectionMixin, HTTPConnection):
    pass


class TracedHTTPSConnection(_TracedConnectionMixin, HTTPSConnection):
    pass


class _TracedPoolMixin:
    request_tracer: Optional[RequestTracer] = None

    def _new_conn(self):
        conn = super()._new_conn()
        conn.request_tracer = self.request_tracer
        return conn


class TracedHTTPConnectionPool(_TracedPoolMixin, HTTPConnectionPool):
    ConnectionCls = TracedHTTPConnection


class TracedHTTPSConnectionPool(_TracedPoolMixin, HTTPSConnectionPool):
    ConnectionCls = TracedHTTPSConnection


class TracedPoolManager(PoolManager):
    """Pool manager whose pools hand out traced connections."""

    def __init__(self, tracer: RequestTracer, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.request_tracer = tracer
        self.pool_classes_by_scheme = {
            "http": TracedHTTPConnectionPool,
            "https": TracedHTTPSConnectionPool,
        }

    def _new_pool(self, scheme, host, port, request_context=None):
        pool = super()._new_pool(scheme, host, port, request_context=request_context)
        pool.request_tracer = self.request_tracer
        return pool


class TracingAdapter(HTTPAdapter):
    """requests transport adapter that reports lifecycle events to a tracer."""

    def __init__(self, tracer: RequestTracer, **kwargs):
        # HTTPAdapter.__init__ builds the pool manager, which needs the tracer
        self.request_tracer = tracer
        super().__init__(**kwargs)

    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        self._pool_connections = connections
        self._pool_maxsize = maxsize
        self._pool_block = block
        self.poolmanager = TracedPoolManager(
            self.request_tracer,
            num_pools=connections,
            maxsize=maxsize,
            block=block,
            **pool_kwargs
        )


def create_traced_session(tracer: RequestTracer, keep_alive: bool) -> requests.Session:
    """Session for a single worker: one pooled connection, no retries.

    Proxy settings from the environment are ignored so the timings
    describe the path to the target itself.
    """
    session = requests.Session()
    session.trust_env = False
    adapter = TracingAdapter(tracer, pool_connections=1, pool_maxsize=1, max_retries=0)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    if not keep_alive:
        session.headers["Connection"] = "close"
    return session
