"""Result collection and aggregation for httpbench."""

import json
import queue
import threading
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

from .state import CountersSnapshot
from ..utils.logging import LoggerMixin
from ..utils.stats import PhaseStats, percentile_table

PHASES = ("connect", "wait", "transfer", "total")


@dataclass(frozen=True)
class Sample:
    """Timing breakdown of one completed request, in milliseconds."""
    connect_ms: float
    wait_ms: float
    transfer_ms: float
    total_ms: float

    def phase(self, name: str) -> float:
        return getattr(self, f"{name}_ms")


_CLOSE = object()


class ResultAggregator(LoggerMixin):
    """Single consumer of the result queue.

    The only writer to ``samples``, which holds completed requests in the
    order they arrived.
    """

    def __init__(self, result_queue: "queue.Queue", capacity_hint: int = 0):
        super().__init__()
        self.result_queue = result_queue
        self.capacity_hint = capacity_hint
        self.samples: List[Sample] = []
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._drain, name="httpbench-aggregator", daemon=True)
        self._thread.start()

    def _drain(self) -> None:
        while True:
            item = self.result_queue.get()
            if item is _CLOSE:
                break
            if item is not None:
                self.samples.append(item)
        self.logger.debug(f"Aggregator collected {len(self.samples)} of {self.capacity_hint} expected samples")

    def close(self) -> None:
        """Signal end of input; samples queued before this are still collected."""
        self.result_queue.put(_CLOSE)

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


@dataclass(frozen=True)
class BenchmarkReport:
    """Read-only outcome of one run."""
    hostname: str
    port: int
    path: str
    concurrency: int
    counters: CountersSnapshot
    sample_count: int
    phases: Dict[str, PhaseStats] = field(default_factory=dict)
    percentiles: List[Tuple[int, float]] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        hostname: str,
        port: int,
        path: str,
        concurrency: int,
        counters: CountersSnapshot,
        samples: List[Sample]
    ) -> "BenchmarkReport":
        phases = {
            name: PhaseStats.from_values([s.phase(name) for s in samples])
            for name in PHASES
        }
        percentiles = percentile_table([s.total_ms for s in samples]) if samples else []
        return cls(
            hostname=hostname,
            port=port,
            path=path,
            concurrency=concurrency,
            counters=counters,
            sample_count=len(samples),
            phases=phases,
            percentiles=percentiles
        )

    @property
    def time_per_request_ms(self) -> float:
        """Mean time per request as seen by one of the concurrent clients."""
        return self.concurrency * self.counters.time_per_request_ms

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["requests_per_second"] = self.counters.requests_per_second
        data["time_per_request_ms"] = self.time_per_request_ms
        data["time_per_request_all_ms"] = self.counters.time_per_request_ms
        data["transfer_rate_kbps"] = self.counters.transfer_rate_kbps
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)
