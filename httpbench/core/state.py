"""Run-wide counters shared by the worker pool."""

import threading
import time
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Optional


@dataclass(frozen=True)
class CountersSnapshot:
    """Point-in-time copy of the counters, taken at run end."""
    started_count: int
    done_count: int
    good_count: int
    bad_count: int
    non_success_count: int
    throttled_count: int
    total_read: int
    server_software: str
    document_length: int
    time_taken: float

    @property
    def requests_per_second(self) -> float:
        return self.done_count / self.time_taken if self.time_taken > 0 else 0.0

    @property
    def time_per_request_ms(self) -> float:
        """Mean time per request across all concurrent requests."""
        return self.time_taken * 1000 / self.done_count if self.done_count > 0 else 0.0

    @property
    def transfer_rate_kbps(self) -> float:
        return self.total_read / 1024 / self.time_taken if self.time_taken > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class BenchmarkState:
    """Counters of one benchmark run.

    Every mutation holds ``_lock``. ``done_count`` may also be read without
    it by the dispatcher's polling loop.
    """

    def __init__(self, total_requests: int, clock: Optional[Callable[[], float]] = None):
        self.total_requests = total_requests
        self.clock = clock if clock is not None else time.perf_counter
        self._lock = threading.Lock()

        self.started_count = 0
        self.done_count = 0
        self.good_count = 0
        self.bad_count = 0
        self.non_success_count = 0
        self.throttled_count = 0
        self.total_read = 0

        self.server_software = ""
        self.document_length = 0

        self.start_time = self.clock()
        self.last_time = self.start_time

    def start(self) -> None:
        with self._lock:
            self.start_time = self.clock()
            self.last_time = self.start_time

    def touch(self) -> None:
        """Record activity; the run's elapsed time ends at the last touch."""
        now = self.clock()
        with self._lock:
            if now > self.last_time:
                self.last_time = now

    def claim(self) -> bool:
        """Claim one of the configured requests.

        Returns False once all of them have been started; the caller must
        then skip the task.
        """
        with self._lock:
            if self.started_count >= self.total_requests:
                self.throttled_count += 1
                return False
            self.started_count += 1
            return True

    def incr_done(self) -> None:
        with self._lock:
            self.done_count += 1

    def incr_good(self) -> None:
        with self._lock:
            self.good_count += 1

    def incr_bad(self) -> None:
        with self._lock:
            self.bad_count += 1

    def incr_non_success(self) -> None:
        with self._lock:
            self.non_success_count += 1

    def add_total_read(self, size: int) -> None:
        with self._lock:
            self.total_read += size

    def record_document(self, server_software: str, document_length: int) -> None:
        with self._lock:
            self.server_software = server_software
            self.document_length = document_length

    @property
    def time_taken(self) -> float:
        """Seconds between run start and the last recorded activity."""
        with self._lock:
            return self.last_time - self.start_time

    def is_complete(self) -> bool:
        """Unlocked read used by the dispatcher; may lag behind increments."""
        return self.done_count >= self.total_requests

    def snapshot(self) -> CountersSnapshot:
        with self._lock:
            return CountersSnapshot(
                started_count=self.started_count,
                done_count=self.done_count,
                good_count=self.good_count,
                bad_count=self.bad_count,
                non_success_count=self.non_success_count,
                throttled_count=self.throttled_count,
                total_read=self.total_read,
                server_software=self.server_software,
                document_length=self.document_length,
                time_taken=self.last_time - self.start_time
            )
