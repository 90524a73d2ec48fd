"""Benchmark coordinator: drives the worker pool for one run."""

import queue
from typing import List, Optional

from .config import BenchmarkConfig
from .results import BenchmarkReport, ResultAggregator
from .state import BenchmarkState
from .worker import Worker
from ..utils.logging import LoggerMixin


class BenchmarkCoordinator(LoggerMixin):
    """Feeds the target URL to a fixed pool of workers until the configured
    number of requests has completed, then builds the report.
    """

    def __init__(self, config: BenchmarkConfig):
        super().__init__()
        self.config = config
        self.target = config.target
        self.state: Optional[BenchmarkState] = None
        self.workers: List[Worker] = []
        self.aggregator: Optional[ResultAggregator] = None
        self.rounds = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()

    def run_benchmark(self) -> BenchmarkReport:
        """Run the benchmark to completion.

        Returns:
            Report computed from the final counters and collected samples
        """
        config = self.config
        self.logger.info(
            f"Benchmarking {config.url}: {config.requests} requests, concurrency {config.concurrency}"
        )

        self.state = BenchmarkState(config.requests)
        result_queue: "queue.Queue" = queue.Queue()
        self.aggregator = ResultAggregator(result_queue, capacity_hint=config.requests)
        self.aggregator.start()

        self.workers = [
            Worker(i, config, self.state, result_queue)
            for i in range(config.concurrency)
        ]
        self.state.start()
        for worker in self.workers:
            worker.start()
        self.logger.debug(f"Started {len(self.workers)} workers")

        self._feed(config.url)
        self.shutdown()

        counters = self.state.snapshot()
        report = BenchmarkReport.build(
            hostname=self.target.hostname,
            port=self.target.port,
            path=self.target.path,
            concurrency=config.concurrency,
            counters=counters,
            samples=self.aggregator.samples
        )
        self.logger.info(
            f"Finished {counters.done_count} requests in {counters.time_taken:.3f}s "
            f"({counters.bad_count} failed, {counters.throttled_count} surplus tasks skipped)"
        )
        return report

    def _feed(self, url: str) -> None:
        """Round-robin tasks to every worker until enough requests are done.

        The completion check reads the counter without its lock, so a few
        surplus tasks may be handed out; workers skip those.
        """
        while True:
            for worker in self.workers:
                worker.submit(url)
            self.rounds += 1
            if self.state.is_complete():
                break

    def shutdown(self) -> None:
        """Stop and join every worker, then drain the aggregator."""
        if self.workers:
            for worker in self.workers:
                if worker.is_alive():
                    worker.stop()
            for worker in self.workers:
                worker.join()
                worker.close()
            self.logger.debug(f"Stopped {len(self.workers)} workers after {self.rounds} rounds")
            self.workers = []

        if self.aggregator is not None and self.aggregator.is_alive():
            self.aggregator.close()
            self.aggregator.join()
