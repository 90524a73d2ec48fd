"""Test request workers."""

import queue

import pytest

from httpbench.core.config import BenchmarkConfig
from httpbench.core.results import Sample
from httpbench.core.state import BenchmarkState
from httpbench.core.worker import Worker, header_length, is_success


def make_worker(url, requests=1, keep_alive=False):
    config = BenchmarkConfig(url=url, requests=requests, concurrency=1, keep_alive=keep_alive)
    state = BenchmarkState(requests)
    state.start()
    return Worker(0, config, state, queue.Queue())


@pytest.fixture
def workers():
    created = []

    def factory(url, **kwargs):
        worker = make_worker(url, **kwargs)
        created.append(worker)
        return worker

    yield factory

    for worker in created:
        if worker.is_alive():
            worker.stop()
            worker.join(timeout=5)
        worker.close()


class TestHelpers:
    """Test status classification."""

    @pytest.mark.parametrize("code,expected", [
        (200, True),
        (204, True),
        (299, True),
        (199, False),
        (301, False),
        (404, False),
        (500, False),
    ])
    def test_is_success(self, code, expected):
        assert is_success(code) is expected


class TestExecuteRequest:
    """Test single request execution."""

    def test_success(self, workers, hello_url):
        worker = workers(hello_url)

        sample = worker.execute_request(hello_url)

        assert isinstance(sample, Sample)
        assert sample.total_ms > 0
        snapshot = worker.state.snapshot()
        assert snapshot.done_count == 1
        assert snapshot.good_count == 1
        assert snapshot.bad_count == 0
        assert snapshot.non_success_count == 0
        assert snapshot.document_length == 13
        assert snapshot.server_software.startswith("BaseHTTP")
        assert snapshot.total_read > 13
        assert snapshot.time_taken > 0

    def test_non_success_status_still_good(self, workers, error_url):
        worker = workers(error_url)

        sample = worker.execute_request(error_url)

        assert sample is not None
        snapshot = worker.state.snapshot()
        assert snapshot.good_count == 1
        assert snapshot.non_success_count == 1
        assert snapshot.document_length == len(b"Internal Server Error\n")

    def test_redirect_is_not_followed(self, workers, redirect_server):
        url, handler_cls = redirect_server
        worker = workers(url)

        sample = worker.execute_request(url)

        assert sample is not None
        assert handler_cls.paths == ["/old"]
        snapshot = worker.state.snapshot()
        assert snapshot.good_count == 1
        assert snapshot.non_success_count == 1
        assert snapshot.document_length == 0

    def test_connection_refused(self, workers, closed_url):
        worker = workers(closed_url)

        assert worker.execute_request(closed_url) is None

        snapshot = worker.state.snapshot()
        assert snapshot.done_count == 1
        assert snapshot.bad_count == 1
        assert snapshot.good_count == 0
        assert snapshot.total_read == 0
        assert worker.tracer.trace is None

    def test_throttled_task_is_skipped(self, workers, hello_url):
        worker = workers(hello_url, requests=1)

        assert worker.execute_request(hello_url) is not None
        assert worker.execute_request(hello_url) is None

        snapshot = worker.state.snapshot()
        assert snapshot.started_count == 1
        assert snapshot.done_count == 1
        assert snapshot.throttled_count == 1
        assert snapshot.bad_count == 0

    def test_header_length(self, workers, hello_url):
        worker = workers(hello_url)

        response = worker.session.get(hello_url)
        # status line alone is "HTTP/1.0 200 OK"
        assert header_length(response) > len("HTTP/1.0 200 OK\r\n\r\n")
        assert header_length(response) < 1024


class TestWorkerThread:
    """Test the worker's task loop."""

    def test_results_land_on_queue(self, workers, hello_url):
        worker = workers(hello_url, requests=2)
        worker.start()

        worker.submit(hello_url)
        worker.submit(hello_url)
        worker.submit(hello_url)
        worker.stop()
        worker.join(timeout=10)

        assert not worker.is_alive()
        results = [worker.result_queue.get_nowait() for _ in range(3)]
        assert worker.result_queue.empty()
        assert sum(isinstance(r, Sample) for r in results) == 2
        assert results[2] is None
        assert worker.state.done_count == 2
        assert worker.state.throttled_count == 1

    def test_failures_reported_as_none(self, workers, closed_url):
        worker = workers(closed_url)
        worker.start()

        worker.submit(closed_url)
        worker.stop()
        worker.join(timeout=10)

        assert worker.result_queue.get_nowait() is None
        assert worker.state.bad_count == 1
