"""Core components of httpbench."""

from .config import BenchmarkConfig, ConfigLoader, InvalidTargetError, Target
from .state import BenchmarkState, CountersSnapshot
from .results import BenchmarkReport, ResultAggregator, Sample
from .tracer import Phase, RequestTrace, RequestTracer, TraceStateError
from .worker import Worker
from .coordinator import BenchmarkCoordinator

__all__ = [
    "BenchmarkConfig",
    "ConfigLoader",
    "InvalidTargetError",
    "Target",
    "BenchmarkState",
    "CountersSnapshot",
    "BenchmarkReport",
    "ResultAggregator",
    "Sample",
    "Phase",
    "RequestTrace",
    "RequestTracer",
    "TraceStateError",
    "Worker",
    "BenchmarkCoordinator",
]
