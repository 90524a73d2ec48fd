"""httpbench - concurrent HTTP load generator with per-phase request timings."""

from .core import BenchmarkConfig, BenchmarkCoordinator, BenchmarkReport


def run_benchmark(config: BenchmarkConfig) -> BenchmarkReport:
    """Run one benchmark and return its report."""
    with BenchmarkCoordinator(config) as coordinator:
        return coordinator.run_benchmark()


__version__ = "0.1.0"

__all__ = [
    "BenchmarkConfig",
    "BenchmarkCoordinator",
    "BenchmarkReport",
    "run_benchmark",
]
