"""Summary statistics over request durations.

All functions are pure and take any sequence of non-negative floats
(milliseconds throughout httpbench). Callers are expected to guard against
empty input where noted; ``PhaseStats.from_values`` does so for the report.
"""

import math
from dataclasses import dataclass, asdict
from typing import Dict, List, Sequence, Tuple
import numpy as np

PERCENTILE_CUTS: Tuple[int, ...] = (50, 66, 75, 80, 90, 95, 98, 99, 100)


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def minimum(values: Sequence[float]) -> float:
    """Smallest value; +inf for an empty sequence."""
    return float(np.min(_as_array(values), initial=math.inf))


def maximum(values: Sequence[float]) -> float:
    """Largest value; 0 for an empty sequence."""
    return float(np.max(_as_array(values), initial=0.0))


def total(values: Sequence[float]) -> float:
    return float(np.sum(_as_array(values)))


def mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        raise ValueError("mean requires at least one value")
    return total(values) / len(values)


def sample_stddev(values: Sequence[float]) -> float:
    """Bessel-corrected standard deviation; 0 when fewer than two values."""
    n = len(values)
    if n <= 1:
        return 0.0
    return float(np.std(_as_array(values), ddof=1))


def median(values: Sequence[float]) -> float:
    """Median as reported by ab-style tools.

    For an odd count above one this averages the elements at ``n // 2`` and
    ``n // 2 + 1`` of the sorted values, so ``median([1, 2, 3]) == 2.5``.
    For an even count (or a single value) it returns the element at
    ``n // 2``. Both indices stay in range for every ``n >= 1``.
    """
    n = len(values)
    if n == 0:
        raise ValueError("median requires at least one value")
    ordered = np.sort(_as_array(values))
    if n > 1 and n % 2 != 0:
        return float((ordered[n // 2] + ordered[n // 2 + 1]) / 2)
    return float(ordered[n // 2])


def percentile_table(
    values: Sequence[float],
    cuts: Sequence[int] = PERCENTILE_CUTS
) -> List[Tuple[int, float]]:
    """Nearest-rank percentiles by floor index.

    Each cut ``p`` below 100 maps to the sorted element at ``(n * p) // 100``;
    the 100 cut is the longest observed value.
    """
    n = len(values)
    if n == 0:
        raise ValueError("percentile table requires at least one value")
    ordered = np.sort(_as_array(values))
    table = []
    for cut in cuts:
        if cut < 100:
            table.append((cut, float(ordered[(n * cut) // 100])))
        else:
            table.append((cut, float(ordered[-1])))
    return table


@dataclass(frozen=True)
class PhaseStats:
    """One row of the connection-times table."""
    min_ms: float = 0.0
    mean_ms: float = 0.0
    stddev_ms: float = 0.0
    median_ms: float = 0.0
    max_ms: float = 0.0

    @classmethod
    def from_values(cls, values: Sequence[float]) -> "PhaseStats":
        if len(values) == 0:
            return cls()
        return cls(
            min_ms=minimum(values),
            mean_ms=mean(values),
            stddev_ms=sample_stddev(values),
            median_ms=median(values),
            max_ms=maximum(values)
        )

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)
