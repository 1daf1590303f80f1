"""
Core types of the streaming metrics framework.

- FastqRecord / ReadPair: one read (or mate pair) pulled from the stream
- PositionHistogram: growable per-base-position counter array
- PlotSpec / MetricResult: finalized, immutable output of an accumulator
- MetricAccumulator: the observe/finalize capability every metric provides
"""

from dataclasses import dataclass, field
from typing import Dict, NamedTuple, Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np


class FastqRecord(NamedTuple):
    """A single sequencing read."""

    name: str
    sequence: str
    quality: str = ""


@dataclass(frozen=True)
class ReadPair:
    """Read 1 and, for paired-end data, its mate.

    ``read1`` is mandatory; the metrics runner rejects a pair without it.
    ``read2`` is None for single-ended data.
    """

    read1: Optional[FastqRecord]
    read2: Optional[FastqRecord] = None

    @property
    def is_paired(self) -> bool:
        return self.read2 is not None


class PositionHistogram:
    """Counters indexed by 0-based base position.

    The array grows (zero-filled) to the longest read it is asked to hold
    and never shrinks.
    """

    def __init__(self, length: int = 0):
        self._counts = np.zeros(length, dtype=np.int64)

    def __len__(self) -> int:
        return len(self._counts)

    def grow(self, length: int) -> None:
        """Extend the histogram to at least ``length`` positions."""
        missing = length - len(self._counts)
        if missing > 0:
            self._counts = np.pad(self._counts, (0, missing))

    def increment(self, positions: np.ndarray) -> None:
        """Add one to each (distinct) position in ``positions``."""
        self._counts[positions] += 1

    @property
    def counts(self) -> np.ndarray:
        """Read-only view of the raw counts."""
        view = self._counts.view()
        view.flags.writeable = False
        return view

    def percentages(self, total: int) -> np.ndarray:
        """Return ``count / total * 100`` per position as floats."""
        if total <= 0:
            raise ValueError("Cannot normalize a histogram by a non-positive total")
        return self._counts / total * 100.0


@dataclass(frozen=True)
class PlotSpec:
    """Data a rendering backend needs to draw one metric.

    ``series`` maps a series label to ``(position, value)`` pairs with
    1-based positions.
    """

    title: str
    x_label: str
    y_label: str
    series: Dict[str, Tuple[Tuple[int, float], ...]]
    x_range: Tuple[float, float]
    y_range: Tuple[float, float]
    file_name: str


@dataclass(frozen=True)
class MetricResult:
    """Finalized output of one accumulator.

    Attributes
    ----------
    name : str
        Metric name, e.g. "DistributionOfN"
    facts : Dict[str, str]
        Scalar key-value results
    plot : PlotSpec, optional
        Per-position series for plotting
    """

    name: str
    facts: Dict[str, str] = field(default_factory=dict)
    plot: Optional[PlotSpec] = None


@runtime_checkable
class MetricAccumulator(Protocol):
    """Capability every metric provides to the MetricsRunner.

    ``observe`` is called once per read pair in stream order; ``finalize``
    is called once after the stream is exhausted and returns None when the
    accumulator has nothing to report.
    """

    def observe(self, pair: ReadPair) -> None:
        ...

    def finalize(self) -> Optional[MetricResult]:
        ...


def to_series(values: Sequence[float]) -> Tuple[Tuple[int, float], ...]:
    """Pair each value with its 1-based position."""
    return tuple((i + 1, float(v)) for i, v in enumerate(values))
