"""
Distribution of undetermined ("N") bases per base position.

For every read the accumulator counts N calls (case-insensitive) at each
base position, separately for read 1 and read 2, and counts a read as bad
when its N fraction reaches the configured threshold. At the end of the
stream the per-position counts are turned into the percentage of reads
with an N at that position.
"""

import logging
from typing import Optional

import numpy as np

from ..pipeline_core.error_handling import MalformedInputError
from .base import MetricResult, PlotSpec, PositionHistogram, ReadPair, to_series

logger = logging.getLogger(__name__)

_N_CODES = np.frombuffer(b"Nn", dtype=np.uint8)

DEFAULT_THRESHOLD = 0.15


class NBaseDistribution:
    """Accumulate N-base counts per position for read 1 and read 2.

    Parameters
    ----------
    threshold : float
        A read is bad when ``numN >= threshold * len(read)``
    """

    name = "DistributionOfN"

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {threshold}")
        self.threshold = threshold

        self.total_reads_read1 = 0
        self.total_reads_read2 = 0
        self.bad_reads_read1 = 0
        self.bad_reads_read2 = 0
        self.max_len = 0
        self.dist_read1 = PositionHistogram()
        self.dist_read2 = PositionHistogram()

        self._finalized = False
        self._result: Optional[MetricResult] = None

    def observe(self, pair: ReadPair) -> None:
        """Count the N bases of the next read pair.

        Raises
        ------
        MalformedInputError
            If the pair has no read 1
        RuntimeError
            If called after finalize()
        """
        if self._finalized:
            raise RuntimeError("Cannot observe reads after the distribution was finalized")
        if pair.read1 is None:
            raise MalformedInputError("Encountered null/empty fastq record for read 1")

        self.total_reads_read1 += 1
        self.bad_reads_read1 += self._count_ns(pair.read1.sequence, self.dist_read1)

        # an empty mate sequence means no mate for this pair
        if pair.read2 is not None and pair.read2.sequence:
            self.total_reads_read2 += 1
            self.bad_reads_read2 += self._count_ns(pair.read2.sequence, self.dist_read2)

    def _count_ns(self, sequence: str, histogram: PositionHistogram) -> int:
        """Update ``histogram`` with the N positions of ``sequence``; return 1 for a bad read."""
        length = len(sequence)
        if length == 0:
            # 0 >= threshold * 0 holds, so an empty read is bad
            return 1
        if length > self.max_len:
            self.max_len = length
        histogram.grow(length)

        bases = np.frombuffer(sequence.encode("ascii", errors="replace"), dtype=np.uint8)
        positions = np.flatnonzero(np.isin(bases, _N_CODES))
        histogram.increment(positions)

        return int(len(positions) >= self.threshold * length)

    def finalize(self) -> Optional[MetricResult]:
        """Build the result once the stream is exhausted.

        Returns
        -------
        MetricResult or None
            None if no read pair was ever observed
        """
        if self._finalized:
            return self._result
        self._finalized = True

        if self.total_reads_read1 <= 0:
            logger.info("No reads observed, N base distribution not reported")
            return None

        facts = {"Bad_Reads_Read1": str(self.bad_reads_read1)}
        series = {"Read 1": to_series(self.dist_read1.percentages(self.total_reads_read1))}
        if self.total_reads_read2 > 0:
            facts["Bad_Reads_Read2"] = str(self.bad_reads_read2)
            series["Read 2"] = to_series(self.dist_read2.percentages(self.total_reads_read2))

        plot = PlotSpec(
            title="Distribution of N per base position",
            x_label="Base Position",
            y_label="Percentage of N",
            series=series,
            x_range=(0, self.max_len),
            y_range=(0, 100),
            file_name="DistributionOfN.png",
        )
        self._result = MetricResult(name=self.name, facts=facts, plot=plot)
        logger.debug(
            f"N distribution finalized: {self.total_reads_read1} read 1, "
            f"{self.total_reads_read2} read 2, max length {self.max_len}"
        )
        return self._result
