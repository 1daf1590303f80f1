"""
MetricsRunner - Drive accumulators over a single pass of the read stream.
"""

import logging
import threading
import time
from typing import Iterable, Iterator, List, Optional, Sequence

from ..pipeline_core.error_handling import MalformedInputError, RunCancelled
from .base import MetricAccumulator, MetricResult, ReadPair

logger = logging.getLogger(__name__)


class MetricsRunner:
    """Feed every read pair to every registered accumulator, in order.

    Accumulators are observed and finalized in registration order, so the
    same stream always produces the same results in the same order.

    Parameters
    ----------
    accumulators : Sequence[MetricAccumulator]
        Anything providing ``observe(pair)`` and ``finalize()``
    """

    def __init__(self, accumulators: Sequence[MetricAccumulator]):
        for acc in accumulators:
            if not isinstance(acc, MetricAccumulator):
                raise TypeError(f"{acc!r} does not provide observe() and finalize()")
        self.accumulators: List[MetricAccumulator] = list(accumulators)
        self.pairs_processed = 0

    def run(
        self, pairs: Iterable[ReadPair], cancel_event: Optional[threading.Event] = None
    ) -> Iterator[MetricResult]:
        """Consume ``pairs`` and yield each accumulator's finalized result.

        This is a generator: nothing is read until the caller starts
        iterating, and results are only yielded after the stream is
        exhausted. Absent (None) results are skipped.

        Raises
        ------
        MalformedInputError
            If a pair has no read 1; nothing is yielded
        RunCancelled
            If ``cancel_event`` is set before the stream is exhausted
        """
        start_time = time.time()
        self.pairs_processed = 0

        for pair in pairs:
            if cancel_event is not None and cancel_event.is_set():
                raise RunCancelled(
                    f"Metrics run cancelled after {self.pairs_processed} read pairs", "metrics"
                )
            if pair.read1 is None:
                raise MalformedInputError(
                    f"Read pair {self.pairs_processed + 1} has no read 1 record",
                    self.pairs_processed,
                )
            for acc in self.accumulators:
                acc.observe(pair)
            self.pairs_processed += 1

        elapsed = time.time() - start_time
        logger.info(f"Processed {self.pairs_processed} read pairs in {elapsed:.1f}s")

        for acc in self.accumulators:
            result = acc.finalize()
            if result is None:
                logger.debug(f"{type(acc).__name__} produced no result, skipping")
                continue
            yield result
