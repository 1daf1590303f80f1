"""
Streaming read metrics for postseq.

This package provides the accumulator framework that consumes read pairs
one at a time, and the concrete metrics computed over it:
- base: ReadPair, PositionHistogram, MetricResult and the MetricAccumulator capability
- nbase: Distribution of undetermined bases per base position
- reader: Paired FASTQ streaming
- runner: MetricsRunner, drives accumulators over the stream
- report: Tables, HTML summary and plots from finalized results
"""

from .base import (
    FastqRecord,
    MetricAccumulator,
    MetricResult,
    PlotSpec,
    PositionHistogram,
    ReadPair,
)
from .nbase import NBaseDistribution
from .runner import MetricsRunner

__all__ = [
    "FastqRecord",
    "ReadPair",
    "PositionHistogram",
    "PlotSpec",
    "MetricResult",
    "MetricAccumulator",
    "NBaseDistribution",
    "MetricsRunner",
]
