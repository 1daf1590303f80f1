"""
Pipeline stages for postseq.

This package contains the external-tool stages of the alignment
post-processing pipeline and the fixed per-mode stage sequences.
"""

from .alignment_stages import (
    AlignmentStatsStage,
    FixCigarForUnmappedStage,
    FixMateInfoAndCigarStage,
    MarkDuplicatesStage,
    SortByCoordinateStage,
)

__all__ = [
    "SortByCoordinateStage",
    "FixCigarForUnmappedStage",
    "FixMateInfoAndCigarStage",
    "MarkDuplicatesStage",
    "AlignmentStatsStage",
]
