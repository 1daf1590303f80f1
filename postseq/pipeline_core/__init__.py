"""
Pipeline infrastructure for postseq.

This package provides the core abstractions of the alignment post-processing
pipeline:
- PipelineContext / PipelineMode: State of one run and its sequencing layout
- Stage: Abstract base class for an external processing step
- StageRunner / StageOutcome: Runs one external command and reports the result
- PipelineRunner: Runs stages in order and stops at the first failure
- Workspace: File path management for a run
"""

from .context import PipelineContext, PipelineMode
from .runner import PipelineRunner
from .stage import Stage
from .stage_runner import StageOutcome, StageRunner
from .workspace import Workspace

__all__ = [
    "PipelineContext",
    "PipelineMode",
    "Stage",
    "StageOutcome",
    "StageRunner",
    "Workspace",
    "PipelineRunner",
]
