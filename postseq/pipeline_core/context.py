"""
PipelineContext - State carried through one alignment post-processing run.

This module provides the PipelineMode enumeration and the PipelineContext
dataclass that flows through all stages, carrying configuration, the
workspace, the file the next stage should read, and the outcome of every
stage executed so far.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Set

from .stage_runner import StageOutcome

if TYPE_CHECKING:
    from ..config import PipelineConfig
    from .workspace import Workspace

logger = logging.getLogger(__name__)


class PipelineMode(Enum):
    """Sequencing layout of the lane; decides which stages run."""

    FRAGMENT = "fragment"
    PAIRED_END = "paired"

    @classmethod
    def from_flag(cls, is_fragment: bool) -> "PipelineMode":
        """Return FRAGMENT for True, PAIRED_END for False."""
        return cls.FRAGMENT if is_fragment else cls.PAIRED_END


@dataclass
class PipelineContext:
    """Container for the state of one pipeline run.

    Attributes
    ----------
    config : PipelineConfig
        Validated configuration, built once before the run
    workspace : Workspace
        Manages output and capture paths for the run
    mode : PipelineMode
        Fragment or paired-end; decides the stage sequence
    input_file : Path
        SAM file produced by the aligner
    final_bam : Path
        Duplicate-marked BAM the run produces
    barcode : str
        Flowcell/lane barcode used in logs and escalation
    sorted_bam : Path
        Coordinate-sorted intermediate BAM
    current_file : Path
        File the next stage reads
    outcomes : List[StageOutcome]
        Outcome of every stage executed, in execution order
    completed_stages : Set[str]
        Names of stages that finished successfully
    """

    config: "PipelineConfig"
    workspace: "Workspace"
    mode: PipelineMode
    input_file: Path
    final_bam: Path
    barcode: str = ""
    start_time: datetime = field(default_factory=datetime.now)

    sorted_bam: Optional[Path] = None
    current_file: Optional[Path] = None
    stats_file: Optional[Path] = None
    outcomes: List[StageOutcome] = field(default_factory=list)
    completed_stages: Set[str] = field(default_factory=set)

    def __post_init__(self):
        self.input_file = Path(self.input_file)
        self.final_bam = Path(self.final_bam)
        if self.sorted_bam is None:
            self.sorted_bam = self.workspace.sorted_bam_path(self.input_file)
        if self.current_file is None:
            self.current_file = self.input_file

    def record_outcome(self, outcome: StageOutcome) -> None:
        """Append a stage outcome and mark the stage complete if it succeeded."""
        self.outcomes.append(outcome)
        if outcome.success:
            self.completed_stages.add(outcome.stage_name)
            logger.debug(f"Stage '{outcome.stage_name}' marked as complete")

    @property
    def executed_stages(self) -> List[str]:
        """Names of the stages that were launched, in order."""
        return [o.stage_name for o in self.outcomes]

    def get_execution_time(self) -> float:
        """Get the elapsed execution time in seconds."""
        return (datetime.now() - self.start_time).total_seconds()

    def __repr__(self) -> str:
        """Return string representation showing key state information."""
        return (
            f"PipelineContext("
            f"mode={self.mode.value}, "
            f"stages_completed={len(self.completed_stages)}, "
            f"execution_time={self.get_execution_time():.1f}s)"
        )
