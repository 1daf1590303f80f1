"""
Stage - Abstract base class for all pipeline stages.

A stage is one external correction/sorting/deduplication step. It knows its
name, the pipeline modes it applies to, how to build its command from the
run context, and which file it leaves behind for the next stage. Running
the command is delegated to a StageRunner.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import FrozenSet, List, Optional

from .context import PipelineContext, PipelineMode
from .stage_runner import StageOutcome, StageRunner

logger = logging.getLogger(__name__)

ALL_MODES: FrozenSet[PipelineMode] = frozenset(PipelineMode)


class Stage(ABC):
    """Abstract base class for all pipeline stages.

    Stages hold no per-run state; everything a stage needs comes from the
    PipelineContext passed to it, so one instance can be reused across runs.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for the stage.

        Returns
        -------
        str
            The stage name used for logging, capture files and escalation
        """
        pass

    @property
    def description(self) -> str:
        """Human-readable description for logging."""
        return f"Stage: {self.name}"

    @property
    def modes(self) -> FrozenSet[PipelineMode]:
        """Pipeline modes this stage runs in (default: all)."""
        return ALL_MODES

    def applies_to(self, mode: PipelineMode) -> bool:
        """Return True if the stage runs in ``mode``."""
        return mode in self.modes

    @abstractmethod
    def build_command(self, context: PipelineContext) -> List[str]:
        """Build the argument vector for this stage.

        Parameters
        ----------
        context : PipelineContext
            The pipeline context

        Returns
        -------
        List[str]
            Executable command, one argument per element
        """
        pass

    def output_file(self, context: PipelineContext) -> Optional[Path]:
        """File the next stage should read, or None to leave it unchanged."""
        return None

    def __call__(self, context: PipelineContext, stage_runner: StageRunner) -> StageOutcome:
        """Execute the stage and record its outcome in the context.

        Parameters
        ----------
        context : PipelineContext
            The pipeline context
        stage_runner : StageRunner
            Runner used to execute the command

        Returns
        -------
        StageOutcome
            Outcome of the external command

        Raises
        ------
        LaunchFailure
            If the command could not be started
        """
        logger.info(f"Executing {self.description}")
        command = self.build_command(context)
        outcome = stage_runner.run(command, self.name)
        context.record_outcome(outcome)

        if outcome.success:
            self._post_execute(context)
            logger.info(f"Stage '{self.name}' completed successfully in {outcome.duration:.1f}s")
        else:
            logger.error(
                f"Stage '{self.name}' failed after {outcome.duration:.1f}s "
                f"(exit status {outcome.exit_status}), see {outcome.stderr_path}"
            )
        return outcome

    def _post_execute(self, context: PipelineContext) -> None:
        """Point the context at this stage's output after a successful run."""
        output = self.output_file(context)
        if output is not None:
            context.current_file = output

    def __repr__(self) -> str:
        """Return string representation of the stage."""
        modes = ", ".join(sorted(m.value for m in self.modes))
        return f"{self.__class__.__name__}(name='{self.name}', modes=[{modes}])"
