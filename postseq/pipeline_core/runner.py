"""
PipelineRunner - Executes stages sequentially and stops at the first failure.

This module provides the PipelineRunner class that orchestrates one run of
the alignment post-processing pipeline. Stages run one at a time in list
order, because every stage consumes the exact output of the one before it.
There is no retry and no partial-completion recovery: the first stage whose
outcome is not successful ends the run with a StageFailure.
"""

import logging
import time
from typing import Dict, List

from .context import PipelineContext
from .error_handling import StageCancelled, StageFailure, StageTimeout
from .stage import Stage
from .stage_runner import StageOutcome, StageRunner

logger = logging.getLogger(__name__)


class PipelineRunner:
    """Runs an ordered list of stages with fail-fast semantics.

    Attributes
    ----------
    stage_runner : StageRunner
        Executes each stage's external command
    """

    def __init__(self, stage_runner: StageRunner):
        """Initialize the pipeline runner.

        Parameters
        ----------
        stage_runner : StageRunner
            Runner used for every stage's command
        """
        self.stage_runner = stage_runner
        self._execution_times: Dict[str, float] = {}

    def plan(self, stages: List[Stage], context: PipelineContext) -> List[Stage]:
        """Return the stages that apply to the context's mode, in order.

        Raises
        ------
        ValueError
            If two stages share a name
        """
        names = [stage.name for stage in stages]
        if len(set(names)) != len(names):
            raise ValueError("Duplicate stage names detected")
        return [stage for stage in stages if stage.applies_to(context.mode)]

    def run(self, stages: List[Stage], context: PipelineContext) -> PipelineContext:
        """Execute the applicable stages in order.

        Parameters
        ----------
        stages : List[Stage]
            Stages to execute
        context : PipelineContext
            Initial pipeline context

        Returns
        -------
        PipelineContext
            Final context after all stages completed successfully

        Raises
        ------
        StageFailure
            As soon as one stage does not succeed (StageTimeout / StageCancelled
            for killed stages); no later stage runs
        LaunchFailure
            If a stage's command could not be started
        """
        start_time = time.time()
        self._execution_times = {}
        execution_plan = self.plan(stages, context)
        logger.info(
            f"Starting {context.mode.value} pipeline for {context.input_file} "
            f"with {len(execution_plan)} stages: {', '.join(s.name for s in execution_plan)}"
        )

        for stage in execution_plan:
            outcome = stage(context, self.stage_runner)
            self._execution_times[stage.name] = outcome.duration
            if not outcome.success:
                raise self._failure_for(outcome)

        total_time = time.time() - start_time
        logger.info(f"Pipeline execution completed in {total_time:.1f}s")
        self._log_execution_summary()
        return context

    @staticmethod
    def _failure_for(outcome: StageOutcome) -> StageFailure:
        if outcome.timed_out:
            return StageTimeout(outcome)
        if outcome.cancelled:
            return StageCancelled(outcome)
        return StageFailure(outcome)

    def get_execution_times(self) -> Dict[str, float]:
        """Get stage execution times in seconds."""
        return self._execution_times.copy()

    def _log_execution_summary(self) -> None:
        """Log summary of stage execution times."""
        if not self._execution_times:
            return

        logger.info("=" * 60)
        logger.info("Stage Execution Summary")
        logger.info("=" * 60)

        total_time = sum(self._execution_times.values())
        for stage_name, elapsed in self._execution_times.items():
            percentage = (elapsed / total_time) * 100 if total_time > 0 else 0
            logger.info(f"{stage_name:30s} {elapsed:8.1f}s ({percentage:4.1f}%)")

        logger.info("-" * 60)
        logger.info(f"{'Total stage time:':30s} {total_time:8.1f}s")
        logger.info("=" * 60)

    def dry_run(self, stages: List[Stage], context: PipelineContext) -> List[List[str]]:
        """Return the commands the run would execute, without executing them."""
        return [stage.build_command(context) for stage in self.plan(stages, context)]

