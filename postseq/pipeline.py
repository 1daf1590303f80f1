# File: postseq/pipeline.py
# Location: postseq/postseq/pipeline.py

"""
Entry points that wire the pipeline pieces together.

- build_pipeline_stages: the fixed stage sequence for a sequencing layout
- run_alignment_pipeline: SAM -> final duplicate-marked BAM + alignment stats
- run_nbase_metrics: FASTQ -> N base distribution report
"""

import logging
import os
import threading
from pathlib import Path
from typing import List, Optional, Union

from .config import PipelineConfig
from .metrics.base import MetricResult
from .metrics.nbase import NBaseDistribution
from .metrics.reader import iter_read_pairs
from .metrics.report import write_report
from .metrics.runner import MetricsRunner
from .notify import EmailNotifier, notify_failure
from .pipeline_core.context import PipelineContext, PipelineMode
from .pipeline_core.error_handling import PipelineError
from .pipeline_core.runner import PipelineRunner
from .pipeline_core.stage import Stage
from .pipeline_core.stage_runner import StageRunner
from .pipeline_core.workspace import Workspace
from .stages.alignment_stages import (
    AlignmentStatsStage,
    FixCigarForUnmappedStage,
    FixMateInfoAndCigarStage,
    MarkDuplicatesStage,
    SortByCoordinateStage,
)
from .utils import describe_environment, get_hostname

logger = logging.getLogger(__name__)


def build_pipeline_stages(mode: PipelineMode) -> List[Stage]:
    """Build the list of stages for a sequencing layout.

    Parameters
    ----------
    mode : PipelineMode
        Fragment or paired-end

    Returns
    -------
    List[Stage]
        Stages in execution order; duplicate marking and statistics are
        always last
    """
    stages: List[Stage] = []

    if mode is PipelineMode.FRAGMENT:
        stages.append(SortByCoordinateStage())
        stages.append(FixCigarForUnmappedStage())
    else:
        # the mate fixer also resets CIGARs of unmapped reads
        stages.append(FixMateInfoAndCigarStage())

    stages.append(MarkDuplicatesStage())
    stages.append(AlignmentStatsStage())
    return stages


def run_alignment_pipeline(
    config: PipelineConfig,
    input_file: Union[str, Path],
    final_bam: Union[str, Path],
    barcode: str,
    mode: PipelineMode,
    output_dir: Optional[Union[str, Path]] = None,
    notifier: Optional[EmailNotifier] = None,
    cancel_event: Optional[threading.Event] = None,
    stage_runner: Optional[StageRunner] = None,
) -> PipelineContext:
    """Turn an aligned SAM file into the final BAM and its statistics.

    Parameters
    ----------
    config : PipelineConfig
        Validated configuration
    input_file : str or Path
        SAM file produced by the aligner
    final_bam : str or Path
        Path of the duplicate-marked BAM to produce
    barcode : str
        Flowcell/lane barcode, used in logs and failure notifications
    mode : PipelineMode
        Fragment or paired-end
    output_dir : str or Path, optional
        Where stats and capture files go (default: directory of final_bam)
    notifier : EmailNotifier, optional
        Receives one notification if the run fails
    cancel_event : threading.Event, optional
        Cancels the running stage when set
    stage_runner : StageRunner, optional
        Runner to use instead of one built from the configuration

    Returns
    -------
    PipelineContext
        Context of the finished run

    Raises
    ------
    PipelineError
        StageFailure or LaunchFailure, after the failure was escalated
    """
    output_dir = Path(output_dir) if output_dir else Path(final_bam).parent
    workspace = Workspace(output_dir, Path(input_file).stem)
    context = PipelineContext(
        config=config,
        workspace=workspace,
        mode=mode,
        input_file=Path(input_file),
        final_bam=Path(final_bam),
        barcode=barcode,
    )

    logger.info("Displaying execution environment")
    for key, value in describe_environment().items():
        logger.info(f"  {key:12s} {value}")
    logger.info(f"  {'picard':12s} {config.picard_path}")
    logger.info(f"  {'java_dir':12s} {config.java_dir}")

    if stage_runner is None:
        stage_runner = StageRunner(
            workspace.capture_dir, timeout=config.stage_timeout, cancel_event=cancel_event
        )
    runner = PipelineRunner(stage_runner)

    try:
        runner.run(build_pipeline_stages(mode), context)
    except PipelineError as e:
        notify_failure(
            notifier,
            e,
            barcode,
            os.getcwd(),
            get_hostname(),
            config.email_from,
            config.error_recipients,
        )
        raise

    logger.info(f"Final BAM written to {context.final_bam}")
    return context


def run_nbase_metrics(
    config: PipelineConfig,
    read1_file: Union[str, Path],
    read2_file: Optional[Union[str, Path]] = None,
    output_dir: Union[str, Path] = ".",
    plot: bool = True,
    cancel_event: Optional[threading.Event] = None,
) -> List[MetricResult]:
    """Compute the N base distribution of a lane and write its report.

    Returns
    -------
    List[MetricResult]
        Finalized results; empty when the input holds no reads
    """
    accumulators = [NBaseDistribution(threshold=config.nbase_threshold)]
    runner = MetricsRunner(accumulators)
    results = list(runner.run(iter_read_pairs(read1_file, read2_file), cancel_event))

    if not results:
        logger.warning(f"No reads found in {read1_file}, no metrics reported")
    write_report(results, output_dir, "nbase", plot=plot)
    return results
