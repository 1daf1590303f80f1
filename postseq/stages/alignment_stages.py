"""
Alignment post-processing stages.

Each stage wraps one external Java tool with a fixed command contract. The
tools are black boxes: exit status 0 means success, anything else is a
failure. The sequence they run in is decided by the pipeline mode:

- Fragment:   sort_bam -> cigar_fixer -> mark_duplicates -> bam_analyzer
- Paired-end: mate_info_fixer -> mark_duplicates -> bam_analyzer
"""

import logging
import os
from pathlib import Path
from typing import FrozenSet, List, Optional

from ..config import PipelineConfig
from ..pipeline_core.context import PipelineContext, PipelineMode
from ..pipeline_core.stage import Stage

logger = logging.getLogger(__name__)


def _java_prefix(config: PipelineConfig, jar: str) -> List[str]:
    return [config.java_executable, config.max_heap_size, "-jar", jar]


def _tool_options(config: PipelineConfig) -> List[str]:
    """Options shared by the tools that spill records to disk."""
    return [
        f"TMP_DIR={config.temp_dir}",
        f"MAX_RECORDS_IN_RAM={config.max_records_in_ram}",
    ]


def _stringency(config: PipelineConfig) -> str:
    return f"VALIDATION_STRINGENCY={config.validation_stringency}"


def _picard_jar(config: PipelineConfig, name: str) -> str:
    return os.path.join(config.picard_path, name)


def _custom_jar(config: PipelineConfig, name: str) -> str:
    return os.path.join(config.java_dir, name)


class SortByCoordinateStage(Stage):
    """Coordinate-sort the aligner's SAM into the intermediate BAM (fragment lanes)."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "sort_bam"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Sort alignments by coordinate"

    @property
    def modes(self) -> FrozenSet[PipelineMode]:
        """Return the modes this stage runs in."""
        return frozenset({PipelineMode.FRAGMENT})

    def build_command(self, context: PipelineContext) -> List[str]:
        """Build the SortSam command."""
        config = context.config
        return (
            _java_prefix(config, _picard_jar(config, "SortSam.jar"))
            + [f"I={context.current_file}", f"O={context.sorted_bam}", "SO=coordinate"]
            + _tool_options(config)
            + [_stringency(config)]
        )

    def output_file(self, context: PipelineContext) -> Optional[Path]:
        """Return the sorted BAM."""
        return context.sorted_bam


class FixCigarForUnmappedStage(Stage):
    """Reset CIGAR to '*' and mapping quality to 0 for unmapped reads.

    The tool overwrites its input in place, so nothing else may read the
    sorted BAM while this stage runs.
    """

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "cigar_fixer"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Fix CIGAR and mapping quality of unmapped reads (in place)"

    @property
    def modes(self) -> FrozenSet[PipelineMode]:
        """Return the modes this stage runs in."""
        return frozenset({PipelineMode.FRAGMENT})

    def build_command(self, context: PipelineContext) -> List[str]:
        """Build the CIGARFixer command."""
        config = context.config
        return _java_prefix(config, _custom_jar(config, "CIGARFixer.jar")) + [
            f"I={context.current_file}"
        ]


class FixMateInfoAndCigarStage(Stage):
    """Fix mate strand flags and unmapped-read CIGARs in one pass (paired-end lanes).

    FUR=true makes the mate fixer also apply the unmapped-read CIGAR fix, so
    paired-end lanes skip the separate sort and CIGAR stages. The output is
    coordinate sorted.
    """

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "mate_info_fixer"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Fix mate information and CIGAR of unmapped reads"

    @property
    def modes(self) -> FrozenSet[PipelineMode]:
        """Return the modes this stage runs in."""
        return frozenset({PipelineMode.PAIRED_END})

    def build_command(self, context: PipelineContext) -> List[str]:
        """Build the MateInfoFixer command."""
        config = context.config
        return (
            _java_prefix(config, _custom_jar(config, "MateInfoFixer.jar"))
            + [f"I={context.current_file}", f"O={context.sorted_bam}", "FUR=true"]
            + _tool_options(config)
            + [_stringency(config)]
        )

    def output_file(self, context: PipelineContext) -> Optional[Path]:
        """Return the sorted, mate-fixed BAM."""
        return context.sorted_bam


class MarkDuplicatesStage(Stage):
    """Mark duplicate reads, writing the final BAM."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "mark_duplicates"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Mark duplicate reads"

    def build_command(self, context: PipelineContext) -> List[str]:
        """Build the MarkDuplicates command."""
        config = context.config
        metrics_file = context.workspace.get_output_path(config.duplicate_metrics_file)
        return (
            _java_prefix(config, _picard_jar(config, "MarkDuplicates.jar"))
            + [f"I={context.current_file}", f"O={context.final_bam}"]
            + _tool_options(config)
            + ["AS=true", f"M={metrics_file}", _stringency(config)]
        )

    def output_file(self, context: PipelineContext) -> Optional[Path]:
        """Return the final BAM."""
        return context.final_bam


class AlignmentStatsStage(Stage):
    """Compute mapping statistics on the final BAM."""

    @property
    def name(self) -> str:
        """Return the stage name."""
        return "bam_analyzer"

    @property
    def description(self) -> str:
        """Return a description of what this stage does."""
        return "Calculate alignment statistics"

    def build_command(self, context: PipelineContext) -> List[str]:
        """Build the BAMAnalyzer command."""
        config = context.config
        stats_file = context.workspace.get_output_path(config.stats_file)
        stats_xml = context.workspace.get_output_path(config.stats_xml)
        return _java_prefix(config, _custom_jar(config, "BAMAnalyzer.jar")) + [
            f"I={context.current_file}",
            f"O={stats_file}",
            f"X={stats_xml}",
        ]

    def _post_execute(self, context: PipelineContext) -> None:
        context.stats_file = context.workspace.get_output_path(context.config.stats_file)
        logger.info(f"Alignment statistics written to {context.stats_file}")
