"""Tests for the command contracts of the alignment stages."""

import pytest

from postseq.pipeline_core.context import PipelineContext, PipelineMode
from postseq.pipeline_core.workspace import Workspace
from postseq.stages import (
    AlignmentStatsStage,
    FixCigarForUnmappedStage,
    FixMateInfoAndCigarStage,
    MarkDuplicatesStage,
    SortByCoordinateStage,
)


@pytest.fixture
def context(tmp_path, pipeline_config):
    return PipelineContext(
        config=pipeline_config,
        workspace=Workspace(tmp_path / "out", "lane1"),
        mode=PipelineMode.FRAGMENT,
        input_file=tmp_path / "lane1.sam",
        final_bam=tmp_path / "lane1_final.bam",
        barcode="FC1_L1",
    )


class TestStageCommands:
    """Test the argument vector each stage builds."""

    def test_sort_command(self, context, tmp_path, config_dict):
        command = SortByCoordinateStage().build_command(context)
        assert command == [
            "java",
            "-Xmx4G",
            "-jar",
            "/opt/picard/SortSam.jar",
            f"I={tmp_path / 'lane1.sam'}",
            f"O={tmp_path / 'lane1_sorted.bam'}",
            "SO=coordinate",
            f"TMP_DIR={config_dict['temp_dir']}",
            "MAX_RECORDS_IN_RAM=500000",
            "VALIDATION_STRINGENCY=LENIENT",
        ]

    def test_cigar_fixer_reads_current_file(self, context, tmp_path):
        context.current_file = tmp_path / "lane1_sorted.bam"
        command = FixCigarForUnmappedStage().build_command(context)
        assert command == [
            "java",
            "-Xmx4G",
            "-jar",
            "/opt/postseq/java/CIGARFixer.jar",
            f"I={tmp_path / 'lane1_sorted.bam'}",
        ]

    def test_mate_info_fixer_command(self, context, tmp_path, config_dict):
        command = FixMateInfoAndCigarStage().build_command(context)
        assert command[:4] == ["java", "-Xmx4G", "-jar", "/opt/postseq/java/MateInfoFixer.jar"]
        assert command[4:] == [
            f"I={tmp_path / 'lane1.sam'}",
            f"O={tmp_path / 'lane1_sorted.bam'}",
            "FUR=true",
            f"TMP_DIR={config_dict['temp_dir']}",
            "MAX_RECORDS_IN_RAM=500000",
            "VALIDATION_STRINGENCY=LENIENT",
        ]

    def test_mark_duplicates_command(self, context, tmp_path, config_dict):
        context.current_file = tmp_path / "lane1_sorted.bam"
        command = MarkDuplicatesStage().build_command(context)
        assert command[3] == "/opt/picard/MarkDuplicates.jar"
        assert command[4:] == [
            f"I={tmp_path / 'lane1_sorted.bam'}",
            f"O={tmp_path / 'lane1_final.bam'}",
            f"TMP_DIR={config_dict['temp_dir']}",
            "MAX_RECORDS_IN_RAM=500000",
            "AS=true",
            f"M={tmp_path / 'out' / 'markdup_metrics.txt'}",
            "VALIDATION_STRINGENCY=LENIENT",
        ]

    def test_bam_analyzer_command(self, context, tmp_path):
        context.current_file = context.final_bam
        command = AlignmentStatsStage().build_command(context)
        assert command == [
            "java",
            "-Xmx4G",
            "-jar",
            "/opt/postseq/java/BAMAnalyzer.jar",
            f"I={tmp_path / 'lane1_final.bam'}",
            f"O={tmp_path / 'out' / 'BWA_Map_Stats.txt'}",
            f"X={tmp_path / 'out' / 'BAMAnalysisInfo.xml'}",
        ]


class TestStageModes:
    """Test mode membership of each stage."""

    @pytest.mark.parametrize(
        "stage, fragment, paired",
        [
            (SortByCoordinateStage(), True, False),
            (FixCigarForUnmappedStage(), True, False),
            (FixMateInfoAndCigarStage(), False, True),
            (MarkDuplicatesStage(), True, True),
            (AlignmentStatsStage(), True, True),
        ],
    )
    def test_applies_to(self, stage, fragment, paired):
        assert stage.applies_to(PipelineMode.FRAGMENT) is fragment
        assert stage.applies_to(PipelineMode.PAIRED_END) is paired


class TestStageExecution:
    """Test how a stage updates the context after running."""

    def test_successful_sort_moves_current_file(self, context, fake_stage_runner):
        outcome = SortByCoordinateStage()(context, fake_stage_runner())
        assert outcome.success
        assert context.current_file == context.sorted_bam

    def test_in_place_fixer_keeps_current_file(self, context, fake_stage_runner):
        context.current_file = context.sorted_bam
        FixCigarForUnmappedStage()(context, fake_stage_runner())
        assert context.current_file == context.sorted_bam

    def test_failed_stage_leaves_context_unchanged(self, context, fake_stage_runner):
        outcome = SortByCoordinateStage()(context, fake_stage_runner({"sort_bam": 1}))
        assert not outcome.success
        assert context.current_file == context.input_file
        assert "sort_bam" not in context.completed_stages
