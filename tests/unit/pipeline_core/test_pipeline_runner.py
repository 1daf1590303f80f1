"""Tests for PipelineRunner fail-fast execution."""

from typing import List

import pytest

from postseq.pipeline import build_pipeline_stages
from postseq.pipeline_core.context import PipelineContext, PipelineMode
from postseq.pipeline_core.error_handling import (
    LaunchFailure,
    StageCancelled,
    StageFailure,
    StageTimeout,
)
from postseq.pipeline_core.runner import PipelineRunner
from postseq.pipeline_core.stage import Stage
from postseq.pipeline_core.stage_runner import StageOutcome
from postseq.pipeline_core.workspace import Workspace

FRAGMENT_STAGES = ["sort_bam", "cigar_fixer", "mark_duplicates", "bam_analyzer"]
PAIRED_STAGES = ["mate_info_fixer", "mark_duplicates", "bam_analyzer"]


class EchoStage(Stage):
    """Minimal stage with a configurable name."""

    def __init__(self, name: str):
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def build_command(self, context) -> List[str]:
        return ["echo", self._name]


@pytest.fixture
def make_context(tmp_path, pipeline_config):
    def _make(mode: PipelineMode) -> PipelineContext:
        return PipelineContext(
            config=pipeline_config,
            workspace=Workspace(tmp_path / "out", "lane1"),
            mode=mode,
            input_file=tmp_path / "lane1.sam",
            final_bam=tmp_path / "out" / "lane1_final.bam",
            barcode="FC1_L1",
        )

    return _make


class TestStageSequence:
    """Test which stages run for each mode."""

    def test_fragment_sequence(self, make_context, fake_stage_runner):
        """Fragment lanes sort, fix CIGARs, mark duplicates and compute stats."""
        stage_runner = fake_stage_runner()
        context = PipelineRunner(stage_runner).run(
            build_pipeline_stages(PipelineMode.FRAGMENT), make_context(PipelineMode.FRAGMENT)
        )

        assert stage_runner.stage_names == FRAGMENT_STAGES
        assert context.executed_stages == FRAGMENT_STAGES
        assert context.completed_stages == set(FRAGMENT_STAGES)
        assert context.current_file == context.final_bam
        assert context.stats_file == context.workspace.get_output_path("BWA_Map_Stats.txt")

    def test_paired_end_sequence(self, make_context, fake_stage_runner):
        """Paired-end lanes skip sort and CIGAR stages."""
        stage_runner = fake_stage_runner()
        PipelineRunner(stage_runner).run(
            build_pipeline_stages(PipelineMode.PAIRED_END), make_context(PipelineMode.PAIRED_END)
        )

        assert stage_runner.stage_names == PAIRED_STAGES

    def test_plan_filters_by_mode(self, make_context, fake_stage_runner):
        """Mode-specific stages are dropped from the plan of the other mode."""
        runner = PipelineRunner(fake_stage_runner())
        all_stages = build_pipeline_stages(PipelineMode.PAIRED_END)[:1] + build_pipeline_stages(
            PipelineMode.FRAGMENT
        )
        plan = runner.plan(all_stages, make_context(PipelineMode.PAIRED_END))

        assert [s.name for s in plan] == PAIRED_STAGES

    def test_duplicate_stage_names_rejected(self, make_context, fake_stage_runner):
        runner = PipelineRunner(fake_stage_runner())
        with pytest.raises(ValueError, match="Duplicate stage names"):
            runner.run(
                [EchoStage("a"), EchoStage("a")], make_context(PipelineMode.FRAGMENT)
            )

    def test_dry_run_builds_commands_without_running(self, make_context, fake_stage_runner):
        stage_runner = fake_stage_runner()
        commands = PipelineRunner(stage_runner).dry_run(
            build_pipeline_stages(PipelineMode.PAIRED_END), make_context(PipelineMode.PAIRED_END)
        )

        assert len(commands) == 3
        assert stage_runner.calls == []


class TestFailFast:
    """Test that the first failing stage ends the run."""

    @pytest.mark.parametrize("failing_index", range(len(FRAGMENT_STAGES)))
    def test_failure_stops_later_stages(self, failing_index, make_context, fake_stage_runner):
        """Only the stages up to and including the failing one are launched."""
        failing = FRAGMENT_STAGES[failing_index]
        stage_runner = fake_stage_runner({failing: 1})
        context = make_context(PipelineMode.FRAGMENT)

        with pytest.raises(StageFailure) as exc_info:
            PipelineRunner(stage_runner).run(
                build_pipeline_stages(PipelineMode.FRAGMENT), context
            )

        assert exc_info.value.stage == failing
        assert exc_info.value.details["exit_status"] == 1
        assert stage_runner.stage_names == FRAGMENT_STAGES[: failing_index + 1]
        assert context.completed_stages == set(FRAGMENT_STAGES[:failing_index])

    def test_mark_duplicates_failure_in_paired_mode(self, make_context, fake_stage_runner):
        """bam_analyzer never runs after duplicate marking fails."""
        stage_runner = fake_stage_runner({"mark_duplicates": 2})
        with pytest.raises(StageFailure):
            PipelineRunner(stage_runner).run(
                build_pipeline_stages(PipelineMode.PAIRED_END),
                make_context(PipelineMode.PAIRED_END),
            )

        assert stage_runner.stage_names == ["mate_info_fixer", "mark_duplicates"]

    def test_timeout_outcome_raises_stage_timeout(self, make_context, tmp_path):
        class TimingOutRunner:
            def run(self, command, stage_name):
                return StageOutcome(
                    stage_name, command, None, 5.0, tmp_path / "o", tmp_path / "e", timed_out=True
                )

        with pytest.raises(StageTimeout):
            PipelineRunner(TimingOutRunner()).run(
                [EchoStage("slow")], make_context(PipelineMode.FRAGMENT)
            )

    def test_cancelled_outcome_raises_stage_cancelled(self, make_context, tmp_path):
        class CancellingRunner:
            def run(self, command, stage_name):
                return StageOutcome(
                    stage_name, command, None, 0.0, tmp_path / "o", tmp_path / "e", cancelled=True
                )

        with pytest.raises(StageCancelled):
            PipelineRunner(CancellingRunner()).run(
                [EchoStage("first"), EchoStage("second")], make_context(PipelineMode.FRAGMENT)
            )

    def test_launch_failure_propagates(self, make_context):
        class BrokenRunner:
            def run(self, command, stage_name):
                raise LaunchFailure(stage_name, command, FileNotFoundError("java"))

        with pytest.raises(LaunchFailure) as exc_info:
            PipelineRunner(BrokenRunner()).run(
                build_pipeline_stages(PipelineMode.FRAGMENT), make_context(PipelineMode.FRAGMENT)
            )
        assert exc_info.value.stage == "sort_bam"

    def test_execution_times_recorded(self, make_context, fake_stage_runner):
        runner = PipelineRunner(fake_stage_runner())
        runner.run(
            build_pipeline_stages(PipelineMode.PAIRED_END), make_context(PipelineMode.PAIRED_END)
        )

        assert list(runner.get_execution_times()) == PAIRED_STAGES
