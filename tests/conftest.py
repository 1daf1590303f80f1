"""Shared pytest fixtures for all test modules."""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from postseq.config import PipelineConfig
from postseq.pipeline_core.stage_runner import StageOutcome


@pytest.fixture
def config_dict(tmp_path) -> Dict[str, Any]:
    """Complete, valid configuration mapping."""
    return {
        "java_executable": "java",
        "picard_path": "/opt/picard",
        "java_dir": "/opt/postseq/java",
        "temp_dir": str(tmp_path / "scratch"),
        "max_records_in_ram": 500000,
        "max_heap_size": "-Xmx4G",
        "validation_stringency": "LENIENT",
        "nbase_threshold": 0.15,
        "email_from": "pipeline@example.org",
        "error_recipients": ["ops@example.org"],
    }


@pytest.fixture
def pipeline_config(config_dict) -> PipelineConfig:
    """Validated configuration built from config_dict."""
    return PipelineConfig.from_dict(config_dict)


class FakeStageRunner:
    """Stage runner that records commands instead of launching them.

    ``exit_statuses`` maps a stage name to the exit status it reports;
    stages not listed succeed.
    """

    def __init__(self, capture_dir: Path, exit_statuses: Optional[Dict[str, int]] = None):
        self.capture_dir = Path(capture_dir)
        self.exit_statuses = exit_statuses or {}
        self.calls: List[tuple] = []

    def run(self, command, stage_name):
        self.calls.append((stage_name, [str(c) for c in command]))
        return StageOutcome(
            stage_name,
            [str(c) for c in command],
            self.exit_statuses.get(stage_name, 0),
            0.01,
            self.capture_dir / f"{stage_name}.o",
            self.capture_dir / f"{stage_name}.e",
        )

    @property
    def stage_names(self) -> List[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def fake_stage_runner(tmp_path):
    """Factory for FakeStageRunner instances writing into tmp_path."""

    def _make(exit_statuses: Optional[Dict[str, int]] = None) -> FakeStageRunner:
        return FakeStageRunner(tmp_path / "logs", exit_statuses)

    return _make


@pytest.fixture
def python_command():
    """Build an argument vector that runs a snippet in a fresh interpreter."""

    def _make(code: str) -> List[str]:
        return [sys.executable, "-c", code]

    return _make


def write_fastq(path: Path, sequences: List[str]) -> Path:
    """Write ``sequences`` as a FASTQ file with constant qualities."""
    with open(path, "w") as f:
        for i, seq in enumerate(sequences):
            f.write(f"@read{i}\n{seq}\n+\n{'I' * len(seq)}\n")
    return path


@pytest.fixture
def fastq_writer(tmp_path):
    """Write a FASTQ file into tmp_path and return its path."""

    def _write(name: str, sequences: List[str]) -> Path:
        return write_fastq(tmp_path / name, sequences)

    return _write
