"""
Workspace - Centralized file path management for pipeline runs.

This module provides the Workspace class that manages the file paths a
pipeline run writes: the intermediate sorted BAM, the metrics and stats
files, and the per-stage stdout/stderr capture files.

Paths are only unique per run if the caller gives each run its own output
directory and input file; the workspace does not add any run identifier.
Intermediate files are never deleted here.
"""

import logging
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


class Workspace:
    """Manages all file paths for a pipeline run.

    Attributes
    ----------
    output_dir : Path
        Directory the stats files and capture directory are written to
    base_name : str
        Base name for generated files
    capture_dir : Path
        Directory holding the ``<stage>.o`` / ``<stage>.e`` capture files
    """

    def __init__(self, output_dir: Union[str, Path], base_name: str):
        """Initialize workspace with output directory and base name.

        Parameters
        ----------
        output_dir : str or Path
            Main output directory path
        base_name : str
            Base name for generated files
        """
        self.output_dir = Path(output_dir)
        self.base_name = base_name

        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.capture_dir = self.output_dir / "logs"
        self.capture_dir.mkdir(exist_ok=True)

        logger.debug(f"Workspace initialized: output_dir={self.output_dir}")

    @staticmethod
    def sorted_bam_path(input_file: Union[str, Path]) -> Path:
        """Return the coordinate-sorted intermediate BAM for an input SAM.

        ``lane.sam`` becomes ``lane_sorted.bam`` beside the input; any other
        name gets ``_sorted.bam`` appended to its stem.
        """
        path = Path(input_file)
        stem = path.name[: -len(".sam")] if path.name.endswith(".sam") else path.stem
        return path.with_name(f"{stem}_sorted.bam")

    def get_output_path(self, name: str) -> Path:
        """Return ``name`` inside the output directory."""
        return self.output_dir / name

    def __repr__(self) -> str:
        """Return string representation of the workspace."""
        return f"Workspace(output_dir='{self.output_dir}', " f"base_name='{self.base_name}')"
