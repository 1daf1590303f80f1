"""
Error types and input validators for the post-sequencing pipeline.

This module provides:
- The exception taxonomy raised by the pipeline core and the metrics runner
- Validators used by the command line before any stage or accumulator runs

Exit status handling and notification are left to the top-level caller;
nothing in here sends email or terminates the process.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Union

if TYPE_CHECKING:
    from .stage_runner import StageOutcome


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, stage: Optional[str] = None, details: Optional[Dict] = None):
        """Initialize pipeline error.

        Parameters
        ----------
        message : str
            Error message
        stage : str, optional
            Stage where error occurred
        details : dict, optional
            Additional error details
        """
        super().__init__(message)
        self.stage = stage
        self.details = details or {}


class ConfigurationError(PipelineError):
    """Raised when required configuration is absent or invalid at startup."""

    def __init__(self, message: str, missing_keys: Optional[List[str]] = None):
        """Initialize configuration error."""
        super().__init__(message, None, {"missing_keys": list(missing_keys or [])})
        self.missing_keys = list(missing_keys or [])


class LaunchFailure(PipelineError):
    """Raised when an external command cannot be started at all."""

    def __init__(self, stage_name: str, command: Sequence[str], original_error: OSError):
        """Initialize launch failure."""
        message = f"Could not launch stage '{stage_name}': {original_error}"
        super().__init__(
            message,
            stage_name,
            {
                "command": " ".join(str(c) for c in command),
                "original_error": str(original_error),
                "error_type": type(original_error).__name__,
            },
        )
        self.command = list(command)
        self.original_error = original_error


class StageFailure(PipelineError):
    """Raised when a stage's external command did not finish successfully."""

    def __init__(self, outcome: "StageOutcome"):
        """Initialize stage failure from the failing outcome."""
        super().__init__(
            f"Stage '{outcome.stage_name}' failed with exit status {outcome.exit_status}",
            outcome.stage_name,
            {
                "exit_status": outcome.exit_status,
                "duration": outcome.duration,
                "stdout": str(outcome.stdout_path),
                "stderr": str(outcome.stderr_path),
            },
        )
        self.outcome = outcome


class StageTimeout(StageFailure):
    """Raised when a stage exceeded its configured timeout."""

    def __init__(self, outcome: "StageOutcome"):
        """Initialize stage timeout from the killed outcome."""
        super().__init__(outcome)
        self.args = (f"Stage '{outcome.stage_name}' timed out after {outcome.duration:.1f}s",)


class StageCancelled(StageFailure):
    """Raised when a stage was cancelled before or while running."""

    def __init__(self, outcome: "StageOutcome"):
        """Initialize stage cancellation from the killed outcome."""
        super().__init__(outcome)
        self.args = (f"Stage '{outcome.stage_name}' was cancelled",)


class MalformedInputError(PipelineError):
    """Raised when the read stream is missing a mandatory read 1 record."""

    def __init__(self, message: str, pair_index: Optional[int] = None):
        """Initialize malformed input error."""
        super().__init__(message, "metrics", {"pair_index": pair_index})
        self.pair_index = pair_index


class RunCancelled(PipelineError):
    """Raised when a metrics run is cancelled through its cancellation token."""


def validate_file_exists(file_path: Union[str, Path], stage_name: str) -> Path:
    """Validate that a file exists and is readable.

    Parameters
    ----------
    file_path : str or Path
        Path to validate
    stage_name : str
        Stage name for error reporting

    Returns
    -------
    Path
        Validated path object

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    PipelineError
        If the path is not a regular file
    PermissionError
        If file isn't readable
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")

    if not path.is_file():
        raise PipelineError(f"Expected a regular file: {path}", stage_name, {"file": str(path)})

    try:
        with open(path, "rb"):
            pass
    except PermissionError:
        raise PermissionError(f"Cannot read file: {path}")

    return path


def validate_output_directory(
    output_dir: Union[str, Path], stage_name: str, create: bool = True
) -> Path:
    """Validate output directory.

    Parameters
    ----------
    output_dir : str or Path
        Output directory path
    stage_name : str
        Stage name for error reporting
    create : bool
        Whether to create directory if it doesn't exist

    Returns
    -------
    Path
        Validated directory path

    Raises
    ------
    PermissionError
        If directory cannot be created or written to
    """
    path = Path(output_dir)

    if path.exists():
        if not path.is_dir():
            raise PipelineError(f"Expected a directory: {path}", stage_name, {"file": str(path)})
    elif create:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            raise PermissionError(f"Cannot create directory: {path}")
    else:
        raise FileNotFoundError(f"Output directory does not exist: {path}")

    test_file = path / ".write_test"
    try:
        test_file.touch()
        test_file.unlink()
    except PermissionError:
        raise PermissionError(f"Cannot write to directory: {path}")

    return path
