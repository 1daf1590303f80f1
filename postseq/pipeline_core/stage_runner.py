"""
StageRunner - Runs one external command and reports how it went.

The runner blocks until the child process finishes, measures wall-clock
duration and captures the exit status. Child stdout/stderr go to per-stage
capture files and never into the pipeline log. A non-zero exit status is
reported in the StageOutcome, not raised; only a command that cannot be
started at all raises (LaunchFailure).
"""

import logging
import subprocess
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .error_handling import LaunchFailure

logger = logging.getLogger(__name__)
logger_cl = logging.getLogger("postseq.commands")


@dataclass(frozen=True)
class StageOutcome:
    """Result of a single stage execution.

    Attributes
    ----------
    stage_name : str
        Human-readable stage name
    command : List[str]
        The argument vector that was executed
    exit_status : int, optional
        Exit status of the child; None if it was killed or never started
    duration : float
        Wall-clock seconds from launch to completion
    stdout_path : Path
        File holding the child's stdout
    stderr_path : Path
        File holding the child's stderr
    timed_out : bool
        True if the child was killed for exceeding the timeout
    cancelled : bool
        True if the run was cancelled through the cancellation token
    """

    stage_name: str
    command: List[str]
    exit_status: Optional[int]
    duration: float
    stdout_path: Path
    stderr_path: Path
    timed_out: bool = False
    cancelled: bool = False
    finished_at: float = field(default_factory=time.time, compare=False)

    @property
    def success(self) -> bool:
        """Return True if the command ran to completion with exit status 0."""
        return self.exit_status == 0 and not self.timed_out and not self.cancelled


class StageRunner:
    """Executes external stage commands as blocking child processes.

    Parameters
    ----------
    capture_dir : str or Path
        Directory for the ``<stage>.o`` / ``<stage>.e`` capture files
    timeout : float, optional
        Seconds after which a running stage is killed; None waits forever
    cancel_event : threading.Event, optional
        When set, a running stage is killed and no new stage is launched
    poll_interval : float
        Seconds between checks of the timeout and cancellation token
    """

    def __init__(
        self,
        capture_dir: Union[str, Path],
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        poll_interval: float = 0.5,
    ):
        self.capture_dir = Path(capture_dir)
        self.timeout = timeout
        self.cancel_event = cancel_event
        self.poll_interval = poll_interval

    def capture_paths(self, stage_name: str):
        """Return the stdout/stderr capture files used for ``stage_name``."""
        return (
            self.capture_dir / f"{stage_name}.o",
            self.capture_dir / f"{stage_name}.e",
        )

    def run(self, command: Sequence[str], stage_name: str) -> StageOutcome:
        """Run ``command`` to completion and describe the result.

        Parameters
        ----------
        command : Sequence[str]
            Fully formed argument vector
        stage_name : str
            Name used for logging, capture file names and error reporting

        Returns
        -------
        StageOutcome
            Outcome of the run; ``success`` is True only for exit status 0

        Raises
        ------
        LaunchFailure
            If the process could not be started (missing binary, permissions)
        """
        cmd = [str(c) for c in command]
        stdout_path, stderr_path = self.capture_paths(stage_name)
        self.capture_dir.mkdir(parents=True, exist_ok=True)

        if self.cancel_event is not None and self.cancel_event.is_set():
            logger.warning(f"Stage '{stage_name}' cancelled before launch")
            return StageOutcome(stage_name, cmd, None, 0.0, stdout_path, stderr_path, cancelled=True)

        logger.info(f"Running command {stage_name}")
        logger_cl.debug(" ".join(cmd))

        start_time = time.monotonic()
        timed_out = cancelled = False
        with open(stdout_path, "wb") as out_f, open(stderr_path, "wb") as err_f:
            try:
                proc = subprocess.Popen(cmd, stdout=out_f, stderr=err_f, close_fds=True)
            except OSError as e:
                logger.error(f"Could not launch stage '{stage_name}': {e}")
                raise LaunchFailure(stage_name, cmd, e) from e

            while True:
                try:
                    exit_status = proc.wait(timeout=self.poll_interval)
                    break
                except subprocess.TimeoutExpired:
                    if self.cancel_event is not None and self.cancel_event.is_set():
                        cancelled = True
                    elif self.timeout is not None and (
                        time.monotonic() - start_time >= self.timeout
                    ):
                        timed_out = True
                    else:
                        continue
                    proc.kill()
                    proc.wait()
                    exit_status = None
                    break

        elapsed = time.monotonic() - start_time
        outcome = StageOutcome(
            stage_name,
            cmd,
            exit_status,
            elapsed,
            stdout_path,
            stderr_path,
            timed_out=timed_out,
            cancelled=cancelled,
        )

        if timed_out:
            logger.error(f"Stage '{stage_name}' killed after exceeding {self.timeout}s timeout")
        elif cancelled:
            logger.warning(f"Stage '{stage_name}' killed on cancellation")
        logger.info(f"Execution time for {stage_name}: {elapsed / 3600:.4f} hours ({elapsed:.1f}s)")
        return outcome
