"""Command line submission of jobs to an LSF scheduler.

Submission returns as soon as the scheduler has accepted the job; completion
is never awaited here.
"""

import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Callable, List, Optional

from .pipeline_core.error_handling import PipelineError

logger = logging.getLogger(__name__)

_jobid_pat = re.compile(r"Job <(?P<jobid>\d+)> is")


@dataclass
class SchedulerJob:
    """A named command to run on the cluster."""

    name: str
    command: str
    memory_mb: int = 8000
    cores: int = 1
    priority: str = "normal"
    queue: Optional[str] = None
    job_id: Optional[str] = None

    def submit_command(self) -> List[str]:
        """Build the ``bsub`` argument vector for this job."""
        cl = ["bsub", "-J", self.name, "-n", str(self.cores), "-M", str(self.memory_mb)]
        cl += ["-R", f"rusage[mem={self.memory_mb}]"]
        if self.priority == "high":
            cl += ["-sp", "100"]
        if self.queue:
            cl += ["-q", self.queue]
        return cl + [self.command]

    def submit(self, check_output: Callable[..., bytes] = subprocess.check_output) -> str:
        """Submit the job and return the scheduler's job id.

        Raises
        ------
        PipelineError
            If the scheduler output carries no job id
        """
        cl = self.submit_command()
        logger.debug(f"Submitting job: {' '.join(cl)}")
        status = check_output(cl)
        if isinstance(status, bytes):
            status = status.decode("utf-8", errors="replace")
        match = _jobid_pat.search(status)
        if not match:
            raise PipelineError(
                f"Could not find a job id for '{self.name}' in scheduler output: {status.strip()}",
                "submit",
            )
        self.job_id = match.group("jobid")
        logger.info(f"Submitted job {self.name} as {self.job_id}")
        return self.job_id
