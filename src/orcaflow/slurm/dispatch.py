"""
SLURM dispatcher: sbatch one generated script, record the job id.

No retries. A failed submission comes back as a JobHandle without a
job id; the whole workflow can simply be re-run.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from orcaflow.errors import SubmissionFailure
from orcaflow.slurm.runner import ProcessRunner
from orcaflow.types import JobHandle, RenderedJob

log = logging.getLogger(__name__)

SUBMIT_CMD = "sbatch"

_TRAILING_ID_RE = re.compile(r"(\d+)\s*$")


def parse_job_id(stdout: str) -> Optional[int]:
    """'Submitted batch job 458213' -> 458213; None if no trailing integer."""
    m = _TRAILING_ID_RE.search(stdout or "")
    return int(m.group(1)) if m else None


def _sbatch(job: RenderedJob, runner: ProcessRunner) -> int:
    cmd = [SUBMIT_CMD, str(job.script_path)]
    try:
        proc = runner.run(cmd, cwd=job.script_path.parent)
    except OSError as exc:
        raise SubmissionFailure(f"could not run {SUBMIT_CMD}: {exc}") from exc

    if not proc.ok:
        detail = (proc.stderr or proc.stdout).strip()
        raise SubmissionFailure(f"{SUBMIT_CMD} exited with {proc.returncode}: {detail}")

    job_id = parse_job_id(proc.stdout)
    if job_id is None:
        raise SubmissionFailure(f"no job id in {SUBMIT_CMD} output: {proc.stdout.strip()!r}")
    return job_id


def submit(job: RenderedJob, runner: ProcessRunner) -> JobHandle:
    try:
        job_id = _sbatch(job, runner)
    except SubmissionFailure as exc:
        log.error("ERROR submitting %s: %s", job.script_path.name, exc)
        return JobHandle(job=job, job_id=None, reason=str(exc))
    return JobHandle(job=job, job_id=job_id)
