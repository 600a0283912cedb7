"""
Queue snapshots via squeue.

One call, one snapshot: there is no polling loop here. A job id missing
from the queue may have finished or may never have existed; look at the
output files to tell.
"""

from __future__ import annotations

import getpass
import logging
from typing import Dict, Iterable, List, Optional

from orcaflow.slurm.runner import ProcessRunner
from orcaflow.types import JobHandle

log = logging.getLogger(__name__)

QUERY_CMD = "squeue"
QUEUE_FORMAT = "%.18i %.9P %.30j %.8T %.10M"


def _current_user() -> Optional[str]:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return None


def _query_cmd(user: Optional[str], job_ids: Optional[Iterable[int]]) -> List[str]:
    ids = [str(j) for j in job_ids or ()]
    if ids:
        return [QUERY_CMD, "-j", ",".join(ids), "-o", QUEUE_FORMAT]
    user = user or _current_user()
    if user:
        return [QUERY_CMD, "-u", user, "-o", QUEUE_FORMAT]
    return [QUERY_CMD, "--me", "-o", QUEUE_FORMAT]


def queue_snapshot(
    runner: ProcessRunner,
    *,
    user: Optional[str] = None,
    job_ids: Optional[Iterable[int]] = None,
) -> Optional[str]:
    """Raw squeue table for ``job_ids`` (or the user's jobs); None on failure."""
    cmd = _query_cmd(user, job_ids)
    try:
        proc = runner.run(cmd)
    except OSError as exc:
        log.warning("Unable to check queue: %s", exc)
        return None
    if not proc.ok:
        log.warning("Unable to check queue: %s", (proc.stderr or proc.stdout).strip())
        return None
    return proc.stdout


def job_in_queue(job_id: int, runner: ProcessRunner) -> bool:
    """True if squeue still lists ``job_id``."""
    try:
        proc = runner.run([QUERY_CMD, "-j", str(job_id), "-h"])
    except OSError:
        return False
    return proc.ok and bool(proc.stdout.strip())


def report_jobs(
    ledger: Dict[str, List[JobHandle]],
    runner: ProcessRunner,
    *,
    work_dir=None,
    logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """Log the submitted job count and a queue snapshot for the user."""
    out = logger or log
    handles = [h for hs in ledger.values() for h in hs]
    submitted = [h for h in handles if h.submitted]
    failed = len(handles) - len(submitted)

    out.info("=" * 80)
    out.info("JOB MONITORING")
    out.info("=" * 80)
    out.info("Total jobs submitted: %d", len(submitted))
    if failed:
        out.info("Failed submissions: %d", failed)
    out.info("Checking SLURM queue...")

    snapshot = queue_snapshot(runner)
    if snapshot is not None:
        out.info("\n%s", snapshot.rstrip())

    out.info("To monitor jobs:")
    out.info("  squeue -u $USER")
    if work_dir is not None:
        out.info("  tail -f %s/SYSTEM/*/ENV/*.out", work_dir)
    return snapshot
