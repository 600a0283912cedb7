from .runner import ProcessResult, ProcessRunner, SubprocessRunner
from .dispatch import parse_job_id, submit
from .monitor import job_in_queue, queue_snapshot, report_jobs
