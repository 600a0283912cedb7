import logging
from pathlib import Path

import pytest

from orcaflow.config import build_config
from orcaflow.slurm.runner import ProcessResult


class FakeRunner:
    """Stands in for sbatch/squeue. Records every command it is given."""

    def __init__(self, first_job_id=458213, sbatch=None, squeue=None):
        self.calls = []
        self.next_id = first_job_id
        self.sbatch = sbatch
        self.squeue = squeue

    def run(self, cmd, cwd=None):
        cmd = [str(c) for c in cmd]
        self.calls.append(cmd)
        if cmd[0] == "sbatch":
            if self.sbatch is not None:
                return self.sbatch(cmd)
            job_id = self.next_id
            self.next_id += 1
            return ProcessResult(0, f"Submitted batch job {job_id}\n")
        if cmd[0] == "squeue":
            if self.squeue is not None:
                return self.squeue(cmd)
            return ProcessResult(0, "             JOBID PARTITION                           NAME    STATE       TIME\n")
        return ProcessResult(127, "", f"{cmd[0]}: command not found")

    def commands(self, name):
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def make_config(tmp_path):
    def _make(**overrides):
        data = {
            "systems": ["MRD", "A07"],
            "environments": ["water"],
            "calculation": {"tddft_methods": ["TDA", "sTDDFT"], "functionals": ["B3LYP", "wB97X"]},
            "paths": {"base_dir": str(tmp_path / "project")},
        }
        data.update(overrides)
        return build_config(data)
    return _make


@pytest.fixture
def config(make_config):
    return make_config()


def _write_xyz(directory: Path, name: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    p = directory / name
    p.write_text("3\nwater\nO 0.0 0.0 0.0\nH 0.0 0.0 0.96\nH 0.93 0.0 -0.24\n")
    return p


@pytest.fixture
def write_xyz():
    return _write_xyz


@pytest.fixture(autouse=True)
def _fresh_logger_handlers():
    # handlers bind the stderr of the test that created them
    yield
    logger = logging.getLogger("orcaflow")
    for h in list(logger.handlers):
        logger.removeHandler(h)
