"""
orcaflow | workflow.py

Workflow stages and their entry points.

    setup-only   check geometries, create directories (no submission)
    opt-only     render + submit geometry optimizations
    tddft-only   render + submit excited-state jobs (optimized geometry if present)
    full         opt-only, then stop: excited-state jobs are submitted by hand
                 with tddft-only once the optimizations have finished
    analyze      write the optimization summary and the excited-state CSV
    help         usage text

Every stage is synchronous and walks systems -> environments -> methods
-> functionals in that order. Per-item failures (missing geometry, failed
sbatch, unwritable job directory) are logged and the run moves on; only a
failure to create the root directories stops it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from orcaflow.config import WorkflowConfig
from orcaflow.errors import MissingInput
from orcaflow.report import ReportResult, write_reports
from orcaflow.slurm.dispatch import submit
from orcaflow.slurm.monitor import report_jobs
from orcaflow.slurm.runner import ProcessRunner, SubprocessRunner
from orcaflow.types import CalculationConfig, JobHandle, excited_state_calcs, optimization_calcs
from orcaflow.workspace import (
    ensure_roots,
    find_geometry,
    find_optimized_geometry,
    materialize,
    setup_directories,
)

Ledger = Dict[str, List[JobHandle]]

LOGGER_NAME = "orcaflow"
RULE = "=" * 80


def get_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[orcaflow] %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    return logger


class Mode(str, Enum):
    SETUP = "setup-only"
    OPTIMIZE = "opt-only"
    EXCITED_STATE = "tddft-only"
    FULL = "full"
    ANALYZE = "analyze"
    HELP = "help"

    @classmethod
    def parse(cls, text: str) -> "Mode":
        value = (text or "").strip()
        if value in ("--help", "-h"):
            return cls.HELP
        for mode in cls:
            if mode.value == value:
                return mode
        raise ValueError(f"Unknown mode: {text}")


HELP_TEXT = """\
ORCA Computational Chemistry Workflow

Usage: orcaflow [MODE] [--config FILE] [--base-dir DIR]

Modes:
  setup-only   - Check files and create directory structure (no job submission)
  opt-only     - Submit geometry optimization jobs only (default)
  tddft-only   - Submit TD-DFT jobs (uses optimized geometries when present)
  full         - Submit optimizations; TD-DFT must follow with tddft-only
  analyze      - Analyze completed results
  help         - Show this help message

Directory structure (under base_dir unless configured):
  xyz_files/          - input geometries, {SYSTEM}.xyz
  calculations/       - {SYSTEM}/optimization|tddft/{ENV}/ inputs and outputs
  job_scripts/        - {SYSTEM}/ SLURM submission scripts
  analysis_results/   - optimization_summary.txt, tddft_summary.csv
"""


@dataclass
class Workflow:
    """
    One workflow run. Owns the in-memory job ledger of the run; nothing
    about submitted jobs is persisted beyond it.
    """

    config: WorkflowConfig
    runner: ProcessRunner = field(default_factory=SubprocessRunner)
    logger: logging.Logger = field(default_factory=get_logger)
    ledger: Ledger = field(default_factory=dict, init=False)

    # -----------------------------------------------------------------------
    # Dispatch
    # -----------------------------------------------------------------------
    def stage(self, mode: Mode) -> Callable[[], object]:
        return {
            Mode.SETUP: self.setup,
            Mode.OPTIMIZE: self.optimize,
            Mode.EXCITED_STATE: self.excited_state,
            Mode.FULL: self.full,
            Mode.ANALYZE: self.analyze,
            Mode.HELP: self.help,
        }[mode]

    def run(self, mode: Mode):
        if mode is Mode.HELP:
            return self.help()
        self._banner(mode)
        ensure_roots(self.config)
        return self.stage(mode)()

    def _banner(self, mode: Mode) -> None:
        log = self.logger
        log.info(RULE)
        log.info("ORCA COMPUTATIONAL CHEMISTRY WORKFLOW")
        log.info(RULE)
        log.info("Mode: %s", mode.value)
        log.info("Systems: %s", ", ".join(self.config.systems))
        log.info("Environments: %s", ", ".join(self.config.environments))
        log.info(RULE)

    # -----------------------------------------------------------------------
    # Stages
    # -----------------------------------------------------------------------
    def help(self) -> str:
        return HELP_TEXT

    def setup(self) -> Dict[str, Optional[Path]]:
        """Check geometries and create directories; returns system -> geometry (None if missing)."""
        self.logger.info("SETUP MODE - Creating directories and checking files...")
        found: Dict[str, Optional[Path]] = {}
        for system in self.config.systems:
            try:
                xyz = find_geometry(self.config, system)
            except MissingInput as exc:
                self.logger.error("%s: %s", system, exc)
                found[system] = None
                continue
            if not self._prepare(system):
                found[system] = None
                continue
            self.logger.info("%s: Ready (found %s)", system, xyz.name)
            found[system] = xyz
        return found

    def _prepare(self, system: str) -> bool:
        try:
            setup_directories(self.config, system)
        except OSError as exc:
            self.logger.error("%s: could not create directories: %s", system, exc)
            return False
        return True

    def _submit_all(self, system: str, calcs, geometry: Path) -> List[JobHandle]:
        handles: List[JobHandle] = []
        for calc in calcs:
            handle = self._submit_one(calc, geometry)
            if handle is not None:
                handles.append(handle)
        return handles

    def _submit_one(self, calc: CalculationConfig, geometry: Path) -> Optional[JobHandle]:
        try:
            job = materialize(calc, self.config, geometry)
        except OSError as exc:
            self.logger.error("%s: could not write job files: %s", calc.job_name, exc)
            return None
        handle = submit(job, self.runner)
        if handle.submitted:
            self.logger.info("   %s submitted as job %d", calc.job_name, handle.job_id)
        else:
            self.logger.info("   %s: failed to submit job", calc.job_name)
        return handle

    def optimize(self) -> Ledger:
        log = self.logger
        log.info(RULE)
        log.info("GEOMETRY OPTIMIZATION WORKFLOW")
        log.info(RULE)

        for system in self.config.systems:
            log.info("Processing system: %s", system)
            try:
                xyz = find_geometry(self.config, system)
            except MissingInput as exc:
                log.error("ERROR processing %s: %s", system, exc)
                continue
            log.info("   Found XYZ file: %s", xyz.name)
            if not self._prepare(system):
                continue
            handles = self._submit_all(system, optimization_calcs(self.config, system), xyz)
            self.ledger.setdefault(system, []).extend(handles)

        report_jobs(self.ledger, self.runner, work_dir=self.config.paths.work_dir, logger=self.logger)
        return self.ledger

    def excited_state(self) -> Ledger:
        log = self.logger
        log.info(RULE)
        log.info("TD-DFT SPECTROSCOPY WORKFLOW")
        log.info(RULE)

        for system in self.config.systems:
            try:
                xyz, optimized = find_optimized_geometry(self.config, system)
            except MissingInput:
                log.error("%s: No geometry available", system)
                continue
            if optimized:
                log.info("Found: %s -> %s", system, xyz.name)
            else:
                log.warning("%s: Using original geometry (optimization not found)", system)

            if not self._prepare(system):
                continue
            handles = self._submit_all(system, excited_state_calcs(self.config, system), xyz)
            n_ok = sum(1 for h in handles if h.submitted)
            log.info("   %s: %d TD-DFT calculations (%d jobs submitted)", system, len(handles), n_ok)
            self.ledger.setdefault(system, []).extend(handles)

        if not self.ledger:
            log.error("No geometries available for TD-DFT calculations")
            return self.ledger

        report_jobs(self.ledger, self.runner, work_dir=self.config.paths.work_dir, logger=self.logger)
        return self.ledger

    def full(self) -> Ledger:
        ledger = self.optimize()
        # no completion polling: the excited-state stage is a separate run
        self.logger.warning("Full automatic mode does not wait for optimizations to finish")
        self.logger.warning("   Run with mode 'tddft-only' after optimizations complete")
        return ledger

    def analyze(self) -> ReportResult:
        log = self.logger
        log.info(RULE)
        log.info("RESULTS ANALYSIS")
        log.info(RULE)
        result = write_reports(self.config)
        log.info("Analysis complete! Results saved in: %s", self.config.paths.results_dir)
        return result
