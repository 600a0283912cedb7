"""
Analysis reports for finished calculations.

    {results_dir}/optimization_summary.txt   human-readable, per system/env
    {results_dir}/tddft_summary.csv          one row per excited state

Both files are rewritten on every call. Missing output files are never
an error: the summary says so and the CSV simply has no rows for them.
The same goes for output files that exist but cannot be read.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pandas as pd

from orcaflow.config import WorkflowConfig
from orcaflow.orca.extract import scan_excitations, scan_optimization
from orcaflow.types import KIND_DIRS, EXCITED_STATE, excited_state_calcs, optimization_calcs

log = logging.getLogger(__name__)

OPT_SUMMARY_NAME = "optimization_summary.txt"
TDDFT_CSV_NAME = "tddft_summary.csv"

CSV_COLUMNS = [
    "System",
    "Environment",
    "Method",
    "Functional",
    "State",
    "Energy_eV",
    "Wavelength_nm",
    "OscStrength",
]

RULE = "=" * 80
SUBRULE = "-" * 80


@dataclass(frozen=True)
class ReportResult:
    summary_path: Path
    csv_path: Path
    n_optimizations: int
    n_missing: int
    n_excitations: int


def optimization_summary(config: WorkflowConfig, generated: str) -> Tuple[str, int, int]:
    """Return (summary text, outputs found, outputs missing)."""
    lines = ["Geometry Optimization Summary", RULE, f"Generated: {generated}", ""]
    found = missing = 0

    for system in config.systems:
        lines.append(f"System: {system}")
        lines.append(SUBRULE)
        for calc in optimization_calcs(config, system):
            out = calc.output_path(config)
            try:
                rec = scan_optimization(out)
            except OSError as exc:
                log.warning("Could not read %s: %s", out, exc)
                lines.append(f"  {calc.environment}: Output file unreadable")
                missing += 1
                continue
            if rec is None:
                lines.append(f"  {calc.environment}: No output file found")
                missing += 1
                continue
            found += 1
            lines.append(f"  {calc.environment}:")
            lines.append(f"    Converged: {'yes' if rec.converged else 'no'}")
            if rec.final_energy_eh is not None:
                lines.append(f"    Final Energy: {rec.final_energy_eh:.8f} Eh")
        lines.append("")

    return "\n".join(lines), found, missing


def excitation_rows(config: WorkflowConfig) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for system in config.systems:
        system_dir = config.paths.work_dir / system / KIND_DIRS[EXCITED_STATE]
        if not system_dir.is_dir():
            continue
        for calc in excited_state_calcs(config, system):
            out = calc.output_path(config)
            try:
                records = scan_excitations(out)
            except OSError as err:
                log.warning("Could not read %s: %s", out, err)
                continue
            for exc in records:
                rows.append({
                    "System": calc.system,
                    "Environment": calc.environment,
                    "Method": calc.method,
                    "Functional": calc.functional,
                    "State": exc.state,
                    "Energy_eV": exc.energy_ev,
                    "Wavelength_nm": exc.wavelength_nm,
                    "OscStrength": exc.osc_strength,
                })
    return rows


def write_reports(config: WorkflowConfig) -> ReportResult:
    results_dir = config.paths.results_dir
    results_dir.mkdir(parents=True, exist_ok=True)

    log.info("Analyzing optimizations...")
    generated = time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime())
    text, found, missing = optimization_summary(config, generated)
    summary_path = results_dir / OPT_SUMMARY_NAME
    summary_path.write_text(text, encoding="utf-8")
    log.info("Saved: %s (%d output(s), %d missing)", summary_path.name, found, missing)

    log.info("Analyzing TD-DFT calculations...")
    rows = excitation_rows(config)
    df = pd.DataFrame(rows, columns=CSV_COLUMNS)
    csv_path = results_dir / TDDFT_CSV_NAME
    df.to_csv(csv_path, index=False)
    log.info("Saved: %s (%d excitations)", csv_path.name, len(df))

    return ReportResult(
        summary_path=summary_path,
        csv_path=csv_path,
        n_optimizations=found,
        n_missing=missing,
        n_excitations=len(df),
    )
