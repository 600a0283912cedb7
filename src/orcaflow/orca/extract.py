# src/orcaflow/orca/extract.py
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Union

from orcaflow.errors import MalformedOutputLine
from orcaflow.types import ExcitationRecord, OptimizationRecord

log = logging.getLogger(__name__)

Pathish = Union[str, Path]

# ===================== Markers =====================
ENERGY_MARKER = "FINAL SINGLE POINT ENERGY"
OPT_CONVERGED_MARKER = "THE OPTIMIZATION HAS CONVERGED"
TERMINATION_MARKER = "ORCA TERMINATED NORMALLY"
SPECTRUM_MARKER = "ABSORPTION SPECTRUM VIA TRANSITION ELECTRIC DIPOLE MOMENTS"

# rows of the spectrum table start with whitespace + the state index
_ROW_RE = re.compile(r"^\s+\d+")
_NUM = r"[-+]?\d+(?:\.\d+)?(?:[Ee][+-]?\d+)?"
_ENERGY_RE = re.compile(re.escape(ENERGY_MARKER) + r"\s+(" + _NUM + r")")

# dash rules longer than this close the spectrum table
SEPARATOR_MIN_LEN = 50


def _open(path: Path):
    return path.open("r", encoding="utf-8", errors="ignore")


# ===================== Optimization =====================
def scan_optimization(path: Pathish) -> Optional[OptimizationRecord]:
    """
    Convergence + final energy of an optimization output.

    The last FINAL SINGLE POINT ENERGY wins (restarted optimizations print
    several). Converged needs both the geometry convergence banner and
    normal termination. Returns None if the file does not exist.
    """
    p = Path(path)
    if not p.is_file():
        return None

    energy: Optional[float] = None
    saw_converged = False
    saw_terminated = False
    with _open(p) as f:
        for line in f:
            if ENERGY_MARKER in line:
                m = _ENERGY_RE.search(line)
                if m:
                    energy = float(m.group(1))
            if OPT_CONVERGED_MARKER in line:
                saw_converged = True
            if TERMINATION_MARKER in line:
                saw_terminated = True

    return OptimizationRecord(converged=saw_converged and saw_terminated, final_energy_eh=energy)


# ===================== Excited states =====================
def _is_separator(line: str) -> bool:
    s = line.strip()
    return "---" in s and len(s) > SEPARATOR_MIN_LEN and set(s) <= {"-"}


def parse_excitation_line(line: str) -> ExcitationRecord:
    """Tokens 1-4 of a spectrum row -> ExcitationRecord."""
    parts = line.split()
    if len(parts) < 4:
        raise MalformedOutputLine(f"expected 4 columns, got {len(parts)}: {line.rstrip()!r}")
    try:
        rec = ExcitationRecord(
            state=int(parts[0]),
            energy_ev=float(parts[1]),
            wavelength_nm=float(parts[2]),
            osc_strength=float(parts[3]),
        )
    except ValueError as exc:
        raise MalformedOutputLine(f"{exc}: {line.rstrip()!r}") from exc
    if rec.state < 1 or rec.osc_strength < 0:
        raise MalformedOutputLine(f"out of range values: {line.rstrip()!r}")
    return rec


def scan_excitations(path: Pathish) -> List[ExcitationRecord]:
    """
    Rows of the absorption spectrum table, in file order.

    States: before-spectrum -> in-spectrum (on the header marker). The
    table ends at the first long dash rule after at least one row, parsed
    or not; the rules framing the column header come before any row and
    are skipped.
    Returns [] if the file does not exist.
    """
    p = Path(path)
    if not p.is_file():
        return []

    records: List[ExcitationRecord] = []
    in_spectrum = False
    saw_row = False
    with _open(p) as f:
        for lineno, line in enumerate(f, start=1):
            if not in_spectrum:
                if SPECTRUM_MARKER in line:
                    in_spectrum = True
                continue

            if _is_separator(line):
                if saw_row:
                    break
                continue

            if _ROW_RE.match(line):
                saw_row = True
                try:
                    records.append(parse_excitation_line(line))
                except MalformedOutputLine as exc:
                    log.debug("%s:%d skipped (%s)", p.name, lineno, exc)

    return records

