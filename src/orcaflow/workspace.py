"""
Workspace layout and materialization of rendered jobs.

    {work_dir}/{system}/optimization/{env}/{system}_opt_{env}.inp
    {work_dir}/{system}/tddft/{env}/{system}_{method}_{functional}_{env}.inp
    {scripts_dir}/{system}/{job_name}.sh

Everything here is idempotent: re-running overwrites files in place.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List, Tuple

from orcaflow.config import WorkflowConfig
from orcaflow.errors import MissingInput, WorkspaceError
from orcaflow.render import render_job
from orcaflow.types import KIND_DIRS, CalculationConfig, RenderedJob

log = logging.getLogger(__name__)


def ensure_roots(config: WorkflowConfig) -> List[Path]:
    """Create the four root directories. Raises WorkspaceError on failure."""
    p = config.paths
    roots = [p.xyz_dir, p.work_dir, p.scripts_dir, p.results_dir]
    for root in roots:
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WorkspaceError(f"Cannot create directory {root}: {exc}") from exc
    return roots


def find_geometry(config: WorkflowConfig, system: str) -> Path:
    """
    Locate ``{system}.xyz`` in the geometry directory.

    Exact, lower-case and upper-case names are tried first, then any .xyz
    file whose name matches case-insensitively.
    """
    xyz_dir = config.paths.xyz_dir
    candidates = [f"{system}.xyz", f"{system}.xyz".lower(), f"{system}.xyz".upper()]
    tried = list(dict.fromkeys(candidates))

    if not xyz_dir.is_dir():
        raise MissingInput(system, str(xyz_dir), tried)

    for name in tried:
        path = xyz_dir / name
        if path.is_file():
            return path

    wanted = f"{system}.xyz".lower()
    for path in sorted(xyz_dir.iterdir()):
        if path.is_file() and path.name.lower() == wanted:
            return path

    raise MissingInput(system, str(xyz_dir), tried)


def system_dirs(config: WorkflowConfig, system: str) -> List[Path]:
    work = config.paths.work_dir / system
    dirs = []
    for env in config.environments:
        for kind_dir in KIND_DIRS.values():
            dirs.append(work / kind_dir / env)
    dirs.append(config.paths.scripts_dir / system)
    return dirs


def setup_directories(config: WorkflowConfig, system: str) -> List[Path]:
    dirs = system_dirs(config, system)
    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)
    return dirs


def _copy_geometry(geometry: Path, workdir: Path) -> Path:
    dest = workdir / geometry.name
    if dest.exists() and dest.resolve() == geometry.resolve():
        return dest
    shutil.copyfile(geometry, dest)
    return dest


def materialize(calc: CalculationConfig, config: WorkflowConfig, geometry: Path) -> RenderedJob:
    """
    Write the input file + submission script for ``calc`` and copy the
    geometry next to the input.
    """
    geometry = Path(geometry)
    workdir = calc.workdir(config)
    script = calc.script_path(config)
    workdir.mkdir(parents=True, exist_ok=True)
    script.parent.mkdir(parents=True, exist_ok=True)

    inp_text, script_text = render_job(calc, config, geometry.name)

    inp = workdir / calc.input_name
    inp.write_text(inp_text)
    script.write_text(script_text)
    script.chmod(0o755)

    _copy_geometry(geometry, workdir)

    log.debug("Wrote %s and %s", inp, script)
    return RenderedJob(calc=calc, input_path=inp, script_path=script, workdir=workdir)


def find_optimized_geometry(config: WorkflowConfig, system: str) -> Tuple[Path, bool]:
    """
    Geometry for the excited-state stage.

    Returns (path, optimized). The optimized ``{system}_opt_{env}.xyz``
    written back by the optimization job is preferred (first environment
    that has one); otherwise the input geometry is used. Raises
    MissingInput when neither exists.
    """
    for env in config.environments:
        calc = CalculationConfig(system=system, environment=env)
        xyz = calc.workdir(config) / f"{calc.job_name}.xyz"
        if xyz.is_file():
            return xyz, True
    return find_geometry(config, system), False
