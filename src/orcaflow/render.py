"""
Template rendering for ORCA inputs and SLURM submission scripts.

Rendering is pure: the same CalculationConfig + WorkflowConfig always
gives byte-identical text. Every template field is required
(StrictUndefined), so a missing value fails loudly instead of rendering
as an empty string.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Tuple

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from orcaflow.config import WorkflowConfig
from orcaflow.errors import ConfigError
from orcaflow.orca.extract import TERMINATION_MARKER
from orcaflow.types import EXCITED_STATE, OPTIMIZATION, CalculationConfig

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

KIND_TEMPLATES: Dict[str, str] = {
    OPTIMIZATION: "orca_opt.inp.j2",
    EXCITED_STATE: "orca_tddft.inp.j2",
}
SBATCH_TEMPLATE = "slurm_job.sh.j2"

_jenv = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    undefined=StrictUndefined,
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)


def _check_numeric(config: WorkflowConfig) -> None:
    # %maxcore divides by nprocs; reject before any template is touched
    if config.cluster.nprocs < 1:
        raise ConfigError(f"nprocs must be >= 1, got {config.cluster.nprocs}")
    if config.cluster.memory_mb < 1:
        raise ConfigError(f"memory_mb must be >= 1, got {config.cluster.memory_mb}")


def input_context(calc: CalculationConfig, config: WorkflowConfig, geometry: str) -> Dict[str, Any]:
    """Field map for the ORCA input template of ``calc``."""
    c = config.calculation
    ctx: Dict[str, Any] = {
        "system": calc.system,
        "environment": calc.environment,
        "basis": c.basis,
        "aux_basis": c.aux_basis,
        "ri_keyword": c.ri_keyword,
        "nprocs": config.cluster.nprocs,
        "maxcore_mb": config.cluster.maxcore_mb,
        "scf_maxiter": c.scf_maxiter,
        "solvent": c.solvent_keyword(calc.environment),
        "charge": c.charge,
        "multiplicity": c.multiplicity,
        "geometry": Path(geometry).name,
    }

    if calc.kind == OPTIMIZATION:
        ctx.update(
            functional=c.opt_functional,
            dispersion=c.dispersion,
            geom_maxiter=c.geom_maxiter,
            geom_tol_e=c.geom_tol_e,
            geom_tol_rmsg=c.geom_tol_rmsg,
            geom_tol_maxg=c.geom_tol_maxg,
        )
    else:
        ctx.update(
            method=calc.method,
            functional=calc.functional,
            orca_functional=c.orca_functional(calc.functional),
            tda=calc.method in ("TDA", "sTDA"),
            simplified=calc.method in ("sTDA", "sTDDFT"),
            nroots=c.n_excited_states,
            maxdim=c.tddft_maxdim,
        )
    return ctx


def script_context(calc: CalculationConfig, config: WorkflowConfig) -> Dict[str, Any]:
    """Field map for the SLURM submission script of ``calc``."""
    cl = config.cluster
    return {
        "job_name": calc.job_name,
        "partition": cl.partition,
        "account": cl.account,
        "nodes": cl.nodes,
        "nprocs": cl.nprocs,
        "memory_gb": cl.memory_gb,
        "walltime": cl.walltime,
        "email": cl.email,
        "module_commands": list(cl.module_commands),
        "scratch_root": cl.scratch_root.rstrip("/") or "/",
        "workdir": str(calc.workdir(config)),
        "input_name": calc.input_name,
        "output_name": calc.output_name,
        "orca_path": cl.orca_path,
        "termination_marker": TERMINATION_MARKER,
    }


def render_input(calc: CalculationConfig, config: WorkflowConfig, geometry: str) -> str:
    _check_numeric(config)
    tpl = _jenv.get_template(KIND_TEMPLATES[calc.kind])
    return tpl.render(**input_context(calc, config, geometry))


def render_script(calc: CalculationConfig, config: WorkflowConfig) -> str:
    _check_numeric(config)
    tpl = _jenv.get_template(SBATCH_TEMPLATE)
    return tpl.render(**script_context(calc, config))


def render_job(calc: CalculationConfig, config: WorkflowConfig, geometry: str) -> Tuple[str, str]:
    """Return (ORCA input text, submission script text)."""
    return render_input(calc, config, geometry), render_script(calc, config)
