"""
orcaflow | config.py

Immutable workflow configuration.

One WorkflowConfig is built per run (defaults, or a YAML file merged over
the defaults) and handed to every component. Nothing downstream reads
module-level settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from orcaflow.errors import ConfigError

Pathish = Union[str, Path]

TDDFT_METHODS: Tuple[str, ...] = ("TDA", "TDDFT", "sTDA", "sTDDFT")

# Directory names under base_dir when a root is not configured explicitly
_DEFAULT_SUBDIRS = {
    "xyz_dir": "xyz_files",
    "work_dir": "calculations",
    "scripts_dir": "job_scripts",
    "results_dir": "analysis_results",
}


def _resolve(path: Pathish, base: Optional[Path] = None) -> Path:
    p = Path(path).expanduser()
    if base is not None and not p.is_absolute():
        p = base / p
    return p.resolve()


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

class ClusterSettings(BaseModel):
    # SLURM + executable settings for the generated submission scripts
    model_config = ConfigDict(frozen=True)

    orca_path: str = "/gpfs1/sw/rh9/pkgs/stacks/gcc/13.3.0/mpi-pkgs/openmpi/5.0.5/orca/6.0.1/orca"
    partition: str = "general"
    account: str = ""
    walltime: str = "48:00:00"
    nodes: int = 1
    nprocs: int = 48
    memory_mb: int = 512000
    email: str = ""
    module_commands: Tuple[str, ...] = (
        "module purge",
        "module load gcc/13.3.0-xp3epyt openmpi/5.0.5 orca/6.0.1",
    )
    scratch_root: str = "/tmp"

    @field_validator("nprocs", "memory_mb", "nodes")
    @classmethod
    def _positive(cls, v: int, info) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name} must be >= 1, got {v}")
        return v

    @property
    def maxcore_mb(self) -> int:
        """Per-core ORCA memory (%maxcore), MB."""
        return self.memory_mb // self.nprocs

    @property
    def memory_gb(self) -> int:
        return self.memory_mb // 1024


class CalculationSettings(BaseModel):
    # ORCA keywords shared by every generated input
    model_config = ConfigDict(frozen=True)

    opt_functional: str = "B3LYP"
    basis: str = "6-311G(d,p)"
    aux_basis: str = "def2/J"
    dispersion: str = "D3BJ"
    ri_keyword: str = "RIJCOSX"
    charge: int = 0
    multiplicity: int = 1

    scf_maxiter: int = 5000
    geom_maxiter: int = 500
    geom_tol_e: str = "5e-6"
    geom_tol_rmsg: str = "1e-4"
    geom_tol_maxg: str = "3e-4"

    tddft_methods: Tuple[str, ...] = TDDFT_METHODS
    functionals: Tuple[str, ...] = ("BP86", "B3LYP", "TPSSh", "M06", "CAM-B3LYP", "LC-BLYP", "wB97X")
    n_excited_states: int = 50
    tddft_maxdim: int = 5

    # environment -> ORCA implicit solvation keyword; anything else is gas phase
    solvated_environments: Dict[str, str] = Field(default_factory=lambda: {"water": "CPCM(Water)"})
    # functionals that need a different ORCA name (dispersion-corrected variants)
    functional_aliases: Dict[str, str] = Field(default_factory=lambda: {"wB97X": "wB97X-D3"})

    @field_validator("scf_maxiter", "geom_maxiter", "n_excited_states", "tddft_maxdim")
    @classmethod
    def _positive(cls, v: int, info) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name} must be >= 1, got {v}")
        return v

    @field_validator("tddft_methods")
    @classmethod
    def _known_methods(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        unknown = [m for m in v if m not in TDDFT_METHODS]
        if unknown:
            raise ValueError(f"Unknown excited-state method(s) {unknown}. Expected one of {list(TDDFT_METHODS)}")
        return v

    def solvent_keyword(self, environment: str) -> str:
        return self.solvated_environments.get(environment, "")

    def orca_functional(self, functional: str) -> str:
        return self.functional_aliases.get(functional, functional)


class PathSettings(BaseModel):
    """
    Filesystem roots. Unset roots default to fixed subdirectories of
    base_dir; relative roots are taken relative to base_dir.
    """

    model_config = ConfigDict(frozen=True)

    base_dir: Path = Path(".")
    xyz_dir: Optional[Path] = None
    work_dir: Optional[Path] = None
    scripts_dir: Optional[Path] = None
    results_dir: Optional[Path] = None

    @model_validator(mode="before")
    @classmethod
    def _fill_roots(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        base = _resolve(data.get("base_dir") or ".")
        data["base_dir"] = base
        for key, sub in _DEFAULT_SUBDIRS.items():
            value = data.get(key)
            data[key] = base / sub if value in (None, "") else _resolve(value, base)
        return data


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

class WorkflowConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    systems: Tuple[str, ...] = ("MRD", "A07", "AB113", "SDIII", "CRD")
    environments: Tuple[str, ...] = ("water",)

    cluster: ClusterSettings = Field(default_factory=ClusterSettings)
    calculation: CalculationSettings = Field(default_factory=CalculationSettings)
    paths: PathSettings = Field(default_factory=PathSettings)

    @field_validator("systems", "environments")
    @classmethod
    def _non_empty(cls, v: Tuple[str, ...], info) -> Tuple[str, ...]:
        if not v:
            raise ValueError(f"{info.field_name} must list at least one entry")
        return v


def _errors_to_text(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def build_config(data: Optional[Dict[str, Any]] = None) -> WorkflowConfig:
    """Validate a plain dict into a WorkflowConfig, raising ConfigError."""
    try:
        return WorkflowConfig(**(data or {}))
    except ValidationError as exc:
        raise ConfigError(f"Invalid workflow configuration: {_errors_to_text(exc)}") from exc


def load_config(path: Optional[Pathish] = None, *, base_dir: Optional[Pathish] = None) -> WorkflowConfig:
    """
    Load a YAML configuration file and merge it over the defaults.

    A relative paths.base_dir in the file is taken relative to the file's
    directory; a missing one defaults to that directory. ``base_dir``
    overrides whatever the file says.
    """
    data: Dict[str, Any] = {}
    anchor = Path.cwd()

    if path is not None:
        cfg_path = Path(path).expanduser().resolve()
        if not cfg_path.is_file():
            raise ConfigError(f"Config file not found: {cfg_path}")
        try:
            loaded = yaml.safe_load(cfg_path.read_text())
        except yaml.YAMLError as exc:
            raise ConfigError(f"{cfg_path}: invalid YAML ({exc})") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"{cfg_path}: top level must be a mapping")
        data = loaded
        anchor = cfg_path.parent

    paths = dict(data.get("paths") or {})
    if base_dir is not None:
        paths["base_dir"] = _resolve(base_dir)
    else:
        paths["base_dir"] = _resolve(paths.get("base_dir") or ".", anchor)
    data = {**data, "paths": paths}

    return build_config(data)
