from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from orcaflow.config import WorkflowConfig

OPTIMIZATION = "optimization"
EXCITED_STATE = "excited-state"

# on-disk directory per calculation kind
KIND_DIRS = {
    OPTIMIZATION: "optimization",
    EXCITED_STATE: "tddft",
}


@dataclass(frozen=True)
class CalculationConfig:
    """
    One unit of work: a system in an environment, either a geometry
    optimization or an excited-state calculation (method + functional).

    Invariants:
    - method/functional are set for excited-state and only for excited-state
    - job_name (and every path derived from it) is a pure function of the fields
    """

    system: str
    environment: str
    kind: str = OPTIMIZATION
    method: Optional[str] = None
    functional: Optional[str] = None

    def __post_init__(self):
        if self.kind not in KIND_DIRS:
            raise ValueError(f"Unknown calculation kind '{self.kind}'")
        if self.kind == EXCITED_STATE and not (self.method and self.functional):
            raise ValueError("excited-state calculations need a method and a functional")
        if self.kind == OPTIMIZATION and (self.method or self.functional):
            raise ValueError("optimization calculations take no method/functional")

    @property
    def job_name(self) -> str:
        if self.kind == OPTIMIZATION:
            return f"{self.system}_opt_{self.environment}"
        return f"{self.system}_{self.method}_{self.functional}_{self.environment}"

    @property
    def input_name(self) -> str:
        return f"{self.job_name}.inp"

    @property
    def output_name(self) -> str:
        return f"{self.job_name}.out"

    def workdir(self, config: WorkflowConfig) -> Path:
        return config.paths.work_dir / self.system / KIND_DIRS[self.kind] / self.environment

    def output_path(self, config: WorkflowConfig) -> Path:
        return self.workdir(config) / self.output_name

    def script_path(self, config: WorkflowConfig) -> Path:
        return config.paths.scripts_dir / self.system / f"{self.job_name}.sh"


@dataclass(frozen=True)
class RenderedJob:
    calc: CalculationConfig
    input_path: Path
    script_path: Path
    workdir: Path


@dataclass(frozen=True)
class JobHandle:
    job: RenderedJob
    job_id: Optional[int] = None
    reason: Optional[str] = None

    @property
    def submitted(self) -> bool:
        return self.job_id is not None


@dataclass(frozen=True)
class ExcitationRecord:
    state: int
    energy_ev: float
    wavelength_nm: float
    osc_strength: float


@dataclass(frozen=True)
class OptimizationRecord:
    converged: bool
    final_energy_eh: Optional[float] = None


# ---------------------------------------------------------------------------
# Expansion of the configuration lists (system outer ... functional inner)
# ---------------------------------------------------------------------------

def optimization_calcs(config: WorkflowConfig, system: str) -> Iterator[CalculationConfig]:
    for env in config.environments:
        yield CalculationConfig(system=system, environment=env, kind=OPTIMIZATION)


def excited_state_calcs(config: WorkflowConfig, system: str) -> Iterator[CalculationConfig]:
    calc = config.calculation
    for env in config.environments:
        for method in calc.tddft_methods:
            for functional in calc.functionals:
                yield CalculationConfig(
                    system=system,
                    environment=env,
                    kind=EXCITED_STATE,
                    method=method,
                    functional=functional,
                )
