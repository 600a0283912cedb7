"""
Process runner used for every scheduler call (sbatch, squeue).

The workflow only needs one capability: run a command, get its exit
code and captured output back. Tests substitute a fake with the same
``run`` signature.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence, Union

Pathish = Union[str, Path]


@dataclass(frozen=True)
class ProcessResult:
    returncode: int
    stdout: str
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ProcessRunner(Protocol):
    def run(self, cmd: Sequence[str], cwd: Optional[Pathish] = None) -> ProcessResult:
        ...


class SubprocessRunner:
    """
    Blocking subprocess runner, no timeout.

    OSError (missing executable, permissions) propagates to the caller.
    """

    def run(self, cmd: Sequence[str], cwd: Optional[Pathish] = None) -> ProcessResult:
        proc = subprocess.run(
            [str(c) for c in cmd],
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
        )
        return ProcessResult(proc.returncode, proc.stdout, proc.stderr)
