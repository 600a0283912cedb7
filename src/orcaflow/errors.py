from __future__ import annotations


class OrcaFlowError(Exception):
    """Base class for every error raised by orcaflow."""


class ConfigError(OrcaFlowError):
    """Workflow configuration is malformed (caught before any rendering)."""


class WorkspaceError(OrcaFlowError):
    """Root directory structure could not be created. Fatal for the run."""


class MissingInput(OrcaFlowError):
    """No geometry file exists for a system. The system is skipped."""

    def __init__(self, system: str, searched: str, tried=()):
        self.system = system
        self.searched = searched
        self.tried = list(tried)
        msg = f"Could not find XYZ file for system {system} in {searched}"
        if self.tried:
            msg += f" (tried: {', '.join(self.tried)})"
        super().__init__(msg)


class SubmissionFailure(OrcaFlowError):
    """sbatch rejected the script, printed no job id, or could not be launched."""


class MalformedOutputLine(OrcaFlowError):
    """A spectrum row failed numeric parsing. Skipped by the extractor."""
