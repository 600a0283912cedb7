"""
orcaflow: ORCA input/SLURM script generation, submission, and result
collection for batch excited-state studies.

Exports the public API:
- WorkflowConfig, load_config
- Workflow, Mode
"""
from .config import WorkflowConfig, load_config
from .workflow import Mode, Workflow

__version__ = "0.1.0"
