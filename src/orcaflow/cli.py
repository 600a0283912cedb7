from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from orcaflow.config import load_config
from orcaflow.errors import ConfigError, WorkspaceError
from orcaflow.slurm.runner import SubprocessRunner
from orcaflow.workflow import HELP_TEXT, Mode, Workflow, get_logger

app = typer.Typer(help="ORCA / SLURM batch workflow", add_completion=False)

MODE_HELP = "setup-only | opt-only | tddft-only | full | analyze | help"


def _closing_line(mode: Mode, result) -> str:
    if mode is Mode.SETUP:
        ready = sum(1 for v in result.values() if v is not None)
        return f"Setup complete ({ready}/{len(result)} systems ready). Run 'opt-only' to submit optimizations."
    if mode is Mode.ANALYZE:
        return (
            f"Wrote {result.summary_path.name} and {result.csv_path.name} "
            f"({result.n_excitations} excitations)"
        )
    handles = [h for hs in result.values() for h in hs]
    ok = sum(1 for h in handles if h.submitted)
    label = "TD-DFT" if mode is Mode.EXCITED_STATE else "Optimization"
    return f"{label} jobs submitted: {ok}/{len(handles)}"


@app.command()
def main(
    mode: str = typer.Argument("opt-only", help=MODE_HELP),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML workflow configuration"),
    base_dir: Optional[Path] = typer.Option(None, "--base-dir", "-b", help="Override paths.base_dir"),
):
    """Generate, submit, monitor and analyze ORCA calculations on SLURM."""
    try:
        selected = Mode.parse(mode)
    except ValueError:
        typer.secho(f"Unknown mode: {mode}", fg=typer.colors.RED, err=True)
        typer.echo("Run with 'help' for usage information", err=True)
        raise typer.Exit(code=2)

    if selected is Mode.HELP:
        typer.echo(HELP_TEXT)
        return

    try:
        cfg = load_config(config, base_dir=base_dir)
    except ConfigError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    workflow = Workflow(cfg, runner=SubprocessRunner(), logger=get_logger())
    try:
        result = workflow.run(selected)
    except (WorkspaceError, ConfigError) as exc:
        typer.secho(f"Aborting: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(_closing_line(selected, result), fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
