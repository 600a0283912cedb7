from pathlib import Path

import pytest
from typer.testing import CliRunner

import orcaflow.cli as cli
from orcaflow.cli import app

from conftest import FakeRunner

runner = CliRunner()


def _write_config(tmp_path: Path, extra: str = "") -> Path:
    p = tmp_path / "workflow.yaml"
    p.write_text(
        "systems: [MRD]\n"
        "environments: [water]\n"
        "paths:\n"
        "  base_dir: project\n" + extra
    )
    return p


def test_unknown_mode_does_nothing(tmp_path):
    result = runner.invoke(app, ["bogus", "--base-dir", str(tmp_path / "project")])
    assert result.exit_code == 2
    assert "Unknown mode: bogus" in result.output
    assert not (tmp_path / "project").exists()


def test_help_mode(tmp_path):
    result = runner.invoke(app, ["help", "--base-dir", str(tmp_path / "project")])
    assert result.exit_code == 0
    assert "Modes:" in result.output
    assert "tddft-only" in result.output
    assert not (tmp_path / "project").exists()


def test_setup_only(tmp_path):
    cfg = _write_config(tmp_path)
    result = runner.invoke(app, ["setup-only", "--config", str(cfg)])
    assert result.exit_code == 0, result.output
    assert "Setup complete (0/1 systems ready)" in result.output
    assert (tmp_path / "project" / "xyz_files").is_dir()


def test_opt_only_with_fake_scheduler(tmp_path, monkeypatch):
    cfg = _write_config(tmp_path)
    xyz_dir = tmp_path / "project" / "xyz_files"
    xyz_dir.mkdir(parents=True)
    (xyz_dir / "MRD.xyz").write_text("1\n\nH 0 0 0\n")

    fake = FakeRunner()
    monkeypatch.setattr(cli, "SubprocessRunner", lambda: fake)

    result = runner.invoke(app, ["opt-only", "--config", str(cfg)])
    assert result.exit_code == 0, result.output
    assert "Optimization jobs submitted: 1/1" in result.output
    assert fake.commands("sbatch")[0][1].endswith("job_scripts/MRD/MRD_opt_water.sh")


def test_analyze_empty(tmp_path):
    cfg = _write_config(tmp_path)
    result = runner.invoke(app, ["analyze", "--config", str(cfg)])
    assert result.exit_code == 0, result.output
    assert "(0 excitations)" in result.output
    csv = tmp_path / "project" / "analysis_results" / "tddft_summary.csv"
    assert csv.read_text().startswith("System,Environment,Method,Functional,State")


def test_bad_config_exits_1(tmp_path):
    cfg = _write_config(tmp_path, "cluster:\n  nprocs: 0\n")
    result = runner.invoke(app, ["opt-only", "--config", str(cfg)])
    assert result.exit_code == 1
    assert "nprocs" in result.output
    assert not (tmp_path / "project").exists()


@pytest.mark.parametrize("mode", ["setup-only", "analyze"])
def test_unwritable_root_aborts(tmp_path, mode):
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory")
    result = runner.invoke(app, [mode, "--base-dir", str(blocker)])
    assert result.exit_code == 1
    assert "Aborting" in result.output
