import logging

import pytest

from orcaflow.slurm.runner import ProcessResult
from orcaflow.workflow import HELP_TEXT, Mode, Workflow


@pytest.mark.parametrize(
    "text, mode",
    [
        ("setup-only", Mode.SETUP),
        ("opt-only", Mode.OPTIMIZE),
        ("tddft-only", Mode.EXCITED_STATE),
        ("full", Mode.FULL),
        ("analyze", Mode.ANALYZE),
        ("help", Mode.HELP),
        ("--help", Mode.HELP),
    ],
)
def test_mode_parse(text, mode):
    assert Mode.parse(text) is mode


@pytest.mark.parametrize("text", ["", "opt", "FULL", "tddft"])
def test_mode_parse_rejects_unknown(text):
    with pytest.raises(ValueError, match="Unknown mode"):
        Mode.parse(text)


def test_help_touches_nothing(config, fake_runner):
    wf = Workflow(config, runner=fake_runner)
    assert wf.run(Mode.HELP) == HELP_TEXT
    assert not config.paths.base_dir.exists()
    assert fake_runner.calls == []


def test_setup_reports_missing_systems(config, fake_runner, write_xyz):
    write_xyz(config.paths.xyz_dir, "MRD.xyz")
    found = Workflow(config, runner=fake_runner).run(Mode.SETUP)
    assert found["MRD"].name == "MRD.xyz"
    assert found["A07"] is None
    assert (config.paths.work_dir / "MRD" / "tddft" / "water").is_dir()
    assert not (config.paths.work_dir / "A07").exists()
    assert config.paths.results_dir.is_dir()
    assert fake_runner.calls == []


def test_optimize_skips_system_without_geometry(config, fake_runner, write_xyz):
    write_xyz(config.paths.xyz_dir, "MRD.xyz")
    ledger = Workflow(config, runner=fake_runner).run(Mode.OPTIMIZE)

    assert list(ledger) == ["MRD"]
    (handle,) = ledger["MRD"]
    assert handle.job_id == 458213
    assert handle.job.script_path.name == "MRD_opt_water.sh"
    assert len(fake_runner.commands("sbatch")) == 1
    # one queue snapshot after submission
    assert len(fake_runner.commands("squeue")) == 1


def test_failed_submission_is_recorded(config, fake_runner, write_xyz):
    write_xyz(config.paths.xyz_dir, "MRD.xyz")
    write_xyz(config.paths.xyz_dir, "A07.xyz")
    fake_runner.sbatch = lambda cmd: ProcessResult(1, "", "sbatch: error: Batch job submission failed")

    ledger = Workflow(config, runner=fake_runner).run(Mode.OPTIMIZE)
    handles = ledger["MRD"] + ledger["A07"]
    assert [h.job_id for h in handles] == [None, None]
    assert all("submission failed" in h.reason for h in handles)
    # files are still generated
    assert handles[0].job.input_path.is_file()


def test_excited_state_order_and_geometry(config, fake_runner, write_xyz):
    write_xyz(config.paths.xyz_dir, "MRD.xyz")
    write_xyz(config.paths.xyz_dir, "A07.xyz")
    opt_dir = config.paths.work_dir / "MRD" / "optimization" / "water"
    write_xyz(opt_dir, "MRD_opt_water.xyz")

    ledger = Workflow(config, runner=fake_runner).run(Mode.EXCITED_STATE)

    names = [h.job.calc.job_name for h in ledger["MRD"]]
    assert names == [
        "MRD_TDA_B3LYP_water",
        "MRD_TDA_wB97X_water",
        "MRD_sTDDFT_B3LYP_water",
        "MRD_sTDDFT_wB97X_water",
    ]
    td_dir = config.paths.work_dir / "MRD" / "tddft" / "water"
    assert (td_dir / "MRD_opt_water.xyz").is_file()
    assert "*xyzfile 0 1 MRD_opt_water.xyz" in (td_dir / "MRD_TDA_B3LYP_water.inp").read_text()
    # A07 falls back to its input geometry
    a07_inp = config.paths.work_dir / "A07" / "tddft" / "water" / "A07_TDA_B3LYP_water.inp"
    assert "*xyzfile 0 1 A07.xyz" in a07_inp.read_text()
    assert len(fake_runner.commands("sbatch")) == 8


def test_excited_state_without_any_geometry(config, fake_runner):
    ledger = Workflow(config, runner=fake_runner).run(Mode.EXCITED_STATE)
    assert ledger == {}
    assert fake_runner.calls == []


def test_full_does_not_submit_excited_states(config, fake_runner, write_xyz):
    write_xyz(config.paths.xyz_dir, "MRD.xyz")
    ledger = Workflow(config, runner=fake_runner).run(Mode.FULL)
    assert [h.job.calc.kind for h in ledger["MRD"]] == ["optimization"]
    assert len(fake_runner.commands("sbatch")) == 1
    assert not any((config.paths.work_dir / "MRD" / "tddft" / "water").iterdir())


def test_analyze_writes_reports(config, fake_runner):
    res = Workflow(config, runner=fake_runner).run(Mode.ANALYZE)
    assert res.csv_path.is_file()
    assert res.summary_path.is_file()
    assert fake_runner.calls == []


def test_stage_messages_go_to_workflow_logger_as_plain_text(config, fake_runner, write_xyz, caplog):
    write_xyz(config.paths.xyz_dir, "MRD.xyz")
    logger = logging.getLogger("orcaflow.tests.run")
    with caplog.at_level(logging.INFO):
        Workflow(config, runner=fake_runner, logger=logger).run(Mode.OPTIMIZE)

    messages = [r.getMessage() for r in caplog.records if r.name == "orcaflow.tests.run"]
    assert "JOB MONITORING" in messages
    assert any("MRD_opt_water submitted as job 458213" in m for m in messages)
    assert any("A07" in m for m in messages)
    assert all(m.isascii() for m in messages)
