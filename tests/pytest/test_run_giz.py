"""
CLI tests for run_giz: options are parsed and resolved, and the pipeline
runs against a temporary run directory with git, make, the editor, the
MPI launcher and sbatch stubbed out.
"""

import shutil

import click
import pytest
from click.testing import CliRunner

from run_giz import LOG_FILE_NAME, main
from util.command_utils import fake_build, fake_clone, make_executable


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def edits(monkeypatch):
    edited = []
    monkeypatch.setattr(
        click, "edit", lambda filename, editor: edited.append((filename, editor))
    )
    return edited


@pytest.fixture
def launchers(monkeypatch):
    available = {"mpirun", "sbatch"}
    monkeypatch.setattr(
        shutil, "which",
        lambda name: f"/usr/bin/{name}" if name in available else None,
    )
    return available


@pytest.fixture
def built_code(run_dir):
    make_executable(run_dir / "code" / "GIZMO")
    return run_dir / "code"


def test_help(runner):
    result = runner.invoke(main, ["-h"])
    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert "--skip-make" in result.output
    assert "GIZMO_SYSTYPE" in result.output


def test_unknown_option(runner):
    result = runner.invoke(main, ["--frobnicate"])
    assert result.exit_code == 2


def test_uneven_processes_rejected_before_side_effects(runner, tmp_path):
    new_dir = tmp_path / "new_run"
    result = runner.invoke(main, ["-d", str(new_dir), "-N", "3", "-n", "8"])

    assert result.exit_code == 2
    assert "evenly divisible" in result.output
    assert not new_dir.exists()


def test_restart_flags_are_exclusive(runner, run_dir):
    result = runner.invoke(main, ["-d", str(run_dir), "-r", "-R"])
    assert result.exit_code == 2


def test_fresh_run_directory(runner, run_dir, monkeypatch, recorder, edits, launchers):
    monkeypatch.setenv("GIZMO_SYSTYPE", "Frontera")
    recorder.on("git", action=fake_clone).on("make", action=fake_build)

    result = runner.invoke(main, ["-d", str(run_dir), "-g", "GIZMO_alt"],
                           input="n\n", catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert recorder.programs() == ["git", "make", "mpirun"]
    (make_cmd, _), = recorder.calls_to("make")
    assert "EXEC=GIZMO_alt" in make_cmd
    (launch_cmd, _), = recorder.calls_to("mpirun")
    assert launch_cmd == ["mpirun", "-np", "1", str(run_dir / "code" / "GIZMO_alt"),
                          "params.txt", "0"]
    assert [editor for _, editor in edits] == ["vim", "vim"]
    assert (run_dir / "gizmo.out").exists()
    assert (run_dir / "gizmo.err").exists()
    assert (run_dir / LOG_FILE_NAME).exists()


def test_combined_short_flags(runner, run_dir, built_code, recorder, edits, launchers):
    result = runner.invoke(main, ["-sr", "-d", str(run_dir), "-np", "4", "-T", "2"],
                           catch_exceptions=False)

    assert result.exit_code == 0, result.output
    (cmd, kwargs), = recorder.calls
    assert cmd == ["mpirun", "-np", "4", str(built_code / "GIZMO"), "params.txt", "1"]
    assert kwargs["env"]["OMP_NUM_THREADS"] == "2"


def test_queue_and_submit(runner, run_dir, built_code, recorder, edits, launchers):
    recorder.on("sbatch", stdout="Submitted batch job 1234\n")
    result = runner.invoke(
        main,
        ["-s", "-d", str(run_dir), "-N", "2", "-n", "8", "-j", "m12i",
         "-P", "normal", "-A", "TG-AST1", "-t", "12:00:00"],
        input="y\n", catch_exceptions=False,
    )

    assert result.exit_code == 0, result.output
    script = (run_dir / "submit_m12i.sh").read_text()
    assert "#SBATCH --partition=normal" in script
    assert "#SBATCH --account=TG-AST1" in script
    assert "#SBATCH --ntasks-per-node=4" in script
    assert "#SBATCH --time=12:00:00" in script
    assert recorder.programs() == ["sbatch"]
    assert "Submitted batch job 1234" in (run_dir / LOG_FILE_NAME).read_text()


def test_queue_declined_keeps_script(runner, run_dir, built_code, recorder, edits, launchers):
    result = runner.invoke(main, ["-s", "-d", str(run_dir), "-N", "1"],
                           input="n\n", catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert (run_dir / f"submit_gizmo_{run_dir.name}.sh").exists()
    assert recorder.calls == []


def test_missing_executable(runner, run_dir, recorder, edits, launchers):
    (run_dir / "code").mkdir()
    result = runner.invoke(main, ["-s", "-d", str(run_dir)])

    assert result.exit_code == 1
    assert result.output.count("executable not found") == 1
    assert "executable not found" in (run_dir / LOG_FILE_NAME).read_text()
    assert recorder.calls == []


def test_user_config_is_read(runner, run_dir, tmp_path, monkeypatch, built_code,
                             recorder, edits, launchers):
    config_path = tmp_path / "giz_config.yaml"
    config_path.write_text("systype: Frontera\neditor: nano\n")
    monkeypatch.setenv("GIZ_CONFIG", str(config_path))

    result = runner.invoke(main, ["-s", "-d", str(run_dir)], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert edits == [(str(run_dir / "params.txt"), "nano")]
