import sys
from pathlib import Path

# Add the project root and the 'tests' directory to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))
import logging
logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(message)s")

import subprocess

import pytest

from giz.RunConfig import ENV_VARS, RunConfig
from giz.log_utils import CONSOLE_HANDLER, FILE_HANDLER
from util.command_utils import CommandRecorder


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Keep the developer's GIZMO settings and module system out of tests"""
    for var in ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)
    monkeypatch.delenv("MODULESHOME", raising=False)
    monkeypatch.delenv("LMOD_CMD", raising=False)
    monkeypatch.setenv("GIZ_CONFIG", str(tmp_path / "giz_config.yaml"))
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() in (CONSOLE_HANDLER, FILE_HANDLER):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def run_dir(tmp_path):
    path = tmp_path / "m12i_run"
    path.mkdir()
    return path


@pytest.fixture
def make_config(run_dir):
    def _make(environ=None, user_config=None, **flags):
        flags.setdefault("run_dir", run_dir)
        return RunConfig.resolve(flags, environ=environ or {}, user_config=user_config)
    return _make


@pytest.fixture
def recorder(monkeypatch):
    recorder = CommandRecorder()
    monkeypatch.setattr(subprocess, "run", recorder)
    return recorder
