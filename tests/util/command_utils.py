import subprocess
from pathlib import Path


class CommandRecorder:
    """Stand-in for subprocess.run that records calls.

    Responses are queued per program name with ``on``; a program without
    queued responses succeeds with empty output.
    """

    def __init__(self):
        self.calls = []
        self._responses = {}

    def on(self, program, returncode=0, stdout="", action=None):
        self._responses.setdefault(program, []).append((returncode, stdout, action))
        return self

    def __call__(self, cmd, check=False, **kwargs):
        cmd = list(cmd)
        self.calls.append((cmd, kwargs))
        queued = self._responses.get(cmd[0])
        returncode, stdout, action = queued.pop(0) if queued else (0, "", None)
        if action is not None:
            action(cmd, kwargs)
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr="")

    def programs(self):
        return [cmd[0] for cmd, _ in self.calls]

    def calls_to(self, program):
        return [(cmd, kwargs) for cmd, kwargs in self.calls if cmd[0] == program]


def make_executable(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n")
    path.chmod(0o755)
    return path


def fake_clone(cmd, kwargs):
    """git clone action: create the destination like a real clone"""
    dest = Path(cmd[3])
    dest.mkdir()
    (dest / "Makefile.systype").write_text("#SYSTYPE=\"MacBookPro\"\n")
    (dest / "Template_Config.sh").write_text("HYDRO_MESHLESS_FINITE_MASS\n")


def fake_build(cmd, kwargs):
    """make action: create the requested executable in the source directory"""
    exec_name = next(arg for arg in cmd if arg.startswith("EXEC=")).split("=", 1)[1]
    make_executable(Path(kwargs["cwd"]) / exec_name)
