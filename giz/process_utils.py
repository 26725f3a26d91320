"""process_utils.py
Running external tools (git, make, sbatch, MPI launchers). The working
directory and environment of each child process are passed explicitly;
giz never changes its own working directory or exports variables.
"""

import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from .RunConfig import RunConfig
from .errors import ExternalCommandError, PreconditionError


def module_system_available(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Environment-modules and Lmod both export one of these"""
    if environ is None:
        environ = os.environ
    return bool(environ.get("MODULESHOME") or environ.get("LMOD_CMD"))


def module_commands(
    modules: List[str],
    environ: Optional[Mapping[str, str]] = None,
) -> List[str]:
    if not modules or not module_system_available(environ):
        return []
    return ["module purge", f"module load {shlex.join(modules)}"]


def with_modules(
    cmd: List[str],
    modules: List[str],
    environ: Optional[Mapping[str, str]] = None,
    shell_setup: Sequence[str] = (),
) -> List[str]:
    """Wrap ``cmd`` so it runs after ``shell_setup`` and
    ``module purge && module load ...``.

    ``module`` is a shell function, so the wrapped command goes through a
    login shell. With nothing to set up ``cmd`` is returned unchanged.
    """
    setup = [*shell_setup, *module_commands(modules, environ)]
    if not setup:
        return cmd
    script = " && ".join([*setup, f"exec {shlex.join(cmd)}"])
    return ["bash", "-lc", script]


def module_search_path(
    modules: List[str],
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """PATH as seen after loading ``modules``.

    Returns None without a module system or modules. Login shells may print
    banners, so only the last line of output is used.
    """
    setup = module_commands(modules, environ)
    if not setup:
        return None
    script = " && ".join([*setup, 'printf "%s\\n" "$PATH"'])
    result = run_command(["bash", "-lc", script], capture_output=True, text=True)
    if result.returncode != 0:
        logging.error(f"module load failed: {result.stderr.strip()}")
        raise ExternalCommandError(
            f"Could not load modules: {' '.join(modules)}",
            cmd=["module", "load", *modules], returncode=result.returncode,
        )
    lines = result.stdout.strip().splitlines()
    return lines[-1] if lines else None


def child_env(config: RunConfig) -> Dict[str, str]:
    """Environment for GIZMO child processes"""
    env = dict(os.environ)
    env["OMP_NUM_THREADS"] = str(config.threads_per_process)
    return env


def run_command(cmd: List[str], **kwargs) -> subprocess.CompletedProcess:
    """Run ``cmd``, turning a missing program into a PreconditionError.

    A non-zero exit status is returned to the caller, not raised.
    """
    logging.debug(f"Running: {shlex.join(cmd)}")
    try:
        return subprocess.run(cmd, check=False, **kwargs)
    except FileNotFoundError as e:
        raise PreconditionError(f"Command not found: {cmd[0]}") from e


def run_make(config: RunConfig) -> None:
    """Compile GIZMO in the source directory using all local cores"""
    cmd = [
        "make",
        f"-j{os.cpu_count() or 1}",
        f"CONFIG={config.config_file}",
        f"EXEC={config.exec_file}",
    ]
    logging.info(f"Compiling {config.exec_file} ...")
    result = run_command(
        with_modules(cmd, config.modules, shell_setup=config.shell_setup),
        cwd=config.code_path,
        env=child_env(config),
    )
    if result.returncode != 0:
        logging.error(f"make exited with status {result.returncode}")
        raise ExternalCommandError(
            "Compilation failed", cmd=cmd, returncode=result.returncode
        )
    logging.info("Compilation successful")


def is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)
