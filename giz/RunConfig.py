"""RunConfig.py
This module defines the RunConfig class, which stores every setting used
by a giz run. A RunConfig is built once at startup by overlaying built-in
defaults, the user config file, environment variables and command-line
flags (each layer overriding the previous one), and is immutable after
that.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ConfigurationError

# Settings that can come from the user config file or the environment.
# Keys are RunConfig field names, values are environment variable names.
ENV_VARS = {
    "systype": "GIZMO_SYSTYPE",
    "source": "GIZMO_SOURCE",
    "module_list": "GIZMO_MODULE_LIST",
    "editor": "GIZMO_EDITOR",
    "code_dir": "GIZMO_CODE_DIR",
    "code_tar": "GIZMO_CODE_TAR",
    "template_config_file": "GIZMO_TEMPLATE_CONFIG_FILE",
    "template_params_file": "GIZMO_TEMPLATE_PARAMS_FILE",
    "allocation": "GIZMO_ACCOUNT",
    "partition": "GIZMO_PARTITION",
}

# User config files use "account" for the allocation to charge.
USER_CONFIG_ALIASES = {"account": "allocation"}

# Shell lines run before GIZMO (e.g. "ulimit -s unlimited"), user config only
SHELL_SETUP_KEY = "shell_setup"

DEFAULT_JOB_NAME = "gizmo"


def parse_shell_setup(value: Any) -> Tuple[str, ...]:
    """Accept a list of lines or one multi-line string"""
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.splitlines()
    return tuple(str(line).strip() for line in value if str(line).strip())


@dataclass(frozen=True)
class RunConfig:
    """Container for all runtime configuration parameters"""
    run_dir: Path
    config_file: str = "Config.sh"
    param_file: str = "params.txt"
    exec_file: str = "GIZMO"
    skip_make: bool = False
    restart: int = 0
    threads_per_process: int = 1
    num_nodes: int = 0
    num_processes: int = 1
    job_time: str = "2-00:00:00"
    job_name: str = DEFAULT_JOB_NAME
    job_name_set: bool = False
    partition: Optional[str] = None
    allocation: Optional[str] = None
    systype: str = ""
    source: str = ""
    module_list: str = "intel impi gsl hdf5 fftw3"
    editor: str = "vim"
    code_dir: str = "code"
    code_tar: Optional[str] = None
    template_config_file: str = "Template_Config.sh"
    template_params_file: str = "Template_params.txt"
    shell_setup: Tuple[str, ...] = ()

    @classmethod
    def resolve(
        cls,
        flags: Mapping[str, Any],
        environ: Optional[Mapping[str, str]] = None,
        user_config: Optional[Mapping[str, Any]] = None,
    ) -> "RunConfig":
        """Merge defaults, user config, environment and flags into a
        validated RunConfig.

        Parameters
        ----------
        flags : Mapping[str, Any]
            Command-line values keyed by field name. ``None`` means the flag
            was not given.
        environ : Mapping[str, str], optional
            Environment to read ``GIZMO_*`` variables from. Defaults to
            ``os.environ``.
        user_config : Mapping[str, Any], optional
            Contents of the user config file.
        """
        if environ is None:
            environ = os.environ

        values: Dict[str, Any] = {}
        for key, value in (user_config or {}).items():
            key = USER_CONFIG_ALIASES.get(key, key)
            if key == SHELL_SETUP_KEY:
                values[key] = parse_shell_setup(value)
                continue
            if key not in ENV_VARS:
                logging.warning(f"Ignoring unknown user config key '{key}'")
                continue
            if isinstance(value, (list, tuple)):
                value = " ".join(str(v) for v in value)
            values[key] = None if value is None else str(value)

        # Empty variables count as unset, like ${VAR:-default} in a shell
        for key, var in ENV_VARS.items():
            if environ.get(var):
                values[key] = environ[var]

        for key, value in flags.items():
            if value is not None:
                values[key] = value

        run_dir = Path(values.pop("run_dir", None) or Path.cwd())
        values["run_dir"] = run_dir.expanduser().resolve()
        values["job_name_set"] = flags.get("job_name") is not None

        config = cls(**values)
        config.validate()

        if not config.job_name_set and config.num_nodes > 0:
            config = config.with_job_name(
                f"{DEFAULT_JOB_NAME}_{config.run_dir.name}"
            )
        return config

    def validate(self) -> None:
        """Reject inconsistent settings before anything touches the disk"""
        if self.threads_per_process < 1:
            raise ConfigurationError(
                "Number of threads per process must be at least 1"
            )
        if self.num_processes < 1:
            raise ConfigurationError("Number of processes must be at least 1")
        if self.num_nodes < 0:
            raise ConfigurationError("Number of nodes cannot be negative")
        if self.num_nodes > 0 and self.num_processes % self.num_nodes != 0:
            raise ConfigurationError(
                f"Number of processes ({self.num_processes}) must be evenly "
                f"divisible by number of nodes ({self.num_nodes})"
            )
        if self.restart not in (0, 1, 2):
            raise ConfigurationError(f"Invalid restart flag: {self.restart}")

    def with_job_name(self, job_name: str) -> "RunConfig":
        return replace(self, job_name=job_name)

    @property
    def processes_per_node(self) -> int:
        if self.num_nodes == 0:
            return self.num_processes
        return self.num_processes // self.num_nodes

    @property
    def modules(self) -> List[str]:
        return self.module_list.split()

    @property
    def code_path(self) -> Path:
        return self.run_dir / self.code_dir

    @property
    def config_path(self) -> Path:
        return self.code_path / self.config_file

    @property
    def template_config_path(self) -> Path:
        return self.code_path / self.template_config_file

    @property
    def param_path(self) -> Path:
        return self.run_dir / self.param_file

    @property
    def template_params_path(self) -> Path:
        return self.code_path / self.template_params_file

    @property
    def exec_path(self) -> Path:
        return self.code_path / self.exec_file

    @property
    def batch_path(self) -> Path:
        return self.run_dir / f"submit_{self.job_name}.sh"

    @property
    def stdout_path(self) -> Path:
        return self.run_dir / f"{self.job_name}.out"

    @property
    def stderr_path(self) -> Path:
        return self.run_dir / f"{self.job_name}.err"
