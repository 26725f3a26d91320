"""user_config.py
The per-user config file written once by ``giz-setup`` and read by every
``giz`` run. It sits between the built-in defaults and the environment.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigurationError, PreconditionError

DEFAULT_CONFIG_PATH = Path("~/.config/giz/config.yaml")

# Known system types and how to set them up
SYSTEM_PRESETS = {
    "Frontera": {
        "modules": ["intel", "impi", "gsl", "hdf5"],
        "needs_fftw_module": True,
        "shell_setup": ["umask 022", "ulimit -s unlimited"],
        "tip": (
            "Most Frontera nodes have 56 cores, so use n/N (processes per "
            "node) = 56/T (threads per process) = whole number. For small "
            "runs use n/N=28, T=2, medium runs n/N=14, T=4 and very large "
            "runs n/N=7, T=8."
        ),
    },
    "MacBookPro": {
        "modules": [],
        "needs_fftw_module": False,
        "shell_setup": [],
        "tip": "No module system on macOS: install MPI, GSL, FFTW and HDF5 yourself.",
    },
}

FFTW_MODULES = {2: "fftw2", 3: "fftw3"}


def user_config_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    if environ is None:
        environ = os.environ
    return Path(environ.get("GIZ_CONFIG") or DEFAULT_CONFIG_PATH).expanduser()


def load_user_config(path: Path) -> Dict[str, Any]:
    """Load the user config; a missing file is an empty config"""
    if not path.is_file():
        return {}
    try:
        with open(path, "r") as config_file:
            data = yaml.safe_load(config_file)
    except yaml.YAMLError as e:
        logging.error(f"Error parsing YAML in user config {path}: {e}")
        raise ConfigurationError(f"Invalid user config {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"User config {path} must be a YAML mapping")
    return data


def build_user_config(
    systype: str,
    fftw_version: int = 3,
    module_list: Optional[str] = None,
    editor: Optional[str] = None,
    account: Optional[str] = None,
    partition: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the user config for a system type.

    Known system types get their module list from SYSTEM_PRESETS; any other
    system type needs an explicit ``module_list``.
    """
    preset = SYSTEM_PRESETS.get(systype)
    if module_list is None:
        if preset is None:
            known = ", ".join(SYSTEM_PRESETS)
            raise ConfigurationError(
                f"GIZMO system type '{systype}' has no preset ({known}); "
                "pass --module-list to set it up anyway"
            )
        modules = list(preset["modules"])
        if preset["needs_fftw_module"]:
            if fftw_version not in FFTW_MODULES:
                raise ConfigurationError(
                    f"FFTW version '{fftw_version}' not supported"
                )
            modules.append(FFTW_MODULES[fftw_version])
        module_list = " ".join(modules)

    config: Dict[str, Any] = {"systype": systype, "module_list": module_list}
    if preset is not None and preset["shell_setup"]:
        config["shell_setup"] = list(preset["shell_setup"])
    optional = {"editor": editor, "account": account, "partition": partition}
    config.update({key: value for key, value in optional.items() if value})
    return config


def save_user_config(path: Path, config: Mapping[str, Any],
                     force: bool = False) -> None:
    """Write the user config, refusing to replace an existing one"""
    if path.exists() and not force:
        raise PreconditionError(
            f"giz has already been set up ({path} exists). "
            "Use --force to overwrite it."
        )
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(dict(config), f, default_flow_style=False, sort_keys=False)
    logging.info(f"Wrote user config {path}")
