"""
One-time setup for giz.

Writes the user config file read by every giz run, with the GIZMO system
type and the modules to load on that system. Run it once per machine;
it refuses to overwrite an existing setup unless --force is given.

Usage:
    giz-setup Frontera
    giz-setup Frontera --fftw-version 2 --account TG-AST000000
    giz-setup MySystem --module-list "gcc openmpi gsl hdf5 fftw3"
"""

import logging
from pathlib import Path

import click

from giz.user_config import (SYSTEM_PRESETS, build_user_config,
                             save_user_config, user_config_path)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("systype")
@click.option("--fftw-version", type=click.Choice(["2", "3"]), default="3",
              show_default=True, help="FFTW major version to load.")
@click.option("--module-list", "-m", type=str,
              help="Modules to load (required for system types without a preset).")
@click.option("--editor", "-e", type=str, help="Editor for config and parameter files.")
@click.option("--account", "-A", type=str, help="Default Slurm allocation.")
@click.option("--partition", "-P", type=str, help="Default Slurm partition.")
@click.option("--config-path", type=click.Path(dir_okay=False, path_type=Path),
              help="Where to write the config (default: $GIZ_CONFIG or "
                   "~/.config/giz/config.yaml).")
@click.option("--force", is_flag=True, help="Overwrite an existing setup.")
def main(
    systype: str,
    fftw_version: str,
    module_list: str,
    editor: str,
    account: str,
    partition: str,
    config_path: Path,
    force: bool,
):
    """Set up giz for the GIZMO system type SYSTYPE (e.g. Frontera)."""
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    logging.info(f"Using GIZMO system type: {systype}")

    path = config_path or user_config_path()
    user_config = build_user_config(
        systype,
        fftw_version=int(fftw_version),
        module_list=module_list,
        editor=editor,
        account=account,
        partition=partition,
    )
    save_user_config(path, user_config, force=force)

    tip = SYSTEM_PRESETS.get(systype, {}).get("tip")
    if tip:
        logging.info(f"Tips for GIZMO on {systype}: {tip}")
    click.echo(f"Setup complete. Modules: {user_config['module_list'] or '(none)'}")


if __name__ == "__main__":
    main()
