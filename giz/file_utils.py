"""Helpers for the files the user edits: the build configuration file in
the source directory and the runtime parameter file in the run directory."""

import logging
import shutil
from pathlib import Path

import click

from .errors import ExternalCommandError, PreconditionError


def ensure_file(target: Path, template: Path) -> str:
    """Make sure ``target`` exists without ever overwriting it.

    An existing file is left untouched. Otherwise the template is copied
    when available, and a blank file is created when it is not.

    Returns
    -------
    str
        "existing", "template" or "blank", depending on what was done.
    """
    if target.exists():
        if not target.is_file():
            raise PreconditionError(f"{target} exists but is not a file")
        logging.info(f"Found existing {target}")
        return "existing"

    if template.is_file():
        logging.info(f"Making new {target.name} from {template}")
        shutil.copyfile(template, target)
        return "template"

    logging.warning(
        f"No {template.name} template found in {template.parent}, "
        f"making blank {target.name}"
    )
    target.touch(exist_ok=False)
    return "blank"


def edit_file(path: Path, editor: str) -> None:
    """Open ``path`` in the user's editor and block until it exits"""
    logging.info(f"Opening {path} with {editor}")
    try:
        click.edit(filename=str(path), editor=editor)
    except click.ClickException as e:
        logging.error(f"Editor session failed for {path}: {e.message}")
        raise ExternalCommandError(f"Could not edit {path}: {e.message}") from e
