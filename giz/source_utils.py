"""source_utils.py
Acquiring the GIZMO source directory inside the run directory.

The first applicable strategy wins:
1. reuse an existing source directory
2. extract a local archive of it
3. copy a preinstalled source tree (GIZMO_SOURCE)
4. clone the private or public repository
"""

import logging
import shutil
import tarfile
from pathlib import Path
from typing import Callable, List, Optional

import click
from tqdm import tqdm

from .RunConfig import RunConfig
from .errors import ExternalCommandError, PreconditionError
from .process_utils import run_command

PRIVATE_REMOTE = "https://bitbucket.org/phopkins/gizmo.git"
PUBLIC_REMOTES = (
    "https://bitbucket.org/phopkins/gizmo-public.git",
    "https://github.com/pfhopkins/gizmo-public.git",
)

# Archive suffix -> tarfile read mode
ARCHIVE_MODES = {
    ".tar": "r:",
    ".tar.gz": "r:gz",
    ".tgz": "r:gz",
    ".tar.bz2": "r:bz2",
    ".tbz2": "r:bz2",
    ".tar.xz": "r:xz",
    ".txz": "r:xz",
}


def archive_mode(archive: Path) -> str:
    """Pick the decompression mode from the archive's file extension"""
    # Longest suffix first so ".tar.gz" is not mistaken for ".gz"
    for suffix in sorted(ARCHIVE_MODES, key=len, reverse=True):
        if archive.name.endswith(suffix):
            return ARCHIVE_MODES[suffix]
    raise PreconditionError(f"Unsupported archive format: {archive.name}")


def find_archives(config: RunConfig) -> List[Path]:
    """List the source archives present in the run directory"""
    if config.code_tar:
        names = [config.code_tar]
    else:
        names = [config.code_dir + suffix for suffix in ARCHIVE_MODES]
    return [config.run_dir / name for name in names
            if (config.run_dir / name).is_file()]


def extract_archive(archive: Path, dest_dir: Path) -> None:
    mode = archive_mode(archive)
    logging.info(f"Extracting {archive.name} ...")
    # Only extract regular files and directories inside dest_dir
    extract_kwargs = {"filter": "data"} if hasattr(tarfile, "data_filter") else {}
    try:
        with tarfile.open(archive, mode) as tar:
            # extractall sets directory modes after the files are written
            members = tqdm(tar.getmembers(), desc=archive.name, unit="file")
            tar.extractall(dest_dir, members=members, **extract_kwargs)
    except (tarfile.TarError, OSError) as e:
        logging.error(f"Error extracting {archive}: {e}")
        raise PreconditionError(f"Could not extract {archive.name}: {e}") from e


def clone(remote: str, dest: Path) -> bool:
    """Clone ``remote`` into ``dest``; return whether it succeeded"""
    result = run_command(["git", "clone", remote, str(dest)], cwd=dest.parent)
    return result.returncode == 0


def clone_source(config: RunConfig, private: bool) -> None:
    if private:
        logging.info("Cloning private GIZMO repository (bitbucket) ...")
        if not clone(PRIVATE_REMOTE, config.code_path):
            raise ExternalCommandError(
                f"Failed to clone private repository {PRIVATE_REMOTE}"
            )
        return

    primary, fallback = PUBLIC_REMOTES
    logging.info("Cloning public GIZMO repository (bitbucket) ...")
    if clone(primary, config.code_path):
        logging.info("Successfully cloned GIZMO from bitbucket")
        return
    logging.warning("Bitbucket clone failed, falling back to github ...")
    if clone(fallback, config.code_path):
        logging.info("Successfully cloned GIZMO from github")
        return
    raise ExternalCommandError("Failed to clone from both bitbucket and github")


def set_systype(code_path: Path, systype: str) -> None:
    """Append the SYSTYPE marker that GIZMO's Makefile requires"""
    systype_file = code_path / "Makefile.systype"
    with open(systype_file, "a") as f:
        f.write(f'\nSYSTYPE="{systype}"\n')
    logging.info(f"Set system type to {systype} in {systype_file}")


def acquire_source(
    config: RunConfig,
    confirm: Optional[Callable[..., bool]] = None,
) -> str:
    """Ensure ``config.code_path`` exists.

    Returns
    -------
    str
        The strategy used: "existing", "archive", "copy" or "clone".
    """
    code_path = config.code_path
    if code_path.is_dir():
        logging.info(f"Using existing source directory {code_path}")
        return "existing"

    archives = find_archives(config)
    if len(archives) > 1:
        names = ", ".join(a.name for a in archives)
        raise PreconditionError(
            f"Found multiple source archives ({names}); "
            "remove all but one or set GIZMO_CODE_TAR"
        )
    if archives:
        extract_archive(archives[0], config.run_dir)
        if not code_path.is_dir():
            raise PreconditionError(
                f"Extracting {archives[0].name} did not create {code_path}"
            )
        return "archive"

    if config.source:
        source = Path(config.source).expanduser()
        if source.is_dir():
            logging.info(f"Copying source code from GIZMO_SOURCE={source}")
            shutil.copytree(source, code_path, symlinks=True)
            return "copy"
        logging.warning(f"GIZMO_SOURCE={source} is not a directory, ignoring it")

    if config.skip_make:
        raise PreconditionError(
            "There is no source code directory and compilation is turned off, "
            "so there is no executable to run"
        )
    if not config.systype:
        raise PreconditionError(
            "GIZMO_SYSTYPE is not set. Set it in your environment or run "
            "giz-setup before cloning GIZMO"
        )

    logging.info("No local GIZMO source found, cloning repository instead ...")
    if confirm is None:
        confirm = click.confirm
    private = confirm(
        "Do you want to clone the private GIZMO repository "
        "instead of the public one?",
        default=False,
    )
    clone_source(config, private)
    set_systype(code_path, config.systype)
    return "clone"
