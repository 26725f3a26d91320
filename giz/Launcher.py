"""Launcher.py
MPI launcher detection. Launchers are tried in a fixed priority order:
site-specific job launchers first, generic MPI launchers last.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .errors import PreconditionError


@dataclass(frozen=True)
class Launcher:
    """An MPI launcher and its flag for the number of processes"""
    name: str
    np_flag: str = "-n"

    def command(self, num_processes: int, exec_path: Path,
                param_file: str, restart: int) -> List[str]:
        """Build the launch argv for the GIZMO executable"""
        return [
            self.name, self.np_flag, str(num_processes),
            str(exec_path), param_file, str(restart),
        ]


LAUNCHERS = (
    Launcher("ibrun"),
    Launcher("aprun"),
    Launcher("srun"),
    Launcher("mpirun", "-np"),
    Launcher("mpiexec"),
)


def find_launcher(
    which: Callable[[str], Optional[str]] = shutil.which,
    launchers: Sequence[Launcher] = LAUNCHERS,
) -> Launcher:
    """Return the first launcher available on this host"""
    for launcher in launchers:
        if which(launcher.name):
            logging.info(f"Using {launcher.name} for MPI launch")
            return launcher
    names = "/".join(launcher.name for launcher in launchers)
    raise PreconditionError(f"No MPI launcher found ({names})")
