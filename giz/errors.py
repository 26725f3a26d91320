"""errors.py
Exceptions raised by the giz pipeline. All of them are click exceptions,
so the CLI reports them as ``Error: <message>`` and exits non-zero.
"""

from typing import List, Optional

import click


class GizError(click.ClickException):
    """Base class for every fatal giz error"""
    exit_code = 1


class ConfigurationError(GizError):
    """Invalid combination of options (e.g. uneven processes per node)"""
    exit_code = 2


class PreconditionError(GizError):
    """A required file, directory, tool or setting is missing"""


class ExternalCommandError(GizError):
    """An external command (git, make, sbatch, launcher) failed"""

    def __init__(self, message: str, cmd: Optional[List[str]] = None,
                 returncode: Optional[int] = None):
        super().__init__(message)
        self.cmd = cmd
        self.returncode = returncode
