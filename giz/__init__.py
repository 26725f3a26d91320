from .RunConfig import RunConfig
from .Launcher import Launcher, LAUNCHERS, find_launcher
from .BatchJob import BatchJob
from .RunOrchestrator import RunOrchestrator
from .errors import (ConfigurationError, ExternalCommandError, GizError,
                     PreconditionError)
