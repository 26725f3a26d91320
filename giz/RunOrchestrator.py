import datetime
import logging
import shlex
import shutil
from typing import Callable, Optional

import click

from .BatchJob import BatchJob
from .Launcher import Launcher, find_launcher
from .RunConfig import RunConfig
from .errors import ExternalCommandError, PreconditionError
from .file_utils import edit_file, ensure_file
from .process_utils import (child_env, is_executable, module_search_path,
                            module_system_available, run_command, run_make,
                            with_modules)
from .source_utils import acquire_source


class RunOrchestrator:
    """Runs the giz pipeline for one RunConfig.

    Stages run strictly in order and the first failure aborts the run:
    source -> build config -> build -> parameter file -> launch.
    The build config and build stages are skipped together when
    ``config.skip_make`` is set. Files created by earlier runs are reused.
    """

    def __init__(
        self,
        config: RunConfig,
        confirm: Optional[Callable[..., bool]] = None,
        which: Optional[Callable[..., Optional[str]]] = None,
    ):
        self.config = config
        self.confirm = confirm or click.confirm
        self.which = which or shutil.which
        self.start_time = datetime.datetime.now()

    def run(self) -> Optional[BatchJob]:
        """Run every stage; return the batch job when one was written"""
        self.describe_environment()
        self.acquire_source()
        if self.config.skip_make:
            logging.info("Skipping compilation ...")
        else:
            self.configure_build()
            self.build()
        self.configure_params()
        job = self.launch()

        elapsed = datetime.datetime.now() - self.start_time
        elapsed_rounded = datetime.timedelta(
            seconds=round(elapsed.total_seconds())
        )
        logging.info(f"Done in {elapsed_rounded}")
        return job

    def describe_environment(self) -> None:
        if module_system_available() and self.config.modules:
            logging.info(
                f"Module system available, loading: {self.config.module_list}"
            )
        else:
            logging.info(
                "No module system found, assuming you have already "
                "installed the relevant packages"
            )

    def acquire_source(self) -> str:
        return acquire_source(self.config, confirm=self.confirm)

    def configure_build(self) -> None:
        ensure_file(self.config.config_path, self.config.template_config_path)
        edit_file(self.config.config_path, self.config.editor)

    def build(self) -> None:
        run_make(self.config)

    def configure_params(self) -> None:
        ensure_file(self.config.param_path, self.config.template_params_path)
        edit_file(self.config.param_path, self.config.editor)

    def launch(self) -> Optional[BatchJob]:
        """Queue the run when nodes were requested, else run it here"""
        exec_path = self.config.exec_path
        if not is_executable(exec_path):
            raise PreconditionError(f"GIZMO executable not found: {exec_path}")

        launcher = find_launcher(self.launcher_which())
        if self.config.num_nodes > 0:
            return self.queue(launcher)
        self.run_locally(launcher)
        return None

    def launcher_which(self) -> Callable[[str], Optional[str]]:
        """Look launchers up on the PATH the loaded modules provide.

        Launchers such as mpirun often only appear after ``module load``.
        """
        if not (module_system_available() and self.config.modules):
            return self.which
        search_path = module_search_path(self.config.modules)
        if search_path is None:
            return self.which
        logging.debug(f"Launcher search path after module load: {search_path}")
        return lambda name: self.which(name, path=search_path)

    def queue(self, launcher: Launcher) -> BatchJob:
        logging.info("Making slurm batch script ...")
        job = BatchJob(self.config, launcher)
        job.write()
        if self.confirm(f"Submit {job.path.name} to the queue now?", default=True):
            job.submit()
        else:
            logging.info(f"Not submitted. Submit it later with: sbatch {job.path}")
        return job

    def run_locally(self, launcher: Launcher) -> None:
        config = self.config
        cmd = launcher.command(
            config.num_processes, config.exec_path,
            config.param_file, config.restart,
        )
        logging.info("Running GIZMO ...")
        logging.info(shlex.join(cmd))
        with open(config.stdout_path, "w") as out, \
                open(config.stderr_path, "w") as err:
            result = run_command(
                with_modules(cmd, config.modules,
                             shell_setup=config.shell_setup),
                cwd=config.run_dir,
                env=child_env(config),
                stdout=out,
                stderr=err,
            )
        if result.returncode != 0:
            logging.error(f"GIZMO exited with status {result.returncode}")
            raise ExternalCommandError(
                f"GIZMO run failed, see {config.stderr_path}",
                cmd=cmd, returncode=result.returncode,
            )
        logging.info(f"GIZMO output written to {config.stdout_path}")
