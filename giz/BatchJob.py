import logging
import re
import shlex
from pathlib import Path
from typing import List, Optional

from .Launcher import Launcher
from .RunConfig import RunConfig
from .errors import ExternalCommandError
from .process_utils import run_command

ACCOUNTING_FORMAT = "JobID,JobName,Partition,NNodes,NCPUS,Elapsed,MaxRSS,State"


class BatchJob:
    """A Slurm batch script for one GIZMO run and its submission"""

    def __init__(self, config: RunConfig, launcher: Launcher):
        self._config = config
        self._launcher = launcher
        self._job_id: Optional[str] = None

    @property
    def config(self) -> RunConfig:
        """Get the run configuration (read-only)"""
        return self._config

    @property
    def path(self) -> Path:
        return self._config.batch_path

    @property
    def job_id(self) -> Optional[str]:
        """Get the Slurm job ID once submitted (read-only)"""
        return self._job_id

    def __repr__(self) -> str:
        return f"BatchJob(path={self.path}, job_id={self._job_id})"

    def directives(self) -> List[str]:
        config = self._config
        lines = [f"#SBATCH --job-name={config.job_name}"]
        if config.partition:
            lines.append(f"#SBATCH --partition={config.partition}")
        if config.allocation:
            lines.append(f"#SBATCH --account={config.allocation}")
        lines += [
            f"#SBATCH --nodes={config.num_nodes}",
            f"#SBATCH --ntasks={config.num_processes}",
            f"#SBATCH --ntasks-per-node={config.processes_per_node}",
            f"#SBATCH --cpus-per-task={config.threads_per_process}",
            f"#SBATCH --time={config.job_time}",
        ]
        return lines

    def render(self) -> str:
        """Build the text of the batch script"""
        config = self._config
        launch = shlex.join(self._launcher.command(
            config.num_processes, config.exec_path,
            config.param_file, config.restart,
        ))
        lines = ["#!/bin/bash", *self.directives(), ""]
        lines += [
            f"cd {shlex.quote(str(config.run_dir))}",
            f"export OMP_NUM_THREADS={config.threads_per_process}",
        ]
        lines += list(config.shell_setup)
        if config.modules:
            lines += [
                "module purge",
                f"module load {shlex.join(config.modules)}",
            ]
        lines += [
            "",
            f"echo {shlex.quote(launch)}",
            f"{launch} 1>{shlex.quote(config.stdout_path.name)} "
            f"2>{shlex.quote(config.stderr_path.name)}",
            "",
            f'sacct -j "$SLURM_JOB_ID" --format={ACCOUNTING_FORMAT}',
            "echo done",
        ]
        return "\n".join(lines) + "\n"

    def write(self) -> Path:
        """Write the batch script to the run directory"""
        self.path.write_text(self.render())
        self.path.chmod(0o755)
        logging.info(f"Wrote batch script {self.path}")
        return self.path

    def submit(self) -> Optional[str]:
        """Submit the written batch script with sbatch"""
        cmd = ["sbatch", str(self.path)]
        result = run_command(
            cmd, cwd=self._config.run_dir, capture_output=True, text=True
        )
        if result.returncode != 0:
            logging.error(f"sbatch failed: {result.stderr.strip()}")
            raise ExternalCommandError(
                f"Failed to submit {self.path.name}",
                cmd=cmd, returncode=result.returncode,
            )
        match = re.search(r"Submitted batch job (\d+)", result.stdout)
        if match:
            self._job_id = match.group(1)
        logging.info(result.stdout.strip())
        return self._job_id
