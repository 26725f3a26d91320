"""
giz: one command for the GIZMO workflow.

This script handles the end-to-end process of:
1. Preparing the GIZMO source code directory in the run directory
   (reuse, extract an archive, copy $GIZMO_SOURCE or clone the repository)
2. Creating and editing the build configuration file (Config.sh)
3. Compiling GIZMO
4. Creating and editing the runtime parameter file (params.txt)
5. Running GIZMO locally through an MPI launcher, or writing and
   submitting a Slurm batch script when nodes are requested

File structure:

             run directory (-d)
          /         |           \\
        code   params.txt (-p)   output
       /    \\
 GIZMO (-g)  Config.sh (-c)

Usage:
    giz                                # standard call in a run directory
    giz -s                             # skip compilation
    giz -r                             # restart from restart files
    giz -N 1 -n 8 -T 7 -t 12:00:00     # queue on 1 node, 8 MPI processes
"""

import datetime
import logging
from pathlib import Path

import click

from giz.RunConfig import RunConfig
from giz.RunOrchestrator import RunOrchestrator
from giz.errors import GizError
from giz.log_utils import FILE_ONLY, setup_logging
from giz.user_config import load_user_config, user_config_path

LOG_FILE_NAME = "giz.log"

ENVIRONMENT_HELP = """\b
Environment variables (or keys in the giz-setup user config):
  GIZMO_SYSTYPE               GIZMO system type, required when cloning
  GIZMO_MODULE_LIST           modules to load (default: intel impi gsl hdf5 fftw3)
  GIZMO_SOURCE                preexisting GIZMO source directory to copy from
  GIZMO_EDITOR                editor for config and parameter files (default: vim)
  GIZMO_CODE_DIR              source code subdirectory (default: code)
  GIZMO_CODE_TAR              source archive (default: code.tar, .tar.gz, ...)
  GIZMO_TEMPLATE_CONFIG_FILE  config template (default: Template_Config.sh)
  GIZMO_TEMPLATE_PARAMS_FILE  parameter template (default: Template_params.txt)
  GIZMO_ACCOUNT               Slurm allocation to charge
  GIZMO_PARTITION             Slurm partition
  GIZ_CONFIG                  user config file (default: ~/.config/giz/config.yaml)

\b
GIZMO documentation (for Config.sh, params.txt and SYSTYPE):
  http://www.tapir.caltech.edu/~phopkins/Site/GIZMO_files/gizmo_documentation.html
"""


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=ENVIRONMENT_HELP,
)
@click.option("--skip-make", "-s", is_flag=True, help="Skip compilation.")
@click.option("--restart", "-r", is_flag=True,
              help="Run from restart files (GIZMO restart flag 1).")
@click.option("--restart-from-snapshot", "-R", is_flag=True,
              help="Run from a snapshot (GIZMO restart flag 2).")
@click.option("--run-dir", "-d",
              type=click.Path(file_okay=False, path_type=Path),
              help="Run directory (default: current directory).")
@click.option("--config", "-c", "config_file", type=str,
              help="Configuration filename (default: Config.sh).")
@click.option("--exec", "-g", "exec_file", type=str,
              help="Executable filename (default: GIZMO).")
@click.option("--params", "-p", "param_file", type=str,
              help="Parameter filename (default: params.txt).")
@click.option("--threads-per-process", "--cpus-per-task", "-T",
              type=click.IntRange(min=1),
              help="Threads per MPI process (default: 1).")
@click.option("--num-nodes", "--nodes", "-N", type=click.IntRange(min=0),
              help="Nodes to run on (default: 0 = run here, no slurm queue).")
@click.option("--num-processes", "--ntasks", "-n", "-np",
              type=click.IntRange(min=1),
              help="Number of MPI processes (default: 1).")
@click.option("--time", "-t", "job_time", type=str,
              help="Slurm job time limit, D-HH:MM:SS (default: 2-00:00:00).")
@click.option("--job-name", "-j", type=str,
              help="Job name (default: gizmo, or gizmo_<run dir> when queued).")
@click.option("--partition", "-P", type=str, help="Slurm partition.")
@click.option("--allocation", "--account", "-A", type=str,
              help="Slurm allocation to charge.")
def main(
    skip_make: bool,
    restart: bool,
    restart_from_snapshot: bool,
    run_dir: Path,
    config_file: str,
    exec_file: str,
    param_file: str,
    threads_per_process: int,
    num_nodes: int,
    num_processes: int,
    job_time: str,
    job_name: str,
    partition: str,
    allocation: str,
):
    """GIZ: one GIZMO command to rule them all.

    Prepares the GIZMO source code, lets you edit Config.sh, compiles
    GIZMO, lets you edit params.txt and runs GIZMO locally or queues it
    with Slurm (-N > 0).
    """
    if restart and restart_from_snapshot:
        raise click.UsageError(
            "--restart and --restart-from-snapshot cannot be combined"
        )
    restart_flag = None
    if restart:
        restart_flag = 1
    elif restart_from_snapshot:
        restart_flag = 2

    # Resolve and validate everything before touching the disk
    run_config = RunConfig.resolve(
        flags={
            "run_dir": run_dir,
            "config_file": config_file,
            "exec_file": exec_file,
            "param_file": param_file,
            "skip_make": skip_make,
            "restart": restart_flag,
            "threads_per_process": threads_per_process,
            "num_nodes": num_nodes,
            "num_processes": num_processes,
            "job_time": job_time,
            "job_name": job_name,
            "partition": partition,
            "allocation": allocation,
        },
        user_config=load_user_config(user_config_path()),
    )

    start_time = datetime.datetime.now()
    run_config.run_dir.mkdir(parents=True, exist_ok=True)
    setup_logging(run_config.run_dir / LOG_FILE_NAME)

    logging.info("****************************************"
                 "****************************************")
    logging.info(f"Starting giz at {start_time}.")
    logging.info(f"Using {run_config.run_dir} as run directory")
    if run_config.num_nodes > 0 and not run_config.job_name_set:
        logging.info(f"No job name set, using '{run_config.job_name}'")

    orchestrator = RunOrchestrator(run_config)
    try:
        orchestrator.run()
    except GizError as e:
        # click prints the message itself
        logging.error(e.message, extra=FILE_ONLY)
        raise


if __name__ == "__main__":
    main()
