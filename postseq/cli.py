"""Command-line interface for postseq."""

import argparse
import datetime
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .config import PipelineConfig, load_config
from .notify import EmailNotifier
from .pipeline import run_alignment_pipeline, run_nbase_metrics
from .pipeline_core.context import PipelineMode
from .pipeline_core.error_handling import (
    PipelineError,
    validate_file_exists,
    validate_output_directory,
)
from .scheduler import SchedulerJob
from .version import __version__

logger = logging.getLogger("postseq")

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


def create_parser() -> argparse.ArgumentParser:
    """Create and return the argument parser for the postseq CLI."""
    parser = argparse.ArgumentParser(
        description="postseq: Post-sequencing alignment finishing and read quality metrics."
    )

    # General Options
    general_group = parser.add_argument_group("General Options")
    general_group.add_argument(
        "--version",
        action="version",
        version=f"postseq {__version__}",
        help="Show the current version and exit",
    )
    general_group.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARN", "ERROR"],
        default="INFO",
        help="Set the logging level",
    )
    general_group.add_argument(
        "--log-file", help="Path to a file to write logs to (in addition to stderr)."
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # align
    align_parser = subparsers.add_parser(
        "align", help="Sort, fix, mark duplicates and compute stats for an aligned SAM file"
    )
    align_parser.add_argument("sam_file", help="SAM file produced by the aligner")
    align_parser.add_argument("final_bam", help="Path of the final duplicate-marked BAM")
    align_parser.add_argument("barcode", help="Flowcell/lane barcode")
    layout = align_parser.add_mutually_exclusive_group(required=True)
    layout.add_argument(
        "--fragment", dest="is_fragment", action="store_true", help="Fragment (single-end) lane"
    )
    layout.add_argument(
        "--paired", dest="is_fragment", action="store_false", help="Paired-end lane"
    )
    align_parser.add_argument("-c", "--config", help="Path to configuration file", default=None)
    align_parser.add_argument(
        "--output-dir", help="Directory for stats and tool logs (default: next to final BAM)"
    )
    align_parser.add_argument(
        "--stage-timeout",
        type=float,
        help="Kill a stage that runs longer than this many seconds",
    )
    align_parser.add_argument(
        "--no-notify",
        action="store_true",
        default=False,
        help="Do not email error recipients when a stage fails",
    )

    # nbase
    nbase_parser = subparsers.add_parser(
        "nbase", help="Distribution of undetermined (N) bases per base position"
    )
    nbase_parser.add_argument("read1", help="FASTQ file with read 1 (optionally .gz)")
    nbase_parser.add_argument("read2", nargs="?", help="FASTQ file with read 2 (paired-end)")
    nbase_parser.add_argument("-c", "--config", help="Path to configuration file", default=None)
    nbase_parser.add_argument(
        "--threshold",
        type=float,
        help="Fraction of N bases at which a read counts as bad (default from config: 0.15)",
    )
    nbase_parser.add_argument("--output-dir", default=".", help="Directory for the report files")
    nbase_parser.add_argument(
        "--no-plot", action="store_true", default=False, help="Do not render the PNG plot"
    )

    # submit
    submit_parser = subparsers.add_parser(
        "submit",
        help="Submit a command to the LSF scheduler",
        usage="postseq submit NAME [--memory MB] [--cores N] [--queue QUEUE] -- COMMAND...",
    )
    submit_parser.add_argument("name", help="Job name")
    submit_parser.add_argument("--memory", type=int, default=8000, help="Memory in MB")
    submit_parser.add_argument("--cores", type=int, default=1, help="Cores per node")
    submit_parser.add_argument("--queue", help="Scheduler queue")

    return parser


def _configure_logging(args: argparse.Namespace) -> None:
    logging.getLogger("postseq").setLevel(LOG_LEVEL_MAP[args.log_level])

    if args.log_file:
        log_file_path = Path(args.log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        fh = logging.FileHandler(args.log_file)
        fh.setLevel(LOG_LEVEL_MAP[args.log_level])
        fh.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        logger.addHandler(fh)
        logger.debug(f"Logging to file enabled: {args.log_file}")


def _build_config(args: argparse.Namespace) -> PipelineConfig:
    """Load the config file, apply CLI overrides and validate once."""
    cfg: Dict[str, Any] = load_config(args.config)
    if getattr(args, "stage_timeout", None) is not None:
        cfg["stage_timeout"] = args.stage_timeout
    if getattr(args, "threshold", None) is not None:
        cfg["nbase_threshold"] = args.threshold
    logger.debug(f"Configuration loaded: {cfg}")
    return PipelineConfig.from_dict(cfg)


def _run_align(args: argparse.Namespace) -> int:
    config = _build_config(args)
    validate_file_exists(args.sam_file, "align")
    output_dir = args.output_dir or str(Path(args.final_bam).parent)
    validate_output_directory(output_dir, "align")

    notifier = None if args.no_notify else EmailNotifier(config.smtp_host)
    run_alignment_pipeline(
        config,
        args.sam_file,
        args.final_bam,
        args.barcode,
        PipelineMode.from_flag(args.is_fragment),
        output_dir=output_dir,
        notifier=notifier,
    )
    return 0


def _run_nbase(args: argparse.Namespace) -> int:
    config = _build_config(args)
    validate_file_exists(args.read1, "nbase")
    if args.read2:
        validate_file_exists(args.read2, "nbase")
    validate_output_directory(args.output_dir, "nbase")

    results = run_nbase_metrics(
        config, args.read1, args.read2, output_dir=args.output_dir, plot=not args.no_plot
    )
    for result in results:
        for key, value in result.facts.items():
            print(f"{result.name}\t{key}\t{value}")
    return 0


def split_job_command(argv: List[str]) -> Tuple[List[str], List[str]]:
    """Split a submit command line at the first ``--``.

    Everything after the separator is the job command and is never parsed
    as postseq options. Other subcommands are returned unchanged.
    """
    if "submit" not in argv or "--" not in argv:
        return argv, []
    separator = argv.index("--")
    if argv.index("submit") > separator:
        return argv, []
    return argv[:separator], argv[separator + 1 :]


def _run_submit(args: argparse.Namespace) -> int:
    command = args.job_command
    if not command:
        logger.error("No command given to submit")
        return 1
    job = SchedulerJob(
        args.name, " ".join(command), memory_mb=args.memory, cores=args.cores, queue=args.queue
    )
    print(job.submit())
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Run main entry point for the postseq CLI.

    Steps:
        1. Parse arguments.
        2. Configure logging.
        3. Load and validate configuration.
        4. Validate input files.
        5. Run the requested command.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    parser = create_parser()
    argv, job_command = split_job_command(list(sys.argv[1:] if argv is None else argv))
    args = parser.parse_args(argv)
    args.job_command = job_command
    _configure_logging(args)

    start_time = datetime.datetime.now()
    logger.info(f"Run started at {start_time.isoformat()}")
    logger.debug(f"CLI arguments: {args}")

    handlers = {"align": _run_align, "nbase": _run_nbase, "submit": _run_submit}
    try:
        return handlers[args.command](args)
    except PipelineError as e:
        logger.error(f"Pipeline failed: {e}")
        return 1
    except (FileNotFoundError, PermissionError, ValueError) as e:
        logger.error(f"{e}")
        return 1
    finally:
        elapsed = datetime.datetime.now() - start_time
        logger.info(f"Run finished after {elapsed.total_seconds():.1f}s")


if __name__ == "__main__":
    sys.exit(main())
