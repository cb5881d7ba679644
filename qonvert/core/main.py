"""
Main conversion orchestration module for qonvert.

This module coordinates the batch workflow using modular components:
- Input discovery and output path derivation
- Frame counting with the probe pool
- Parallel conversion with the worker pool
- Progress display and the final summary
"""

import argparse
import os
from pathlib import Path
from typing import List, Optional

from ..config import get_config
from ..utils.logging import get_logger, set_debug_mode, set_quiet_mode
from .modules.analysis.media_utils import read_frame_counts
from .modules.config.encoder_config import EncoderConfig
from .modules.errors import PathResolutionError
from .modules.interface.user_interface import (
    ProgressRenderer, ResultAggregator, RunSummary, report_summary
)
from .modules.processing.file_manager import build_jobs, resolve_input_paths
from .modules.processing.job_processor import ParallelTranscoder

logger = get_logger("main")

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_BAD_PATHS = 2
EXIT_USAGE = 2


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser(config: Optional[dict] = None) -> argparse.ArgumentParser:
    config = config if config is not None else get_config()

    ap = argparse.ArgumentParser(prog="qonvert", description="A tiny CLI for batch video conversion")
    ap.add_argument("inputs", nargs="+", help="Files to convert, or a single directory of files")
    ap.add_argument("-o", "--output-path", default=os.getcwd(),
                    help="Directory for the converted files (default: current directory)")
    ap.add_argument("-t", "--output-type", default="",
                    help="Output file extension, e.g. mp4 (default: keep the input extension)")
    ap.add_argument("-c", "--codec", default=None,
                    help="ffmpeg video codec to use (default: libx265 for mp4, else ffmpeg's choice)")
    # string defaults pass through the type check like command line values
    ap.add_argument("-l", "--limit", type=_positive_int, default=str(config['limit']),
                    help="Number of concurrent ffmpeg processes (default: %(default)s)")
    ap.add_argument("--probe-workers", type=_positive_int, default=str(config['probe_workers']),
                    help="Number of concurrent ffprobe processes (default: %(default)s)")
    ap.add_argument("--ffmpeg", default=config['ffmpeg'], help="ffmpeg binary (default: %(default)s)")
    ap.add_argument("--ffprobe", default=config['ffprobe'], help="ffprobe binary (default: %(default)s)")
    ap.add_argument("--debug", action="store_true", default=config['debug'],
                    help="Show commands and progress channel diagnostics")
    ap.add_argument("--quiet", action="store_true", help="Only print warnings, errors and no progress bars")
    return ap


def run_batch(args: argparse.Namespace) -> RunSummary:
    """Resolve, probe and convert everything named by *args*."""
    output_dir = Path(args.output_path).expanduser().absolute()
    inputs = resolve_input_paths(args.inputs)
    jobs = build_jobs(output_dir, inputs, args.output_type)

    encoder = EncoderConfig.for_output_type(args.output_type, args.codec, ffmpeg=args.ffmpeg)
    if encoder.codec:
        logger.info(f"Converting file(s) with {encoder.codec}")
    else:
        logger.info("Converting file(s) with ffmpeg's default codec")

    aggregator = ResultAggregator(ProgressRenderer(output_dir, disable=args.quiet))

    sized = read_frame_counts(jobs, args.probe_workers, ffprobe=args.ffprobe,
                              on_failure=aggregator.record_skipped)
    logger.info(f"transcoding {len(sized)} items")

    aggregator.add_jobs(sized)
    transcoder = ParallelTranscoder(args.limit, encoder)
    return aggregator.consume(transcoder.stream(sized))


def main(argv: Optional[List[str]] = None) -> int:
    try:
        config = get_config()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_USAGE

    args = build_parser(config).parse_args(argv)
    set_debug_mode(args.debug)
    set_quiet_mode(args.quiet)

    try:
        summary = run_batch(args)
    except PathResolutionError as e:
        logger.error(e.message)
        return EXIT_BAD_PATHS

    report_summary(summary)
    return EXIT_OK if summary.ok else EXIT_FAILURES
