"""
Media utilities for qonvert.

This module provides the ffprobe side of the pipeline:
- Frame counting for a single input via packet counting
- A bounded probe pool that sizes a batch of jobs concurrently
"""

import concurrent.futures
import re
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..errors import ProbeFailure
from ..models import Job, SizedJob
from ..system.system_utils import run_command
from ....utils.logging import get_logger

logger = get_logger("media_utils")

_FRAME_COUNT_RE = re.compile(r"[0-9]+")


def build_probe_cmd(input_file: Path, ffprobe: str = "ffprobe") -> List[str]:
    """Build the ffprobe command that prints the packet count of the first video stream."""
    return [
        ffprobe, "-v", "error",
        # TODO: count audio-only inputs too; they currently fail the probe and get skipped
        "-select_streams", "v:0",
        "-count_packets",
        "-show_entries", "stream=nb_read_packets",
        "-of", "csv=p=0",
        str(input_file),
    ]


def read_frame_count(input_file: Path, ffprobe: str = "ffprobe") -> int:
    """
    Count the frames of the first video stream of *input_file*.

    Raises:
        ProbeFailure: ffprobe could not run, exited non-zero, or did not print
            a single unsigned integer.
    """
    cmd = build_probe_cmd(input_file, ffprobe)
    try:
        result = run_command(cmd)
    except (OSError, subprocess.SubprocessError) as e:
        raise ProbeFailure(input_file, f"could not run ffprobe: {e}", command=cmd) from e

    if result.returncode != 0:
        raise ProbeFailure(
            input_file,
            f"ffprobe exited with status {result.returncode}",
            command=cmd,
            output=(result.stderr or "").strip(),
        )

    output = (result.stdout or "").strip()
    if not _FRAME_COUNT_RE.fullmatch(output):
        raise ProbeFailure(input_file, f"unexpected ffprobe output: {output!r}",
                           command=cmd, output=output)

    return int(output)


def _probe_job(job: Job, ffprobe: str) -> Union[SizedJob, ProbeFailure]:
    try:
        frames = read_frame_count(job.input_path, ffprobe)
    except ProbeFailure as failure:
        return failure
    return SizedJob(job=job, total_units=frames)


def read_frame_counts(jobs: List[Job], workers: int, ffprobe: str = "ffprobe",
                      on_failure: Optional[Callable[[Job, ProbeFailure], None]] = None) -> List[SizedJob]:
    """
    Probe *jobs* with at most *workers* concurrent ffprobe processes.

    Returns a SizedJob for every job whose probe succeeded, in completion
    order. A failed probe produces exactly one failure, reported through
    *on_failure*, and no SizedJob.
    """
    if not jobs:
        return []
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")

    sized: List[SizedJob] = []
    with concurrent.futures.ThreadPoolExecutor(max_workers=min(workers, len(jobs)),
                                               thread_name_prefix="probe") as executor:
        future_to_job = {executor.submit(_probe_job, job, ffprobe): job for job in jobs}

        for future in concurrent.futures.as_completed(future_to_job):
            job = future_to_job[future]
            outcome = future.result()
            if isinstance(outcome, ProbeFailure):
                logger.warn(f"Skipping {job.input_path.name}: {outcome.message}")
                if on_failure:
                    on_failure(job, outcome)
                continue

            logger.probe(f"{job.input_path.name}: {outcome.total_units} frames")
            sized.append(outcome)

    return sized
