"""
Transcoding engine module for qonvert.

This module runs a single conversion job end to end:
- Opens the job's progress channel
- Spawns ffmpeg with the channel's URL as its progress destination
- Forwards progress events while a waiter thread reaps the process
- Turns the exit status into the job's ExecutionResult
"""

import subprocess
import threading
from typing import Callable, Dict, Optional

from ..config.encoder_config import EncoderConfig
from ..errors import ProcessFailure, SpawnFailure
from ..models import ExecutionResult, ProgressEvent, SizedJob
from ..system.system_utils import quote_command
from .progress_channel import ProgressChannel
from ....utils.logging import get_logger

logger = get_logger("transcoding_engine")

STDERR_TAIL_LINES = 20

ProgressSink = Callable[[ProgressEvent], None]


def _stderr_tail(stderr: Optional[str]) -> str:
    lines = (stderr or "").strip().splitlines()
    return "\n".join(lines[-STDERR_TAIL_LINES:])


def transcode_job(job: SizedJob, encoder: EncoderConfig,
                  on_progress: Optional[ProgressSink] = None,
                  channel_factory: Callable[[SizedJob], ProgressChannel] = ProgressChannel) -> ExecutionResult:
    """
    Convert one job and return its terminal result.

    Progress events are passed to *on_progress* from the calling thread, in
    non-decreasing order, and always before this function returns. Spawn
    failures and non-zero exits are returned as the result's error.
    """
    channel = channel_factory(job)
    try:
        try:
            progress_url = channel.open()
        except OSError as e:
            logger.warn(f"{job.input_path.name}: progress reporting unavailable: {e}")
            progress_url = None

        cmd = encoder.build_encode_cmd(job, progress_url)
        logger.cmd(quote_command(cmd))

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as e:
            logger.debug(f"Spawn failed for {job.input_path.name}: {e}")
            return ExecutionResult(job, SpawnFailure(f"could not start {cmd[0]}: {e}", command=cmd))

        exit_info: Dict[str, object] = {}

        def wait_for_exit():
            try:
                _, stderr = process.communicate()
                exit_info["stderr"] = stderr
            finally:
                channel.stop_accepting()

        waiter = threading.Thread(target=wait_for_exit, name=f"wait-{job.input_path.name}", daemon=True)
        waiter.start()

        if progress_url is not None:
            for event in channel:
                if on_progress is None:
                    continue
                try:
                    on_progress(event)
                except Exception as e:
                    logger.error(f"Progress handler failed for {job.input_path.name}: {e}")

        waiter.join()

        if process.returncode != 0:
            return ExecutionResult(
                job,
                ProcessFailure(process.returncode, _stderr_tail(exit_info.get("stderr")), command=cmd),
            )
        return ExecutionResult(job)
    finally:
        channel.close()
