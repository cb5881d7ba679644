"""
Exceptions raised by the qonvert conversion pipeline.

Only PathResolutionError is fatal to a run. The others describe what went
wrong with a single job and are attached to that job's result or logged.
"""

from typing import List, Optional


class QonvertError(Exception):
    """Base exception for qonvert errors"""

    def __init__(self, message: str, command: Optional[List[str]] = None,
                 output: Optional[str] = None):
        self.message = message
        self.command = command
        self.output = output
        super().__init__(self.message)


class PathResolutionError(QonvertError):
    """Input or output paths could not be resolved into jobs."""


class ProbeFailure(QonvertError):
    """ffprobe failed or printed something other than a frame count."""

    def __init__(self, input_path, message: str, command=None, output=None):
        self.input_path = input_path
        super().__init__(message, command=command, output=output)


class SpawnFailure(QonvertError):
    """The converter process could not be started."""


class ProcessFailure(QonvertError):
    """The converter process exited with a non-zero status."""

    def __init__(self, returncode: int, stderr: str = "", command=None):
        self.returncode = returncode
        self.stderr = stderr
        message = f"ffmpeg exited with status {returncode}"
        if stderr:
            message = f"{message}:\n{stderr}"
        super().__init__(message, command=command, output=stderr)


class ProgressStreamError(QonvertError):
    """The progress endpoint could not be accepted, read or parsed."""
