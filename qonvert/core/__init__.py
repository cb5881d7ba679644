"""Core conversion pipeline: probing, progress channels and the worker pool."""

from .modules.analysis.media_utils import read_frame_count, read_frame_counts
from .modules.models import ExecutionResult, Job, ProgressEvent, SizedJob
from .modules.processing.job_processor import ParallelTranscoder
from .modules.processing.progress_channel import ProgressChannel, open_progress_channel

__all__ = [
    "Job", "SizedJob", "ProgressEvent", "ExecutionResult",
    "read_frame_count", "read_frame_counts",
    "ProgressChannel", "open_progress_channel",
    "ParallelTranscoder",
]
