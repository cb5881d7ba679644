"""
Data types shared by the probe pool, progress channel and worker pool.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import QonvertError


@dataclass(frozen=True)
class Job:
    """One input-to-output file conversion."""
    input_path: Path
    output_path: Path


@dataclass(frozen=True)
class SizedJob:
    """A job plus its frame count; total_units of 0 means unknown."""
    job: Job
    total_units: int = 0

    def __post_init__(self):
        if self.total_units < 0:
            raise ValueError(f"total_units must be non-negative, got {self.total_units}")

    @property
    def input_path(self) -> Path:
        return self.job.input_path

    @property
    def output_path(self) -> Path:
        return self.job.output_path


@dataclass(frozen=True)
class ProgressEvent:
    job: SizedJob
    current_units: int
    total_units: int

    @property
    def done(self) -> bool:
        return self.total_units > 0 and self.current_units >= self.total_units


@dataclass(frozen=True)
class ExecutionResult:
    """Terminal outcome of a job. Exactly one is produced per job."""
    job: SizedJob
    error: Optional[QonvertError] = None

    @property
    def ok(self) -> bool:
        return self.error is None
