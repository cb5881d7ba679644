"""
User interface module for qonvert.

This module handles what the user sees while a batch runs:
- One tqdm bar per job, fed by progress events
- Failure lines as jobs finish
- Aggregated counts for the final summary
"""

import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from tqdm import tqdm

from ..errors import ProbeFailure
from ..models import ExecutionResult, Job, ProgressEvent, SizedJob
from ....utils.logging import create_progress_bar, format_duration, get_logger

logger = get_logger("user_interface")


@dataclass
class RunSummary:
    """Final counts for a batch."""
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    failures: List[ExecutionResult] = field(default_factory=list)
    skipped_jobs: List[Tuple[Job, ProbeFailure]] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def executed(self) -> int:
        return self.succeeded + self.failed

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.skipped == 0


class ProgressRenderer:
    """
    Draws one progress bar per job, labelled relative to the output directory.

    Bars are keyed by job identity so duplicate inputs get their own bar.
    """

    def __init__(self, output_dir: Optional[Path] = None, disable: bool = False):
        self.output_dir = output_dir
        self.disable = disable
        self._bars: Dict[int, tqdm] = {}

    def label(self, job: SizedJob) -> str:
        if self.output_dir is None:
            return job.output_path.name
        return os.path.relpath(job.output_path, self.output_dir)

    def add(self, job: SizedJob):
        if id(job) in self._bars:
            return
        self._bars[id(job)] = create_progress_bar(
            total=job.total_units,
            desc=self.label(job),
            unit="frames",
            position=len(self._bars),
            disable=self.disable,
        )

    def update(self, event: ProgressEvent):
        bar = self._bars.get(id(event.job))
        if bar is None:
            self.add(event.job)
            bar = self._bars[id(event.job)]
        if event.total_units and bar.total != event.total_units:
            bar.total = event.total_units
        delta = event.current_units - bar.n
        if delta > 0:
            bar.update(delta)

    def finish(self, result: ExecutionResult):
        bar = self._bars.pop(id(result.job), None)
        if result.ok:
            if bar is not None:
                bar.set_postfix_str("done")
        else:
            tqdm.write(f"failed: {result.job.output_path} {result.error}")
        if bar is not None:
            bar.close()

    def close(self):
        for bar in self._bars.values():
            bar.close()
        self._bars.clear()


class ResultAggregator:
    """
    Consumes the combined stream of progress events and results.

    Forwards everything to the renderer and keeps succeeded / failed /
    skipped counts.
    """

    def __init__(self, renderer: Optional[ProgressRenderer] = None):
        self.renderer = renderer
        self.summary = RunSummary()
        self._started = time.monotonic()

    def record_skipped(self, job: Job, failure: ProbeFailure):
        self.summary.skipped += 1
        self.summary.skipped_jobs.append((job, failure))

    def add_jobs(self, jobs: Iterable[SizedJob]):
        if self.renderer is None:
            return
        for job in jobs:
            self.renderer.add(job)

    def on_progress(self, event: ProgressEvent):
        if self.renderer is not None:
            self.renderer.update(event)

    def on_result(self, result: ExecutionResult):
        if result.ok:
            self.summary.succeeded += 1
        else:
            self.summary.failed += 1
            self.summary.failures.append(result)
        if self.renderer is not None:
            self.renderer.finish(result)

    def consume(self, events: Iterable[Union[ProgressEvent, ExecutionResult]]) -> RunSummary:
        """Drain *events* and return the summary once the stream ends."""
        try:
            for item in events:
                if isinstance(item, ExecutionResult):
                    self.on_result(item)
                else:
                    self.on_progress(item)
        finally:
            if self.renderer is not None:
                self.renderer.close()
        self.summary.elapsed = time.monotonic() - self._started
        return self.summary


def report_summary(summary: RunSummary):
    """Print the closing lines for a batch."""
    logger.result(
        f"successfully transcoded {summary.succeeded} of {summary.executed} items "
        f"in {format_duration(summary.elapsed)}"
    )
    if summary.skipped:
        logger.warn(f"{summary.skipped} items skipped: frame count could not be read")
        for job, failure in summary.skipped_jobs:
            logger.debug(f"  {job.input_path}: {failure.message}")
    if summary.failed:
        logger.error(f"{summary.failed} items failed")
