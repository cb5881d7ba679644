"""
Job processing module for qonvert.

This module runs a batch of sized jobs through a fixed pool of worker
threads. Workers share one job queue; each takes a job, runs it to
completion with transcode_job, then takes the next. Progress events and
terminal results from every worker are funnelled into a single stream the
caller consumes on its own thread.
"""

import functools
import queue
import threading
from typing import Callable, Iterable, Iterator, List, Optional, Union

from ..config.encoder_config import EncoderConfig
from ..errors import QonvertError
from ..models import ExecutionResult, ProgressEvent, SizedJob
from .progress_channel import ProgressChannel
from .transcoding_engine import transcode_job
from ....utils.logging import get_logger

logger = get_logger("job_processor")

PipelineEvent = Union[ProgressEvent, ExecutionResult]

_NO_MORE_JOBS = None

# seconds between checks for an abandoned stream while the outbox is full
_DELIVERY_RETRY = 0.1


class ParallelTranscoder:
    """
    Bounded worker pool for ffmpeg conversions.

    Every job handed to stream() or run() produces exactly one
    ExecutionResult; a failing job never stops the others.
    """

    def __init__(self, worker_count: int, encoder: Optional[EncoderConfig] = None,
                 channel_factory: Callable[[SizedJob], ProgressChannel] = ProgressChannel,
                 event_buffer: int = 256):
        self.worker_count = worker_count
        self.encoder = encoder or EncoderConfig()
        self.channel_factory = channel_factory
        self.event_buffer = event_buffer

    def stream(self, jobs: Iterable[SizedJob]) -> Iterator[PipelineEvent]:
        """
        Start the workers and return an iterator over every event they produce.

        Within a job, progress events come in non-decreasing order followed
        by its ExecutionResult. Jobs interleave freely. Closing the iterator
        early lets the running jobs finish unreported and starts no more.

        Raises:
            ValueError: jobs were given but worker_count is below 1.
        """
        jobs = list(jobs)
        if not jobs:
            return iter(())
        if self.worker_count < 1:
            raise ValueError(f"worker_count must be at least 1, got {self.worker_count}")
        return self._stream(jobs)

    def run(self, jobs: Iterable[SizedJob],
            on_progress: Optional[Callable[[ProgressEvent], None]] = None,
            on_result: Optional[Callable[[ExecutionResult], None]] = None) -> List[ExecutionResult]:
        """Run every job and return the terminal results in completion order."""
        results = []
        for item in self.stream(jobs):
            if isinstance(item, ExecutionResult):
                results.append(item)
                if on_result:
                    on_result(item)
            elif on_progress:
                on_progress(item)
        return results

    def _stream(self, jobs: List[SizedJob]) -> Iterator[PipelineEvent]:
        job_queue: "queue.Queue[Optional[SizedJob]]" = queue.Queue()
        for job in jobs:
            job_queue.put(job)

        worker_total = min(self.worker_count, len(jobs))
        for _ in range(worker_total):
            job_queue.put(_NO_MORE_JOBS)

        outbox: "queue.Queue[PipelineEvent]" = queue.Queue(maxsize=self.event_buffer)
        abandoned = threading.Event()

        logger.debug(f"Starting {worker_total} workers for {len(jobs)} jobs")
        threads = []
        for worker_id in range(worker_total):
            t = threading.Thread(
                target=self._worker,
                args=(job_queue, outbox, abandoned),
                daemon=True,
                name=f"worker-{worker_id}",
            )
            t.start()
            threads.append(t)

        remaining = len(jobs)
        try:
            while remaining:
                item = outbox.get()
                if isinstance(item, ExecutionResult):
                    remaining -= 1
                yield item
        finally:
            if remaining:
                # the consumer went away; running jobs finish, nothing new starts
                logger.debug(f"Stream abandoned with {remaining} jobs outstanding")
                abandoned.set()

        for t in threads:
            t.join()

    @staticmethod
    def _deliver(outbox: "queue.Queue[PipelineEvent]", abandoned: threading.Event,
                 item: PipelineEvent):
        """Put *item* on the outbox, dropping it once nobody is reading."""
        while not abandoned.is_set():
            try:
                outbox.put(item, timeout=_DELIVERY_RETRY)
                return
            except queue.Full:
                continue

    def _worker(self, job_queue: "queue.Queue[Optional[SizedJob]]",
                outbox: "queue.Queue[PipelineEvent]", abandoned: threading.Event):
        deliver = functools.partial(self._deliver, outbox, abandoned)
        while not abandoned.is_set():
            job = job_queue.get()
            if job is _NO_MORE_JOBS:
                return

            try:
                result = transcode_job(job, self.encoder, deliver, self.channel_factory)
            except Exception as e:
                logger.error(f"{job.input_path.name}: unexpected error: {e}")
                result = ExecutionResult(job, QonvertError(f"unexpected error: {e}"))

            if result.ok:
                logger.debug(f"{job.input_path.name}: finished")
            else:
                logger.debug(f"{job.input_path.name}: failed: {result.error}")
            deliver(result)
