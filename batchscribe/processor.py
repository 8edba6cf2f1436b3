"""Batch orchestration: a fixed pool of worker threads and the processor facade."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, cast

from batchscribe.components import AudioDiscovery, ResumeFilter, ResumePlan, StatsAggregator, TranscriptionUnit
from batchscribe.run_config import RunConfig
from batchscribe.types import BatchStats, DiscoverySummary, JobFailure, JobResult, JobStatus, TranscriptionJob

LOGGER = logging.getLogger(__name__)

ResultCallback = Callable[[JobResult], None]

_SENTINEL = object()
_QUEUE_DEPTH_PER_WORKER = 2


class WorkerPool:
    """Runs jobs on up to ``workers`` threads and collects one result per job.

    A feeder thread fills a bounded job queue; workers pull from it and push
    results onto a result queue. The thread calling :meth:`run` is the only
    consumer of results, so the callback and the returned list are never
    touched concurrently.
    """

    def __init__(self, unit: TranscriptionUnit, workers: int):
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self._unit = unit
        self._workers = workers

    def run(self, jobs: list[TranscriptionJob], on_result: ResultCallback | None = None) -> list[JobResult]:
        """Process every job and return their results in completion order."""
        if not jobs:
            return []

        worker_count = min(self._workers, len(jobs))
        job_queue: queue.Queue[object] = queue.Queue(maxsize=worker_count * _QUEUE_DEPTH_PER_WORKER)
        result_queue: queue.Queue[JobResult] = queue.Queue()

        threads = [
            threading.Thread(
                target=self._feed,
                args=(jobs, job_queue, worker_count),
                name="batchscribe-feeder",
                daemon=True,
            )
        ]
        threads += [
            threading.Thread(
                target=self._work,
                args=(job_queue, result_queue),
                name=f"batchscribe-worker-{index}",
                daemon=True,
            )
            for index in range(worker_count)
        ]
        LOGGER.debug("Starting %d workers for %d jobs", worker_count, len(jobs))
        for thread in threads:
            thread.start()

        results: list[JobResult] = []
        for _ in range(len(jobs)):
            result = result_queue.get()
            results.append(result)
            if on_result is not None:
                on_result(result)

        for thread in threads:
            thread.join()
        return results

    @staticmethod
    def _feed(jobs: list[TranscriptionJob], job_queue: queue.Queue[object], worker_count: int) -> None:
        for job in jobs:
            job_queue.put(job)
        for _ in range(worker_count):
            job_queue.put(_SENTINEL)

    def _work(self, job_queue: queue.Queue[object], result_queue: queue.Queue[JobResult]) -> None:
        while True:
            item = job_queue.get()
            if item is _SENTINEL:
                return
            job = cast(TranscriptionJob, item)
            try:
                result = self._unit.process(job)
            except Exception as error:
                # The unit already turns job errors into results; this keeps the
                # result count whole if the unit itself breaks.
                LOGGER.exception("Worker crashed on %s", job.audio.name)
                failure = JobFailure(stage="unknown", kind=type(error).__name__, message=str(error))
                result = JobResult(job=job, status=JobStatus.FAILED, error=failure)
            result_queue.put(result)


@dataclass(frozen=True)
class BatchReport:
    """Everything a caller needs to present the outcome of a batch."""

    summary: DiscoverySummary
    results: list[JobResult]
    skipped: list[JobResult]
    stats: BatchStats

    @property
    def failures(self) -> list[JobResult]:
        return [result for result in self.results if result.status is JobStatus.FAILED]

    def exit_code(self, strict: bool = False) -> int:
        return 1 if strict and self.failures else 0


class TranscriptionProcessor:
    """Discovers inputs, filters finished work and runs the rest through the pool."""

    def __init__(
        self,
        unit: TranscriptionUnit,
        config: RunConfig,
        discovery: AudioDiscovery | None = None,
        resume_filter: ResumeFilter | None = None,
    ) -> None:
        self.config = config
        self._discovery = discovery or AudioDiscovery()
        self._resume_filter = resume_filter or ResumeFilter(config)
        self._pool = WorkerPool(unit, workers=config.workers)

        LOGGER.debug("Run configuration: %s", config.to_dict())

    def plan(self) -> ResumePlan:
        """Discover inputs and split them into skipped and pending jobs.

        Raises:
            DiscoveryError: If an input path does not exist or cannot be read
        """
        files = self._discovery.discover(self.config.inputs, recursive=self.config.recursive)
        return self._resume_filter.partition(files)

    def execute(self, plan: ResumePlan, on_result: ResultCallback | None = None) -> BatchReport:
        stats = StatsAggregator()
        stats.start()
        for skipped in plan.skipped:
            stats.record(skipped)

        def collect(result: JobResult) -> None:
            stats.record(result)
            if on_result is not None:
                on_result(result)

        results = self._pool.run(plan.to_process, on_result=collect)
        batch_stats = stats.finish()
        LOGGER.info(
            "Processing complete: %d succeeded, %d failed, %d skipped",
            batch_stats.succeeded,
            batch_stats.failed,
            batch_stats.skipped,
        )
        return BatchReport(summary=plan.summary, results=results, skipped=plan.skipped, stats=batch_stats)

    def run(
        self,
        on_discovered: Callable[[DiscoverySummary], None] | None = None,
        on_result: ResultCallback | None = None,
    ) -> BatchReport:
        """Main entry point: plan, report the counts, then process."""
        plan = self.plan()
        if on_discovered is not None:
            on_discovered(plan.summary)
        return self.execute(plan, on_result=on_result)
