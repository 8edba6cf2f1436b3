"""Pipeline components: discovery, resume filtering, per-job processing and statistics."""

from __future__ import annotations

import logging
import os
import time
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from batchscribe.exceptions import DiscoveryError, JobError
from batchscribe.model_cache import ModelCache
from batchscribe.run_config import RunConfig
from batchscribe.services.interfaces import AudioConverter, OutputWriter, TranscriptionEngine
from batchscribe.transcript import parse_engine_output, render_transcript
from batchscribe.types import (
    AudioFile,
    BatchStats,
    DiscoverySummary,
    JobFailure,
    JobResult,
    JobStage,
    JobStatus,
    TranscriptionJob,
)

LOGGER = logging.getLogger(__name__)

# Supported audio file extensions
SUPPORTED_AUDIO_EXTENSIONS = frozenset({".mp3", ".m4a", ".wav", ".flac", ".mp4", ".aac", ".ogg"})

UNEXPECTED_ERROR_KIND = "UnexpectedError"


class AudioDiscovery:
    """Expands input paths into the list of audio files to consider."""

    def __init__(self, extensions: Iterable[str] = SUPPORTED_AUDIO_EXTENSIONS):
        self._extensions = frozenset(ext.lower() for ext in extensions)

    def is_supported(self, path: Path) -> bool:
        return path.suffix.lower() in self._extensions

    def discover(self, paths: Iterable[str | Path], recursive: bool = False) -> list[AudioFile]:
        """Return supported audio files under ``paths``.

        Files are accepted directly, directories are listed (recursively when
        asked). Order follows the inputs; directory contents are sorted.
        A path given twice, directly or through a directory, appears once.

        Raises:
            DiscoveryError: If an input path does not exist or cannot be read
        """
        found: list[AudioFile] = []
        seen: set[Path] = set()

        for raw_path in paths:
            path = Path(raw_path).expanduser()
            if not path.exists():
                raise DiscoveryError(f"Path not found: {path}")

            if path.is_dir():
                candidates = self._list_directory(path, recursive)
            else:
                if not os.access(path, os.R_OK):
                    raise DiscoveryError(f"Cannot read file: {path}")
                if not self.is_supported(path):
                    LOGGER.debug("Ignoring unsupported file: %s", path)
                    continue
                candidates = [path]

            for candidate in candidates:
                audio = AudioFile.from_path(candidate)
                if audio.path in seen:
                    continue
                seen.add(audio.path)
                found.append(audio)

        LOGGER.debug("Discovered %d audio files", len(found))
        return found

    def _list_directory(self, directory: Path, recursive: bool) -> list[Path]:
        # rglob swallows PermissionError on the top-level directory
        if not os.access(directory, os.R_OK | os.X_OK):
            raise DiscoveryError(f"Cannot read directory: {directory}")
        try:
            entries = directory.rglob("*") if recursive else directory.iterdir()
            return sorted(entry for entry in entries if entry.is_file() and self.is_supported(entry))
        except PermissionError as exc:
            raise DiscoveryError(f"Cannot read directory: {directory}") from exc


@dataclass(frozen=True)
class ResumePlan:
    """Jobs split by whether their output already exists."""

    to_process: list[TranscriptionJob]
    skipped: list[JobResult]
    summary: DiscoverySummary


class ResumeFilter:
    """Classifies discovered files as already done or still to process."""

    def __init__(self, config: RunConfig):
        self._config = config

    def build_job(self, audio: AudioFile) -> TranscriptionJob:
        return TranscriptionJob(
            audio=audio,
            model=self._config.model,
            options=self._config.transcription_options(),
            output_path=self._config.output_path_for(audio.path),
        )

    def partition(self, files: list[AudioFile]) -> ResumePlan:
        """Build a PENDING job for each file, marking those with existing output as SKIPPED.

        Every file ends up in exactly one of the two lists.
        """
        to_process: list[TranscriptionJob] = []
        skipped: list[JobResult] = []
        claimed: dict[Path, Path] = {}

        for audio in files:
            job = self.build_job(audio)

            previous = claimed.setdefault(job.output_path, audio.path)
            if previous != audio.path:
                LOGGER.warning("⚠️  %s and %s both write to %s", previous.name, audio.name, job.output_path)

            if job.output_path.exists() and not self._config.force:
                job.transition(JobStatus.SKIPPED)
                skipped.append(JobResult(job=job, status=JobStatus.SKIPPED))
                LOGGER.debug("Skipping %s, output exists at %s", audio.name, job.output_path)
            else:
                to_process.append(job)

        summary = DiscoverySummary(discovered=len(files), already_done=len(skipped), to_process=len(to_process))
        LOGGER.info(
            "Found %d files: %d already transcribed, %d to process",
            summary.discovered,
            summary.already_done,
            summary.to_process,
        )
        return ResumePlan(to_process=to_process, skipped=skipped, summary=summary)


class TranscriptionUnit:
    """Drives one job through MODEL_READY, AUDIO_READY, TRANSCRIBED and WRITTEN.

    Any failure ends the job as FAILED with the stage it happened in; later
    stages are not attempted and no output is written. Temporary audio created
    for the job is removed whatever the outcome.
    """

    def __init__(
        self,
        model_cache: ModelCache,
        converter: AudioConverter,
        engine: TranscriptionEngine,
        writer: OutputWriter,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._model_cache = model_cache
        self._converter = converter
        self._engine = engine
        self._writer = writer
        self._clock = clock

    def process(self, job: TranscriptionJob) -> JobResult:
        """Run ``job`` to a terminal state and return its result; per-job errors never escape."""
        started = self._clock()
        job.transition(JobStatus.RUNNING)
        LOGGER.debug("Processing %s", job.audio.path)

        duration = 0.0
        word_count = 0
        try:
            with ExitStack() as cleanup:
                model_path = self._model_cache.ensure_cached(job.model)
                job.advance(JobStage.MODEL_READY)

                audio_path, duration = self._prepare_audio(job, cleanup)
                job.advance(JobStage.AUDIO_READY)

                raw_output = self._engine.run(audio_path, model_path, job.options)
                transcript = parse_engine_output(raw_output)
                job.advance(JobStage.TRANSCRIBED)

                document = render_transcript(transcript, source_name=job.audio.name, model=job.model)
                self._writer.write(job.output_path, document.text)
                word_count = document.word_count
                job.advance(JobStage.WRITTEN)
        except JobError as error:
            failure = JobFailure(stage=error.stage, kind=error.kind, message=str(error))
            return self._fail(job, failure, started, duration)
        except Exception as error:
            LOGGER.debug("Unexpected error while processing %s", job.audio.name, exc_info=True)
            pending = job.pending_stage
            failure = JobFailure(
                stage=pending.value if pending is not None else "unknown",
                kind=UNEXPECTED_ERROR_KIND,
                message=f"{type(error).__name__}: {error}",
            )
            return self._fail(job, failure, started, duration)

        job.transition(JobStatus.SUCCEEDED)
        elapsed = self._clock() - started
        LOGGER.info("✅ %s -> %s (%d words, %.1fs)", job.audio.name, job.output_path.name, word_count, elapsed)
        return JobResult(
            job=job,
            status=JobStatus.SUCCEEDED,
            word_count=word_count,
            audio_duration=duration,
            processing_time=elapsed,
        )

    def _prepare_audio(self, job: TranscriptionJob, cleanup: ExitStack) -> tuple[Path, float]:
        """Return the audio path to feed the engine and the source duration.

        A failed probe only costs the duration: the file is converted anyway.
        """
        source = job.audio.path
        info = None
        try:
            info = self._converter.probe(source)
        except JobError as error:
            LOGGER.warning("Could not probe %s, converting anyway: %s", job.audio.name, error)

        duration = (info.duration or 0.0) if info is not None else 0.0
        if info is not None and info.is_canonical and job.audio.extension == ".wav":
            return source, duration

        converted = self._converter.convert_to_canonical_format(source)
        cleanup.callback(_remove_temp_file, converted)
        return converted, duration

    def _fail(self, job: TranscriptionJob, failure: JobFailure, started: float, duration: float) -> JobResult:
        job.transition(JobStatus.FAILED)
        LOGGER.error("❌ %s failed %s", job.audio.name, failure)
        return JobResult(
            job=job,
            status=JobStatus.FAILED,
            error=failure,
            audio_duration=duration,
            processing_time=self._clock() - started,
        )


def _remove_temp_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as error:
        LOGGER.warning("Could not remove temporary file %s: %s", path, error)


class StatsAggregator:
    """Accumulates job results into BatchStats.

    Fed from the single thread that drains the result queue, so it keeps no lock.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._started: float | None = None
        self._succeeded = 0
        self._failed = 0
        self._skipped = 0
        self._total_words = 0
        self._total_audio = 0.0

    def start(self) -> None:
        self._started = self._clock()

    def record(self, result: JobResult) -> None:
        if result.status is JobStatus.SUCCEEDED:
            self._succeeded += 1
            self._total_words += result.word_count
            self._total_audio += result.audio_duration
        elif result.status is JobStatus.FAILED:
            self._failed += 1
        elif result.status is JobStatus.SKIPPED:
            self._skipped += 1
        else:
            raise ValueError(f"Cannot record non-terminal result for {result.job.audio.name}: {result.status.value}")

    def finish(self) -> BatchStats:
        elapsed = 0.0 if self._started is None else max(0.0, self._clock() - self._started)
        return BatchStats(
            succeeded=self._succeeded,
            failed=self._failed,
            skipped=self._skipped,
            total_words=self._total_words,
            total_audio_duration=self._total_audio,
            elapsed=elapsed,
        )
