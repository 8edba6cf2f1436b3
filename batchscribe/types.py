"""Shared type definitions for batch jobs and their results."""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field
from pathlib import Path

from batchscribe.exceptions import InvalidTransitionError


class JobStatus(str, enum.Enum):
    """Lifecycle states of a transcription job.

    Inherits from str so values render cleanly in logs and tables.
    """

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.SKIPPED})

_ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING, JobStatus.SKIPPED}),
    JobStatus.RUNNING: frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED}),
    JobStatus.SUCCEEDED: frozenset(),
    JobStatus.FAILED: frozenset(),
    JobStatus.SKIPPED: frozenset(),
}


class JobStage(str, enum.Enum):
    """Pipeline stages a running job moves through, strictly in order."""

    MODEL_READY = "model_ready"
    AUDIO_READY = "audio_ready"
    TRANSCRIBED = "transcribed"
    WRITTEN = "written"


_STAGE_ORDER = list(JobStage)


@dataclass(frozen=True, slots=True)
class AudioFile:
    """A discovered input file."""

    path: Path
    extension: str

    @classmethod
    def from_path(cls, path: str | Path) -> AudioFile:
        resolved = Path(path).expanduser().resolve()
        return cls(path=resolved, extension=resolved.suffix.lower())

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True, slots=True)
class TranscriptionOptions:
    """Per-job options handed to the engine and the output stage."""

    language: str | None = None
    prompt: str | None = None
    output_format: str = "txt"
    force: bool = False


@dataclass(eq=False)
class TranscriptionJob:
    """One input file on its way through the pipeline.

    Status and stage only ever move forward. Transitions are checked against
    the allowed table and applied under a per-job lock.
    """

    audio: AudioFile
    model: str
    options: TranscriptionOptions
    output_path: Path
    _status: JobStatus = field(default=JobStatus.PENDING, init=False, repr=False)
    _stage: JobStage | None = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def status(self) -> JobStatus:
        return self._status

    @property
    def stage(self) -> JobStage | None:
        return self._stage

    @property
    def pending_stage(self) -> JobStage | None:
        """The stage the job is working towards, None once WRITTEN."""
        return _STAGE_ORDER[0] if self._stage is None else _next_stage(self._stage)

    def transition(self, new_status: JobStatus) -> None:
        """Move the job to ``new_status`` or raise InvalidTransitionError."""
        with self._lock:
            if new_status not in _ALLOWED_TRANSITIONS[self._status]:
                raise InvalidTransitionError(
                    f"{self.audio.name}: cannot move from {self._status.value} to {new_status.value}"
                )
            self._status = new_status

    def advance(self, stage: JobStage) -> None:
        """Record that the job completed ``stage``; stages must follow each other in order."""
        with self._lock:
            if self._status is not JobStatus.RUNNING:
                raise InvalidTransitionError(f"{self.audio.name}: stage {stage.value} reached while {self._status.value}")
            expected = _STAGE_ORDER[0] if self._stage is None else _next_stage(self._stage)
            if stage is not expected:
                raise InvalidTransitionError(
                    f"{self.audio.name}: expected stage {expected.value if expected else 'none'}, got {stage.value}"
                )
            self._stage = stage


def _next_stage(stage: JobStage) -> JobStage | None:
    index = _STAGE_ORDER.index(stage)
    return _STAGE_ORDER[index + 1] if index + 1 < len(_STAGE_ORDER) else None


@dataclass(frozen=True, slots=True)
class TranscriptOutput:
    """Rendered transcript ready to be written."""

    text: str
    word_count: int
    paragraph_count: int


@dataclass(frozen=True, slots=True)
class JobFailure:
    """Why a job failed: the stage, the error class name and its message."""

    stage: str
    kind: str
    message: str

    def __str__(self) -> str:
        return f"[{self.stage}] {self.kind}: {self.message}"


@dataclass(frozen=True, slots=True)
class JobResult:
    """Outcome captured for each job once it is terminal."""

    job: TranscriptionJob
    status: JobStatus
    error: JobFailure | None = None
    word_count: int = 0
    audio_duration: float = 0.0
    processing_time: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is JobStatus.SUCCEEDED


@dataclass(frozen=True, slots=True)
class DiscoverySummary:
    """Counts reported before any work starts."""

    discovered: int
    already_done: int
    to_process: int


@dataclass(frozen=True, slots=True)
class BatchStats:
    """Aggregate figures for one batch, built once the pool has drained."""

    succeeded: int
    failed: int
    skipped: int
    total_words: int
    total_audio_duration: float
    elapsed: float

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed

    @property
    def realtime_speed(self) -> float | None:
        """Seconds of audio transcribed per wall-clock second."""
        if self.elapsed <= 0 or self.total_audio_duration <= 0:
            return None
        return self.total_audio_duration / self.elapsed
