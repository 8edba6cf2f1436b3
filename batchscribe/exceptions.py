"""Custom exceptions for the batch transcription system.

This module defines a unified hierarchy of exceptions for all batch operations,
including discovery, model caching, audio conversion, engine invocation and
output writing.

All exceptions inherit from TranscriptionError base class for consistent error handling.
Per-job failures inherit from JobError and carry the pipeline stage they occurred in,
so the worker that catches them can record a stage-tagged result.
"""

from __future__ import annotations

from typing import ClassVar


class TranscriptionError(Exception):
    """Base exception for all transcription-related errors.

    All custom exceptions in the batchscribe package inherit from this class,
    allowing callers to catch all transcription errors with a single except clause.
    """


class ConfigurationError(TranscriptionError, ValueError):
    """Raised when the run configuration is invalid.

    Inherits from ValueError so option parsing code can treat it like any
    other bad value.
    """


# Run-level exceptions


class DiscoveryError(TranscriptionError, FileNotFoundError):
    """Raised when an input path cannot be found or read.

    This is the only error that aborts a whole run, and it is raised before
    any job is dispatched.
    """


class InvalidTransitionError(TranscriptionError, RuntimeError):
    """Raised when a job is moved to a status it cannot reach from its current one."""


# Per-job exceptions


class JobError(TranscriptionError):
    """Base class for failures that only affect the job that raised them.

    Subclasses pin the pipeline stage they belong to. The ``kind`` reported in
    job results is the class name, e.g. ``DownloadError``.
    """

    stage: ClassVar[str] = "unknown"

    @property
    def kind(self) -> str:
        return type(self).__name__


class UnknownModelError(JobError, KeyError):
    """Raised when a model name is not part of the model catalogue."""

    stage = "model_ready"

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message instead
        return str(self.args[0]) if self.args else ""


class DownloadError(JobError):
    """Raised when the model store fails to fetch a model.

    This can occur due to:
    - Network failures
    - Missing or renamed remote repositories
    - Disk space problems in the cache directory
    """

    stage = "model_ready"


class ConversionError(JobError):
    """Raised when audio inspection or conversion to the canonical format fails.

    This can occur due to:
    - Corrupted or empty audio files
    - ffmpeg/ffprobe missing from PATH
    - Subprocess timeouts
    """

    stage = "audio_ready"


class EngineError(JobError):
    """Raised when the transcription engine fails on a prepared audio file."""

    stage = "transcribed"


class WriteError(JobError, OSError):
    """Raised when the transcript cannot be written to its output path.

    Inherits from OSError to maintain compatibility with OS-level
    error handling patterns.
    """

    stage = "written"
