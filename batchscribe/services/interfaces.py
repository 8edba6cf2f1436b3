"""Collaborator interfaces for the batch pipeline using structural typing."""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from batchscribe.model_config import ModelDescriptor
from batchscribe.types import TranscriptionOptions

CANONICAL_SAMPLE_RATE = 16000
CANONICAL_CHANNELS = 1
CANONICAL_CODEC = "pcm_s16le"


@dataclass(slots=True)
class AudioInfo:
    """Stream properties reported by a probe."""

    duration: float | None
    channels: int | None = None
    sample_rate: int | None = None
    codec: str | None = None

    @property
    def is_canonical(self) -> bool:
        """True for single-channel 16 kHz 16-bit PCM, the format engines expect."""
        return (
            self.channels == CANONICAL_CHANNELS
            and self.sample_rate == CANONICAL_SAMPLE_RATE
            and self.codec == CANONICAL_CODEC
        )


@runtime_checkable
class ModelStore(Protocol):
    """Service that transfers models into the local cache."""

    def is_cached(self, descriptor: ModelDescriptor) -> bool:
        """Return True if the model is fully present at its local path."""
        ...

    def fetch(self, descriptor: ModelDescriptor) -> Path:
        """Download the model and return its local path. Raises DownloadError."""
        ...


@runtime_checkable
class AudioConverter(Protocol):
    """Service for inspecting and converting audio files."""

    def probe(self, path: Path) -> AudioInfo:
        """Inspect the audio stream. Raises ConversionError."""
        ...

    def convert_to_canonical_format(self, path: Path) -> Path:
        """Write a 16 kHz mono PCM WAV copy and return its temp path. Raises ConversionError."""
        ...


@runtime_checkable
class TranscriptionEngine(Protocol):
    """Service that turns prepared audio into raw engine text."""

    def run(self, audio_path: Path, model_path: Path, options: TranscriptionOptions) -> str:
        """Transcribe and return the engine's textual output. Raises EngineError."""
        ...


@runtime_checkable
class OutputWriter(Protocol):
    """Service for writing transcript documents."""

    def write(self, output_path: Path, content: str) -> Path:
        """Write ``content`` to ``output_path``. Raises WriteError."""
        ...
