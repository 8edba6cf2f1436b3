"""Transcription engine backed by faster-whisper.

Models are loaded once per model path and shared by all workers; CTranslate2
runs concurrent ``transcribe`` calls on one model in parallel up to
``num_workers``. Output is rendered as whisper-cli style text, one
``[start --> end]  text`` line per segment after a single header line.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable, cast

from faster_whisper import WhisperModel

from batchscribe.exceptions import EngineError
from batchscribe.types import TranscriptionOptions

LOGGER = logging.getLogger(__name__)

_ALLOWED_DEVICES = {"auto", "cpu", "cuda"}
_ALLOWED_COMPUTE_TYPES = {"default", "int8", "float16", "int8_float16", "float32"}
_AUTO_LANGUAGE = {"", "auto"}

ModelFactory = Callable[[str, str, str, int], WhisperModel]


def _default_model_factory(model_path: str, device: str, compute_type: str, num_workers: int) -> WhisperModel:
    return WhisperModel(model_path, device=device, compute_type=compute_type, num_workers=num_workers)


def parse_device(raw: str | None) -> tuple[str, str]:
    """Parse a ``device[/compute_type]`` string such as ``cuda/float16``.

    Unknown devices fall back to ``auto`` and unknown compute types to
    ``default``; both are logged. CPU is pinned to int8.
    """
    if not raw or not raw.strip():
        return "auto", "default"

    device, _, compute_type = raw.strip().lower().partition("/")
    if device not in _ALLOWED_DEVICES:
        LOGGER.warning("Ignoring unsupported device '%s'; using auto", device)
        device = "auto"
    if compute_type and compute_type not in _ALLOWED_COMPUTE_TYPES:
        LOGGER.warning("Ignoring unsupported compute type '%s'; using default", compute_type)
        compute_type = ""
    if device == "cpu":
        if compute_type and compute_type != "int8":
            LOGGER.warning("CPU compute (%s) is forced to int8 for compatibility.", compute_type)
        return "cpu", "int8"
    return device, compute_type or "default"


def format_timestamp(seconds: float | None) -> str:
    """Render seconds as ``HH:MM:SS.mmm``."""
    millis = int(round((seconds or 0.0) * 1000))
    hours, millis = divmod(millis, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    secs, millis = divmod(millis, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


class FasterWhisperEngine:
    """TranscriptionEngine implementation using faster-whisper."""

    def __init__(
        self,
        *,
        device: str | None = None,
        num_workers: int = 1,
        beam_size: int = 5,
        model_factory: ModelFactory | None = None,
    ):
        """Initialize the engine.

        Args:
            device: ``device[/compute_type]`` preference (e.g. ``cuda/float16``)
            num_workers: Parallel transcribe calls allowed per loaded model
            beam_size: Beam size passed to faster-whisper
            model_factory: Factory used to construct WhisperModel (defaults to WhisperModel)
        """
        self._device, self._compute_type = parse_device(device)
        self._num_workers = max(1, num_workers)
        self._beam_size = beam_size
        self._model_factory: ModelFactory = model_factory or _default_model_factory
        self._models: dict[str, WhisperModel] = {}
        self._load_lock = threading.Lock()

    def run(self, audio_path: Path, model_path: Path, options: TranscriptionOptions) -> str:
        model = self._get_model(model_path)
        language = None if (options.language or "").strip().lower() in _AUTO_LANGUAGE else options.language

        try:
            segments, info = model.transcribe(
                str(audio_path),
                language=language,
                initial_prompt=options.prompt or None,
                beam_size=self._beam_size,
            )
            lines = [
                f"engine: faster-whisper language={info.language} "
                f"probability={info.language_probability:.2f} duration={getattr(info, 'duration', 0.0):.1f}s"
            ]
            # segments is a lazy generator; decoding happens while iterating
            for segment in segments:
                marker = f"[{format_timestamp(segment.start)} --> {format_timestamp(segment.end)}]"
                lines.append(f"{marker}  {segment.text.strip()}")
        except Exception as exc:
            raise EngineError(f"faster-whisper failed on {audio_path.name}: {exc}") from exc

        return "\n".join(lines) + "\n"

    def _get_model(self, model_path: Path) -> WhisperModel:
        key = str(model_path)
        with self._load_lock:
            model = self._models.get(key)
            if model is None:
                model = self._load(key)
                self._models[key] = model
            return model

    def _load(self, model_path: str) -> WhisperModel:
        """Load a model with automatic GPU->CPU fallback.

        Raises:
            EngineError: If the model fails to load on both GPU and CPU
        """
        if self._device == "cpu":
            return self._load_on_device(model_path, "cpu", "int8")

        try:
            return self._load_on_device(model_path, self._device, self._compute_type)
        except Exception as error:
            LOGGER.warning(
                (
                    "⚠️  Model initialization failed for %s (requested %s/%s): %s. "
                    "Falling back to CPU int8; expect slower transcription."
                ),
                model_path,
                self._device,
                self._compute_type,
                error,
            )
            try:
                return self._load_on_device(model_path, "cpu", "int8")
            except Exception as cpu_error:
                raise EngineError(f"Failed to load model {model_path} on both GPU and CPU: {cpu_error}") from cpu_error

    def _load_on_device(self, model_path: str, device: str, compute_type: str) -> WhisperModel:
        start_time = time.time()
        model = self._model_factory(model_path, device, compute_type, self._num_workers)
        LOGGER.info("⏱️  Model loaded on %s in %.2f seconds", device, time.time() - start_time)
        return cast(WhisperModel, model)
