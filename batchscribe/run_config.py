"""Run configuration resolved from explicit options, the environment and defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Final, Mapping

from batchscribe.config import DEFAULT_CACHE_DIR, DEFAULT_TEMP_DIR
from batchscribe.exceptions import ConfigurationError
from batchscribe.model_config import CATALOG, DEFAULT_MODEL
from batchscribe.types import TranscriptionOptions

LOGGER = logging.getLogger(__name__)

# txt is implemented; srt/vtt are recognised names that validate() rejects
IMPLEMENTED_OUTPUT_FORMATS: Final = ("txt",)
DECLARED_OUTPUT_FORMATS: Final = ("txt", "srt", "vtt")

DEFAULT_WORKERS: Final = 4
DEFAULT_OUTPUT_FORMAT: Final = "txt"
DEFAULT_LANGUAGE: Final = "auto"

_MODEL_ENV: Final = "BATCHSCRIBE_MODEL"
_WORKERS_ENV: Final = "BATCHSCRIBE_WORKERS"
_OUTPUT_DIR_ENV: Final = "BATCHSCRIBE_OUTPUT_DIR"
_FORMAT_ENV: Final = "BATCHSCRIBE_FORMAT"
_LANGUAGE_ENV: Final = "BATCHSCRIBE_LANGUAGE"
_PROMPT_ENV: Final = "BATCHSCRIBE_PROMPT"
_CACHE_DIR_ENV: Final = "BATCHSCRIBE_CACHE_DIR"
_TEMP_DIR_ENV: Final = "BATCHSCRIBE_TEMP_DIR"
_TIMEOUT_ENV: Final = "BATCHSCRIBE_TIMEOUT"
_DEVICE_ENV: Final = "BATCHSCRIBE_DEVICE"


def _parse_int(raw: str | None, default: int) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-integer value %r; using %d", raw, default)
        return default


def _parse_optional_float(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-numeric timeout %r", raw)
        return None


def _env_path(raw: str | None) -> Path | None:
    if raw is None or not raw.strip():
        return None
    return Path(raw).expanduser()


def _env_str(raw: str | None) -> str | None:
    if raw is None or not raw.strip():
        return None
    return raw.strip()


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Immutable configuration for one batch run.

    This is the single source of truth handed to the service factory, the
    resume filter and the processor. The cache and temp directories travel
    inside it; nothing reads them from globals.
    """

    inputs: tuple[Path, ...]
    model: str = DEFAULT_MODEL
    workers: int = DEFAULT_WORKERS
    recursive: bool = False
    force: bool = False
    output_dir: Path | None = None
    output_format: str = DEFAULT_OUTPUT_FORMAT
    language: str | None = DEFAULT_LANGUAGE
    prompt: str | None = None
    cache_dir: Path = DEFAULT_CACHE_DIR
    temp_dir: Path = DEFAULT_TEMP_DIR
    timeout: float | None = None
    device: str | None = None
    strict: bool = False

    @classmethod
    def from_env(
        cls,
        inputs: list[str] | list[Path] | tuple[Path, ...] = (),
        env: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> RunConfig:
        """Build a config from environment variables, then apply explicit overrides.

        Overrides whose value is None are treated as "not given" so CLI options
        left unset fall through to the environment and then to the defaults.
        """
        source = os.environ if env is None else env

        config = cls(
            inputs=tuple(Path(p).expanduser() for p in inputs),
            model=_env_str(source.get(_MODEL_ENV)) or DEFAULT_MODEL,
            workers=_parse_int(source.get(_WORKERS_ENV), DEFAULT_WORKERS),
            output_dir=_env_path(source.get(_OUTPUT_DIR_ENV)),
            output_format=(_env_str(source.get(_FORMAT_ENV)) or DEFAULT_OUTPUT_FORMAT).lower(),
            language=_env_str(source.get(_LANGUAGE_ENV)) or DEFAULT_LANGUAGE,
            prompt=_env_str(source.get(_PROMPT_ENV)),
            cache_dir=_env_path(source.get(_CACHE_DIR_ENV)) or DEFAULT_CACHE_DIR,
            temp_dir=_env_path(source.get(_TEMP_DIR_ENV)) or DEFAULT_TEMP_DIR,
            timeout=_parse_optional_float(source.get(_TIMEOUT_ENV)),
            device=_env_str(source.get(_DEVICE_ENV)),
        )

        given = {key: value for key, value in overrides.items() if value is not None}
        for key in ("output_dir", "cache_dir", "temp_dir"):
            if key in given:
                given[key] = Path(given[key]).expanduser()
        if "output_format" in given:
            given["output_format"] = str(given["output_format"]).lower()
        return replace(config, **given)

    def validate(self) -> None:
        """Raise ConfigurationError if the configuration cannot be run."""
        if self.workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {self.workers}")

        if self.output_format not in DECLARED_OUTPUT_FORMATS:
            raise ConfigurationError(
                f"invalid format: {self.output_format} (valid: {', '.join(DECLARED_OUTPUT_FORMATS)})"
            )
        if self.output_format not in IMPLEMENTED_OUTPUT_FORMATS:
            raise ConfigurationError(f"output format '{self.output_format}' is not implemented yet; use txt")

        if self.model not in CATALOG:
            raise ConfigurationError(f"unknown model: {self.model} (valid: {', '.join(CATALOG)})")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")

        if self.output_dir is not None and self.output_dir.exists() and not self.output_dir.is_dir():
            raise ConfigurationError(f"output directory is not a directory: {self.output_dir}")

    def output_path_for(self, audio_path: Path) -> Path:
        """Where the transcript for ``audio_path`` goes.

        ``<stem>.<format>`` in the output directory when one is configured,
        otherwise next to the input file. The rule only depends on the input
        path, so re-runs compute the same path and can skip finished work.
        """
        directory = self.output_dir if self.output_dir is not None else audio_path.parent
        return directory / f"{audio_path.stem}.{self.output_format}"

    def transcription_options(self) -> TranscriptionOptions:
        return TranscriptionOptions(
            language=self.language,
            prompt=self.prompt,
            output_format=self.output_format,
            force=self.force,
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain, JSON-friendly view used for debug logging."""
        return {key: _plain(value) for key, value in asdict(self).items()}


def _plain(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value
