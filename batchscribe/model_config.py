"""Model catalogue.

This module defines the models batchscribe knows how to fetch and where each
one lives in the local cache, separating reference data from download and
loading logic.
"""

from dataclasses import dataclass
from pathlib import Path

MODELS_SUBDIR = "models"


@dataclass(frozen=True)
class ModelSpec:
    """Catalogue entry, independent of any cache location.

    Attributes:
        repo_id: Hugging Face repository holding the CTranslate2 weights
        size: Human readable download size
        description: One-line summary shown by `models list`
    """

    repo_id: str
    size: str
    description: str


@dataclass(frozen=True)
class ModelDescriptor:
    """A catalogue entry bound to a cache root."""

    name: str
    local_path: Path
    source: str
    size_hint: str
    description: str


# Catalogue - easy to extend with new models
CATALOG: dict[str, ModelSpec] = {
    "tiny": ModelSpec("Systran/faster-whisper-tiny", "75 MB", "Fastest, least accurate"),
    "tiny.en": ModelSpec("Systran/faster-whisper-tiny.en", "75 MB", "Fastest, least accurate (English only)"),
    "base": ModelSpec("Systran/faster-whisper-base", "145 MB", "Good balance of speed and accuracy"),
    "base.en": ModelSpec(
        "Systran/faster-whisper-base.en", "145 MB", "Good balance of speed and accuracy (English only)"
    ),
    "small": ModelSpec("Systran/faster-whisper-small", "485 MB", "Better accuracy, moderate speed"),
    "small.en": ModelSpec("Systran/faster-whisper-small.en", "485 MB", "Better accuracy, moderate speed (English only)"),
    "medium": ModelSpec("Systran/faster-whisper-medium", "1.5 GB", "High accuracy, slower"),
    "medium.en": ModelSpec("Systran/faster-whisper-medium.en", "1.5 GB", "High accuracy, slower (English only)"),
    "large-v3": ModelSpec("Systran/faster-whisper-large-v3", "3.1 GB", "Latest large model with improvements"),
    "large-v3-turbo": ModelSpec(
        "mobiuslabsgmbh/faster-whisper-large-v3-turbo", "1.6 GB", "Large v3 Turbo - faster with similar accuracy"
    ),
}

DEFAULT_MODEL = "large-v3-turbo"


def available_models() -> list[str]:
    return list(CATALOG)


def get_model(name: str, cache_root: Path) -> ModelDescriptor:
    """Get the descriptor for ``name`` under ``cache_root``.

    Args:
        name: Catalogue name (e.g., 'small', 'large-v3-turbo')
        cache_root: Cache directory the descriptor's local path is resolved against

    Returns:
        ModelDescriptor with its canonical local path

    Raises:
        KeyError: If the model name is not in the catalogue
    """
    if name not in CATALOG:
        available = ", ".join(CATALOG)
        raise KeyError(f"Unknown model '{name}'. Available: {available}")
    entry = CATALOG[name]
    return ModelDescriptor(
        name=name,
        local_path=Path(cache_root) / MODELS_SUBDIR / name,
        source=entry.repo_id,
        size_hint=entry.size,
        description=entry.description,
    )
