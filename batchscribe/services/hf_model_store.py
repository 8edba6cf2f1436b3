"""Model store backed by the Hugging Face Hub."""

from __future__ import annotations

import logging
import re
import shutil
import threading
from pathlib import Path
from typing import Any, Callable

from huggingface_hub import snapshot_download  # type: ignore[import-untyped]

from batchscribe.exceptions import DownloadError
from batchscribe.model_config import ModelDescriptor

LOGGER = logging.getLogger(__name__)

# CTranslate2 weights; a model directory without it is incomplete
MODEL_WEIGHTS_FILE = "model.bin"
PARTIAL_SUFFIX = ".partial"

_REPO_ID_RE = re.compile(r"^[a-zA-Z0-9_-]+/[a-zA-Z0-9_.-]+$")


class _NoOpTqdm:
    """No-op tqdm class to disable progress bars in huggingface_hub downloads.

    The CLI draws its own progress; parallel hub bars would garble it.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        pass

    def __enter__(self) -> "_NoOpTqdm":
        return self

    def __exit__(self, *args: Any) -> None:
        pass

    def __iter__(self) -> "_NoOpTqdm":
        return self

    def __next__(self) -> None:
        raise StopIteration

    def update(self, n: int = 1) -> None:
        pass

    def set_description(self, desc: str | None = None, refresh: bool = True) -> None:
        pass

    def close(self) -> None:
        pass

    def refresh(self) -> None:
        pass

    @classmethod
    def get_lock(cls) -> threading.Lock:
        """Required by tqdm's thread_map function when using a custom tqdm class."""
        if not hasattr(cls, "_lock"):
            cls._lock = threading.Lock()
        return cls._lock

    @classmethod
    def set_lock(cls, lock: threading.Lock) -> None:
        cls._lock = lock


class HuggingFaceModelStore:
    """Downloads CTranslate2 Whisper models into ``<cache>/models/<name>``.

    Files land in a ``.partial`` sibling first and are renamed into place only
    when the transfer completed, so an interrupted download never looks cached.
    """

    def __init__(self, downloader: Callable[..., str] = snapshot_download):
        self._downloader = downloader

    def is_cached(self, descriptor: ModelDescriptor) -> bool:
        return (descriptor.local_path / MODEL_WEIGHTS_FILE).is_file()

    def fetch(self, descriptor: ModelDescriptor) -> Path:
        """Download ``descriptor`` and return its canonical local path.

        Raises:
            DownloadError: If the repo id is unsafe, the transfer fails, or the
                downloaded snapshot has no model weights
        """
        if not _REPO_ID_RE.match(descriptor.source):
            raise DownloadError(f"Unsafe Hugging Face repo id for model {descriptor.name}: {descriptor.source}")

        target = descriptor.local_path
        partial = target.with_name(target.name + PARTIAL_SUFFIX)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if partial.exists():
                LOGGER.debug("Removing leftover partial download at %s", partial)
                shutil.rmtree(partial)

            # Note: huggingface_hub uses HTTPS by default
            self._downloader(descriptor.source, local_dir=str(partial), tqdm_class=_NoOpTqdm)

            if not (partial / MODEL_WEIGHTS_FILE).is_file():
                raise DownloadError(f"{descriptor.source} has no {MODEL_WEIGHTS_FILE}; not a CTranslate2 model")

            if target.exists():
                shutil.rmtree(target)
            partial.rename(target)
        except DownloadError:
            shutil.rmtree(partial, ignore_errors=True)
            raise
        except Exception as exc:
            shutil.rmtree(partial, ignore_errors=True)
            raise DownloadError(f"Failed to download {descriptor.source}: {exc}") from exc

        return target
