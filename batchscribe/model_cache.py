"""Make sure models are present locally, downloading each at most once at a time.

Workers ask for a model right before they need it. The first worker to ask for
an uncached model becomes the leader and performs the download; every other
worker asking for the same model while that download is running waits on the
leader's future and gets the same path or the same error. Requests for
different models do not wait on each other.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from pathlib import Path

from batchscribe.exceptions import DownloadError, UnknownModelError
from batchscribe.model_config import ModelDescriptor, get_model
from batchscribe.services.interfaces import ModelStore

LOGGER = logging.getLogger(__name__)


class ModelCache:
    """Single-flight coordinator in front of a ModelStore."""

    def __init__(self, store: ModelStore, cache_root: Path):
        """Initialize the coordinator.

        Args:
            store: Model store that performs the actual transfer
            cache_root: Cache directory models are resolved against
        """
        self._store = store
        self._cache_root = Path(cache_root)
        self._lock = threading.Lock()
        self._in_flight: dict[str, Future[Path]] = {}
        self._ready: dict[str, Path] = {}

    @property
    def cache_root(self) -> Path:
        return self._cache_root

    def describe(self, model_name: str) -> ModelDescriptor:
        """Resolve ``model_name`` against the catalogue or raise UnknownModelError."""
        try:
            return get_model(model_name, self._cache_root)
        except KeyError as exc:
            raise UnknownModelError(str(exc.args[0])) from exc

    def ensure_cached(self, model_name: str) -> Path:
        """Return the local path of ``model_name``, downloading it if needed.

        Raises:
            UnknownModelError: If the name is not in the catalogue
            DownloadError: If the model store fails to fetch the model
        """
        descriptor = self.describe(model_name)

        with self._lock:
            ready = self._ready.get(model_name)
            if ready is not None:
                return ready
            future = self._in_flight.get(model_name)
            leader = future is None
            if future is None:
                future = Future()
                self._in_flight[model_name] = future

        if not leader:
            LOGGER.debug("Waiting for in-flight download of model %s", model_name)
            try:
                return future.result()
            except DownloadError as exc:
                # each waiter gets its own exception; the leader's is shared
                raise DownloadError(str(exc)) from exc

        try:
            path = self._resolve(descriptor)
        except BaseException as exc:
            with self._lock:
                del self._in_flight[model_name]
            future.set_exception(exc)
            raise

        with self._lock:
            self._ready[model_name] = path
            del self._in_flight[model_name]
        future.set_result(path)
        return path

    def _resolve(self, descriptor: ModelDescriptor) -> Path:
        if self._store.is_cached(descriptor):
            LOGGER.debug("Model %s already cached at %s", descriptor.name, descriptor.local_path)
            return descriptor.local_path

        LOGGER.info("📥 Model %s not found, downloading (%s)...", descriptor.name, descriptor.size_hint)
        try:
            path = self._store.fetch(descriptor)
        except DownloadError:
            raise
        except Exception as exc:
            raise DownloadError(f"Failed to download model {descriptor.name}: {exc}") from exc
        LOGGER.info("✅ Model %s ready at %s", descriptor.name, path)
        return path
