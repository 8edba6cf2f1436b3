"""Concrete implementation of OutputWriter for plain-text transcripts."""

import os
import tempfile
from pathlib import Path

from batchscribe.exceptions import WriteError


class TextOutputWriter:
    """Writes UTF-8 text atomically.

    Content goes to a temp file in the destination directory and is moved over
    the output path with ``os.replace``, so a failed write never leaves a
    partial transcript that a later run would mistake for finished work.
    """

    def write(self, output_path: Path, content: str) -> Path:
        target = Path(output_path)
        temp_name: str | None = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            # mkstemp creates 0600 files
            os.chmod(temp_name, 0o644)
            os.replace(temp_name, target)
        except OSError as exc:
            if temp_name is not None:
                Path(temp_name).unlink(missing_ok=True)
            raise WriteError(f"Cannot write {target}: {exc}") from exc
        return target
