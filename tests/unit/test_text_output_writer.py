"""Unit tests for the atomic text writer."""

import stat
from pathlib import Path

import pytest

from batchscribe.exceptions import WriteError
from batchscribe.services.text_output_writer import TextOutputWriter


def test_writes_utf8_and_creates_directories(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "out" / "talk.txt"

    written = TextOutputWriter().write(target, "Tere, maailm! Žürii.\n")

    assert written == target
    assert target.read_text(encoding="utf-8") == "Tere, maailm! Žürii.\n"
    assert stat.S_IMODE(target.stat().st_mode) == 0o644
    assert [path.name for path in target.parent.iterdir()] == ["talk.txt"]


def test_replaces_existing_file(tmp_path: Path) -> None:
    target = tmp_path / "talk.txt"
    target.write_text("old", encoding="utf-8")

    TextOutputWriter().write(target, "new")

    assert target.read_text(encoding="utf-8") == "new"


def test_failure_raises_write_error_and_leaves_no_partial_file(tmp_path: Path) -> None:
    target = tmp_path / "talk.txt"
    target.mkdir()  # os.replace cannot put a file over a directory

    with pytest.raises(WriteError, match="Cannot write"):
        TextOutputWriter().write(target, "content")
    assert [path.name for path in tmp_path.iterdir()] == ["talk.txt"]
    assert target.is_dir()


def test_write_error_is_os_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(OSError):
        TextOutputWriter().write(blocker / "talk.txt", "content")
