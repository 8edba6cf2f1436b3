"""Root-level pytest configuration and fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


def pytest_sessionstart(session: pytest.Session) -> None:  # noqa: D401
    """Fail fast when a project venv exists but tests run outside it."""
    expected = Path.cwd() / ".venv" / ("Scripts" if os.name == "nt" else "bin") / "python"
    in_venv = getattr(sys, "base_prefix", sys.prefix) != sys.prefix
    if expected.exists() and not in_venv:
        pytest.exit(
            "Detected non-venv Python interpreter.\nPlease run tests via '.venv/bin/python -m pytest'.",
            returncode=3,
        )


@pytest.fixture(autouse=True)
def _isolate_batchscribe_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's BATCHSCRIBE_* settings out of the tests."""
    for name in list(os.environ):
        if name.startswith("BATCHSCRIBE_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Absolute path to the project root directory."""
    return Path(__file__).parent.parent
