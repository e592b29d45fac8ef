from __future__ import annotations

import sys
from pathlib import Path
from typing import Generator

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from db2rest.config import Settings


@pytest.fixture
def settings(tmp_path: Path) -> Generator[Settings, None, None]:
    """Return a fresh Settings instance for each test, isolated from the environment's .env."""

    yield Settings(
        _env_file=None,
        host="db2.example.local",
        port=446,
        user="ADMIN",
        password="secret",
        profile_path=tmp_path / "profile.json",
    )
