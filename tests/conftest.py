"""Shared test fixtures for the textsidecar test suite."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from textsidecar.extraction.types import SourceFile


@pytest.fixture
def fixed_mtime() -> datetime:
    return datetime(2026, 1, 15, 9, 30, 12, 345678, tzinfo=UTC)


@pytest.fixture
def make_source(fixed_mtime: datetime):
    """Build a SourceFile for an existing path with a controlled modification time."""

    def _make(path: Path, *, mtime: datetime | None = None) -> SourceFile:
        return SourceFile(
            name=path.name,
            path=path,
            is_directory=path.is_dir(),
            size=path.stat().st_size if path.exists() else 0,
            modification_time=mtime or fixed_mtime,
        )

    return _make
