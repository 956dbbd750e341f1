"""Shared test fixtures for codedesk."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from codedesk.storage.db import get_connection
from codedesk.storage.repository import RunRepository


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "test.db"


@pytest.fixture
def db_conn(db_path: Path) -> sqlite3.Connection:
    conn = get_connection(db_path)
    yield conn
    conn.close()


@pytest.fixture
def repo(db_conn: sqlite3.Connection) -> RunRepository:
    return RunRepository(db_conn)
