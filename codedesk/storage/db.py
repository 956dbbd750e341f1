"""SQLite database setup for threads and runs."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from urllib.parse import unquote, urlparse

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS threads (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    mode TEXT NOT NULL CHECK (mode IN ('review', 'generate')),
    pinned INTEGER NOT NULL DEFAULT 0,
    response_language TEXT NOT NULL CHECK (response_language IN ('ko', 'en')),
    review_code TEXT NOT NULL DEFAULT '',
    review_language TEXT NOT NULL DEFAULT 'typescript'
        CHECK (review_language IN ('typescript', 'javascript', 'python', 'java', 'kotlin')),
    review_filename TEXT NOT NULL DEFAULT 'snippet.ts',
    review_files_json TEXT NOT NULL DEFAULT '[]',
    generate_prompt TEXT NOT NULL DEFAULT '',
    generate_language TEXT NOT NULL DEFAULT 'typescript'
        CHECK (generate_language IN ('typescript', 'javascript', 'python', 'java', 'kotlin')),
    generate_style TEXT NOT NULL DEFAULT 'clean' CHECK (generate_style IN ('clean', 'fast', 'explain')),
    active_run_id TEXT,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS runs (
    id TEXT PRIMARY KEY,
    thread_id TEXT REFERENCES threads(id) ON DELETE CASCADE,
    mode TEXT NOT NULL CHECK (mode IN ('review', 'generate')),
    status TEXT NOT NULL CHECK (status IN ('running', 'success', 'failed', 'cancelled')),
    result_json TEXT,
    error_message TEXT,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_threads_pinned_updated_at ON threads(pinned DESC, updated_at DESC);
CREATE INDEX IF NOT EXISTS idx_runs_thread_created_at ON runs(thread_id, created_at DESC);
"""


def resolve_database_path(database_url: str) -> Path:
    """Accept ``file:relative/path``, ``file:///absolute/path`` or a bare path."""
    if database_url.startswith("file://"):
        return Path(unquote(urlparse(database_url).path))
    if database_url.startswith("file:"):
        return Path(database_url[len("file:"):]).resolve()
    return Path(database_url).resolve()


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Create or open the database and make sure the schema exists."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.executescript(SCHEMA_SQL)
    conn.commit()
    return conn
