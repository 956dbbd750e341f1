"""CRUD operations for threads and runs."""

from __future__ import annotations

import sqlite3
import time
import uuid

from codedesk.core.exceptions import RunNotFoundError, RunStateError, ThreadNotFoundError, ThreadSyncError
from codedesk.schemas.common import OperationKind, ResponseLanguage
from codedesk.schemas.runs import (
    TERMINAL_STATUSES,
    OperationResponse,
    RunRecord,
    RunStatus,
    ThreadRecord,
    ThreadSnapshot,
    ThreadUpdateRequest,
    ThreadWorkspace,
    operation_response_adapter,
    workspace_files_adapter,
)

# Thread fields a partial update may change, mapped to their columns.
_UPDATABLE_THREAD_COLUMNS = {
    "title": "title",
    "mode": "mode",
    "pinned": "pinned",
    "response_language": "response_language",
    "review_code": "review_code",
    "review_language": "review_language",
    "review_filename": "review_filename",
    "review_files": "review_files_json",
    "generate_prompt": "generate_prompt",
    "generate_language": "generate_language",
    "generate_style": "generate_style",
    "active_run_id": "active_run_id",
}

_INSERT_THREAD_SQL = """INSERT INTO threads (
    id, title, mode, pinned, response_language, review_code, review_language, review_filename,
    review_files_json, generate_prompt, generate_language, generate_style, active_run_id,
    created_at, updated_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"""

_INSERT_RUN_SQL = """INSERT INTO runs (id, thread_id, mode, status, result_json, error_message, created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)"""


def _now_ms() -> int:
    return int(time.time() * 1000)


def _workspace_values(workspace: ThreadWorkspace) -> tuple:
    return (
        workspace.review_code,
        workspace.review_language,
        workspace.review_filename,
        workspace_files_adapter.dump_json(workspace.review_files, by_alias=True).decode(),
        workspace.generate_prompt,
        workspace.generate_language,
        workspace.generate_style,
    )


def _column_value(field: str, value):
    if field == "review_files":
        return workspace_files_adapter.dump_json(value, by_alias=True).decode()
    if field == "pinned":
        return int(value)
    if field == "mode":
        return OperationKind(value).value
    return value


class RunRepository:
    """Data access layer for threads and their run history."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # -- Threads --

    def create_thread(
        self,
        title: str,
        mode: OperationKind,
        response_language: ResponseLanguage = "ko",
        *,
        pinned: bool = False,
        workspace: ThreadWorkspace | None = None,
    ) -> ThreadRecord:
        now = _now_ms()
        thread_id = uuid.uuid4().hex
        self._conn.execute(
            _INSERT_THREAD_SQL,
            (
                thread_id,
                title,
                OperationKind(mode).value,
                int(pinned),
                response_language,
                *_workspace_values(workspace or ThreadWorkspace()),
                None,
                now,
                now,
            ),
        )
        self._conn.commit()
        return self.get_thread(thread_id)

    def thread_exists(self, thread_id: str) -> bool:
        row = self._conn.execute("SELECT 1 FROM threads WHERE id = ?", (thread_id,)).fetchone()
        return row is not None

    def get_thread(self, thread_id: str) -> ThreadRecord:
        row = self._conn.execute("SELECT * FROM threads WHERE id = ?", (thread_id,)).fetchone()
        if row is None:
            raise ThreadNotFoundError(thread_id)
        return self._row_to_thread(row, self.list_runs(thread_id))

    def list_threads(self) -> list[ThreadRecord]:
        """Pinned threads first, then by latest activity."""
        rows = self._conn.execute(
            "SELECT * FROM threads ORDER BY pinned DESC, updated_at DESC, created_at DESC, rowid DESC"
        ).fetchall()
        return [self._row_to_thread(row, self.list_runs(row["id"])) for row in rows]

    def update_thread(self, thread_id: str, update: ThreadUpdateRequest) -> ThreadRecord:
        """Apply the fields the caller sent and bump ``updated_at``."""
        changes = update.model_dump(exclude_unset=True)
        assignments = [f"{_UPDATABLE_THREAD_COLUMNS[field]} = ?" for field in changes]
        values = [_column_value(field, getattr(update, field)) for field in changes]
        cursor = self._conn.execute(
            f"UPDATE threads SET {', '.join([*assignments, 'updated_at = ?'])} WHERE id = ?",
            (*values, _now_ms(), thread_id),
        )
        self._conn.commit()
        if cursor.rowcount == 0:
            raise ThreadNotFoundError(thread_id)
        return self.get_thread(thread_id)

    def replace_threads(self, snapshots: list[ThreadSnapshot]) -> list[ThreadRecord]:
        """Replace every stored thread, and the runs they own, with ``snapshots``.

        Runs that belong to no thread are kept. The whole replacement is one
        transaction.
        """
        now = _now_ms()
        try:
            with self._conn:
                self._conn.execute("DELETE FROM threads")
                for thread in snapshots:
                    updated_at = thread.updated_at or now
                    if thread.created_at is not None:
                        created_at = thread.created_at
                    elif thread.runs:
                        created_at = min(run.created_at for run in thread.runs)
                    else:
                        created_at = updated_at
                    self._conn.execute(
                        _INSERT_THREAD_SQL,
                        (
                            thread.id,
                            thread.title,
                            thread.mode.value,
                            int(thread.pinned),
                            thread.response_language,
                            *_workspace_values(thread),
                            thread.active_run_id,
                            created_at,
                            updated_at,
                        ),
                    )
                    for run in thread.runs:
                        result_json = run.result.model_dump_json(by_alias=True) if run.result is not None else None
                        self._conn.execute(
                            _INSERT_RUN_SQL,
                            (
                                run.id,
                                thread.id,
                                run.mode.value,
                                run.status.value,
                                result_json,
                                run.error_message,
                                run.created_at,
                                run.updated_at,
                            ),
                        )
        except sqlite3.IntegrityError as exc:
            raise ThreadSyncError(str(exc)) from exc
        return self.list_threads()

    # -- Runs --

    def create_run(self, mode: OperationKind, thread_id: str | None = None) -> RunRecord:
        """Start a run. A threaded run becomes its thread's active run."""
        now = _now_ms()
        run_id = uuid.uuid4().hex
        self._conn.execute(
            _INSERT_RUN_SQL,
            (run_id, thread_id, OperationKind(mode).value, RunStatus.running.value, None, None, now, now),
        )
        if thread_id is not None:
            self._conn.execute(
                "UPDATE threads SET active_run_id = ?, updated_at = ? WHERE id = ?", (run_id, now, thread_id)
            )
        self._conn.commit()
        return self.get_run(run_id)

    def finish_run(
        self,
        run_id: str,
        status: RunStatus,
        *,
        result: OperationResponse | None = None,
        error_message: str | None = None,
    ) -> RunRecord:
        """Move a running run to a terminal status. Each run may only be finished once."""
        if status not in TERMINAL_STATUSES:
            raise RunStateError(f"{status.value} is not a terminal run status")
        if status is RunStatus.success and result is None:
            raise RunStateError("a successful run needs a result")

        result_json = result.model_dump_json(by_alias=True) if result is not None else None
        cursor = self._conn.execute(
            """UPDATE runs SET status = ?, result_json = ?, error_message = ?, updated_at = ?
            WHERE id = ? AND status = ?""",
            (status.value, result_json, error_message, _now_ms(), run_id, RunStatus.running.value),
        )
        self._conn.commit()
        if cursor.rowcount == 0:
            current = self.get_run(run_id)
            raise RunStateError(f"run {run_id} is already {current.status.value}")
        return self.get_run(run_id)

    def get_run(self, run_id: str) -> RunRecord:
        row = self._conn.execute("SELECT * FROM runs WHERE id = ?", (run_id,)).fetchone()
        if row is None:
            raise RunNotFoundError(run_id)
        return self._row_to_run(row)

    def list_runs(self, thread_id: str) -> list[RunRecord]:
        rows = self._conn.execute(
            "SELECT * FROM runs WHERE thread_id = ? ORDER BY created_at DESC, rowid DESC",
            (thread_id,),
        ).fetchall()
        return [self._row_to_run(row) for row in rows]

    def _row_to_run(self, row: sqlite3.Row) -> RunRecord:
        result = None
        if row["result_json"]:
            result = operation_response_adapter.validate_json(row["result_json"])
        return RunRecord(
            id=row["id"],
            thread_id=row["thread_id"],
            mode=row["mode"],
            status=row["status"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            result=result,
            error_message=row["error_message"],
        )

    def _row_to_thread(self, row: sqlite3.Row, runs: list[RunRecord]) -> ThreadRecord:
        # A stale active run id falls back to the newest run.
        active_run_id = row["active_run_id"]
        if active_run_id not in {run.id for run in runs}:
            active_run_id = runs[0].id if runs else None
        return ThreadRecord(
            id=row["id"],
            title=row["title"],
            mode=row["mode"],
            pinned=bool(row["pinned"]),
            response_language=row["response_language"],
            review_code=row["review_code"],
            review_language=row["review_language"],
            review_filename=row["review_filename"],
            review_files=workspace_files_adapter.validate_json(row["review_files_json"]),
            generate_prompt=row["generate_prompt"],
            generate_language=row["generate_language"],
            generate_style=row["generate_style"],
            active_run_id=active_run_id,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            runs=runs,
        )
