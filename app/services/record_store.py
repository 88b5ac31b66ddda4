"""
Record store for CareBoard.

SQLite-backed storage for user profiles and medical records. One
connection is shared by all threads and every statement runs under the
store lock. Concurrent writers are not detected and the last one wins.
"""

import json
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from app.config import settings
from app.core.errors import RecordNotFoundError
from app.models.schemas import Record, UserProfile
from app.utils.logger import get_logger

logger = get_logger("record_store")


SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL,
    age INTEGER NOT NULL,
    location TEXT NOT NULL,
    folders_json TEXT NOT NULL DEFAULT '[]',
    created_by TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id),
    record_name TEXT NOT NULL,
    analysis_result TEXT NOT NULL DEFAULT '',
    kanban_records TEXT NOT NULL DEFAULT '',
    created_by TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""


class RecordStore:
    """
    Durable owner of profile and record state.

    `update_record` takes partial fields: a field passed as None is left
    unchanged, an empty string clears it.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self.init_db()

    def init_db(self) -> None:
        with self._lock:
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.executescript(SCHEMA)
            self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def create_user(self, username: str, age: int, location: str, created_by: str) -> UserProfile:
        with self._lock:
            cur = self._conn.execute(
                "INSERT INTO users (username, age, location, folders_json, created_by, created_at) "
                "VALUES (?,?,?,?,?,?)",
                (username, age, location, "[]", created_by, datetime.utcnow().isoformat()),
            )
            self._conn.commit()
            user_id = cur.lastrowid

        logger.info("User created", user_id=user_id, created_by=created_by)
        return self.get_user(user_id)

    def get_user(self, user_id: int) -> UserProfile:
        with self._lock:
            row = self._conn.execute("SELECT * FROM users WHERE id=?", (user_id,)).fetchone()
        if row is None:
            raise RecordNotFoundError(f"User not found: {user_id}")
        return self._row_to_user(row)

    def check_if_user_exists(self, email: str) -> Optional[UserProfile]:
        """Directory lookup: the profile owned by an email, if any."""
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM users WHERE created_by=?", (email,)
            ).fetchone()
        return self._row_to_user(row) if row else None

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def create_record(self, user: UserProfile, record_name: str) -> Record:
        """Create a record folder and list its name on the owner's profile."""
        now = datetime.utcnow().isoformat()
        with self._lock:
            row = self._conn.execute(
                "SELECT folders_json FROM users WHERE id=?", (user.id,)
            ).fetchone()
            if row is None:
                raise RecordNotFoundError(f"User not found: {user.id}")
            folders = json.loads(row["folders_json"] or "[]") + [record_name]

            cur = self._conn.execute(
                "INSERT INTO records (user_id, record_name, created_by, created_at) VALUES (?,?,?,?)",
                (user.id, record_name, user.created_by, now),
            )
            self._conn.execute(
                "UPDATE users SET folders_json=? WHERE id=?",
                (json.dumps(folders), user.id),
            )
            self._conn.commit()
            record_id = cur.lastrowid

        logger.info("Record created", record_id=record_id, user_id=user.id)
        return self.get_record(record_id)

    def get_record(self, record_id: int) -> Record:
        with self._lock:
            row = self._conn.execute("SELECT * FROM records WHERE id=?", (record_id,)).fetchone()
        if row is None:
            raise RecordNotFoundError(f"Record not found: {record_id}")
        return Record.model_validate(dict(row))

    def fetch_user_records(self, email: str) -> List[Record]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM records WHERE created_by=? ORDER BY id", (email,)
            ).fetchall()
        return [Record.model_validate(dict(r)) for r in rows]

    def update_record(
        self,
        document_id: int,
        analysis_result: Optional[str] = None,
        kanban_records: Optional[str] = None
    ) -> Record:
        assignments = []
        params = []
        if analysis_result is not None:
            assignments.append("analysis_result=?")
            params.append(analysis_result)
        if kanban_records is not None:
            assignments.append("kanban_records=?")
            params.append(kanban_records)

        if assignments:
            with self._lock:
                cur = self._conn.execute(
                    f"UPDATE records SET {', '.join(assignments)} WHERE id=?",
                    (*params, document_id),
                )
                self._conn.commit()
            if cur.rowcount == 0:
                raise RecordNotFoundError(f"Record not found: {document_id}")

        logger.info(
            "Record updated",
            record_id=document_id,
            fields=[a.split("=")[0] for a in assignments]
        )
        return self.get_record(document_id)

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> UserProfile:
        data = dict(row)
        data["folders"] = json.loads(data.pop("folders_json") or "[]")
        return UserProfile.model_validate(data)


# Lazy-loaded singleton
_store: Optional[RecordStore] = None


def get_record_store() -> RecordStore:
    """Get or create the record store singleton."""
    global _store
    if _store is None:
        _store = RecordStore(settings.database_file)
    return _store
