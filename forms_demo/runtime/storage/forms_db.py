from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger("forms_demo.storage")

DB_VERSION = "1.0.0"
DB_VERSION_OPTION = "forms_demo_db_version"

SEED_FORM_TITLE = "Contact Form"
SEED_FORM_DESCRIPTION = "A simple contact form for demonstration purposes."


@dataclass
class FormRow:
    id: int
    title: str
    description: Optional[str]
    created_at: str
    updated_at: str


@dataclass
class SubmissionRow:
    id: int
    form_id: int
    name: str
    email: str
    message: str
    submitted_at: str


class FormsDB:
    """
    SQLite-backed store for forms and their submissions:
    - forms (updated_at refreshed by trigger on any update)
    - submissions (insert-only; updates are rejected by trigger)
    - options (key/value, holds the schema version marker)

    Every query binds values with `?` placeholders.
    """

    def __init__(self, path: Union[Path, str]):
        self.path = path
        if str(path) != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._con: sqlite3.Connection | None = None

    def _connect(self) -> sqlite3.Connection:
        if self._con is None:
            # FastAPI runs sync endpoints on a worker thread pool.
            con = sqlite3.connect(str(self.path), check_same_thread=False)
            con.row_factory = sqlite3.Row
            if str(self.path) != ":memory:":
                con.execute("PRAGMA journal_mode=WAL")
                con.execute("PRAGMA synchronous=NORMAL")
            self._con = con
        return self._con

    def close(self) -> None:
        if self._con is not None:
            try:
                self._con.close()
            finally:
                self._con = None

    def startup(self) -> bool:
        """
        Create tables and seed the demo form unless the stored version marker is current.
        Returns True when initialization work ran.
        """
        con = self._connect()
        con.execute(
            """
            CREATE TABLE IF NOT EXISTS options (
              name TEXT PRIMARY KEY,
              value TEXT NOT NULL
            )
            """
        )
        con.commit()
        if self.get_option(DB_VERSION_OPTION) == DB_VERSION:
            logger.debug("schema at version %s, nothing to do", DB_VERSION)
            return False

        con.executescript(
            """
            CREATE TABLE IF NOT EXISTS forms (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              title TEXT NOT NULL CHECK (length(title) > 0 AND length(title) <= 255),
              description TEXT,
              created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
              updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            );
            CREATE TRIGGER IF NOT EXISTS forms_touch_updated_at AFTER UPDATE ON forms
            FOR EACH ROW WHEN NEW.updated_at = OLD.updated_at BEGIN
              UPDATE forms SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
            END;

            CREATE TABLE IF NOT EXISTS submissions (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              form_id INTEGER NOT NULL,
              name TEXT NOT NULL CHECK (length(name) <= 255),
              email TEXT NOT NULL CHECK (length(email) <= 255),
              message TEXT,
              submitted_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            );
            CREATE INDEX IF NOT EXISTS submissions_form_id ON submissions(form_id);
            CREATE TRIGGER IF NOT EXISTS submissions_immutable BEFORE UPDATE ON submissions BEGIN
              SELECT RAISE(ABORT, 'submissions are immutable');
            END;
            """
        )
        con.commit()

        if self.count_forms() == 0:
            form_id = self.insert_form(SEED_FORM_TITLE, SEED_FORM_DESCRIPTION)
            logger.info("seeded demo form id=%s", form_id)

        self.add_option(DB_VERSION_OPTION, DB_VERSION)
        logger.info("forms schema initialized (version %s)", DB_VERSION)
        return True

    def get_option(self, name: str) -> Optional[str]:
        con = self._connect()
        row = con.execute("SELECT value FROM options WHERE name = ?", (str(name),)).fetchone()
        return str(row["value"]) if row else None

    def add_option(self, name: str, value: str) -> bool:
        """Store an option only if it is not set yet."""
        con = self._connect()
        cur = con.execute("INSERT OR IGNORE INTO options (name, value) VALUES (?, ?)", (str(name), str(value)))
        con.commit()
        return cur.rowcount > 0

    # forms

    def insert_form(self, title: str, description: Optional[str] = None) -> int:
        con = self._connect()
        cur = con.execute("INSERT INTO forms (title, description) VALUES (?, ?)", (title, description))
        con.commit()
        return int(cur.lastrowid)

    def update_form(self, form_id: int, *, title: str, description: Optional[str] = None) -> bool:
        """Admin-side helper; the service operations never update forms."""
        con = self._connect()
        cur = con.execute(
            "UPDATE forms SET title = ?, description = ? WHERE id = ?",
            (title, description, int(form_id)),
        )
        con.commit()
        return cur.rowcount > 0

    def form_exists(self, form_id: int) -> bool:
        con = self._connect()
        row = con.execute("SELECT COUNT(*) AS n FROM forms WHERE id = ?", (int(form_id),)).fetchone()
        return bool(row and int(row["n"]) > 0)

    def get_form(self, form_id: int) -> Optional[FormRow]:
        """Admin-side lookup; the service operations only check existence."""
        con = self._connect()
        row = con.execute(
            "SELECT id, title, description, created_at, updated_at FROM forms WHERE id = ?",
            (int(form_id),),
        ).fetchone()
        return _form_row(row) if row else None

    def count_forms(self) -> int:
        con = self._connect()
        row = con.execute("SELECT COUNT(*) AS n FROM forms").fetchone()
        return int(row["n"] if row else 0)

    def list_forms(self) -> List[FormRow]:
        con = self._connect()
        cur = con.execute("SELECT id, title, description, created_at, updated_at FROM forms ORDER BY id ASC")
        return [_form_row(r) for r in cur.fetchall()]

    # submissions

    def insert_submission(self, *, form_id: int, name: str, email: str, message: str) -> int:
        con = self._connect()
        cur = con.execute(
            "INSERT INTO submissions (form_id, name, email, message) VALUES (?, ?, ?, ?)",
            (int(form_id), name, email, message),
        )
        con.commit()
        return int(cur.lastrowid)

    def get_submission(self, submission_id: int) -> Optional[SubmissionRow]:
        con = self._connect()
        r = con.execute(
            "SELECT id, form_id, name, email, message, submitted_at FROM submissions WHERE id = ?",
            (int(submission_id),),
        ).fetchone()
        if r is None:
            return None
        return SubmissionRow(
            id=int(r["id"]),
            form_id=int(r["form_id"]),
            name=str(r["name"]),
            email=str(r["email"]),
            message=str(r["message"] or ""),
            submitted_at=str(r["submitted_at"]),
        )

    def count_submissions(self, form_id: Optional[int] = None) -> int:
        con = self._connect()
        if form_id is None:
            row = con.execute("SELECT COUNT(*) AS n FROM submissions").fetchone()
        else:
            row = con.execute("SELECT COUNT(*) AS n FROM submissions WHERE form_id = ?", (int(form_id),)).fetchone()
        return int(row["n"] if row else 0)


def _form_row(r: sqlite3.Row) -> FormRow:
    return FormRow(
        id=int(r["id"]),
        title=str(r["title"]),
        description=(str(r["description"]) if r["description"] is not None else None),
        created_at=str(r["created_at"]),
        updated_at=str(r["updated_at"]),
    )
