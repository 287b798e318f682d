"""
SecurePass - Password Store

SQLite storage for saved passwords. The store only ever sees ciphertext:
encryption happens in the manager before insert, decryption after read.

Database structure:
- passwords: one row per saved password (title + ciphertext + owner)
- accounts: see accounts.py (same database file)
"""

import logging
import os
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from . import config
from .errors import RecordNotFound, StorageError

logger = logging.getLogger(__name__)


# =============================================================================
# DATABASE SCHEMA
# =============================================================================

SCHEMA = """
CREATE TABLE IF NOT EXISTS passwords (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    encrypted_password TEXT NOT NULL,
    user_id TEXT NOT NULL,
    created_at TEXT NOT NULL          -- ISO-8601 UTC, microseconds
);

CREATE INDEX IF NOT EXISTS idx_passwords_user_created
    ON passwords(user_id, created_at);
"""

# SQLite PRAGMAs for crash safety
PRAGMAS = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=FULL;
PRAGMA foreign_keys=ON;
PRAGMA secure_delete=ON;
"""

COLUMNS = "id, title, encrypted_password, user_id, created_at"


def connect(db_path: str) -> sqlite3.Connection:
    """Open a connection with row access by column name and PRAGMAs applied."""
    d = os.path.dirname(db_path)
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)

    try:
        conn = sqlite3.connect(db_path)
        conn.row_factory = sqlite3.Row
        conn.executescript(PRAGMAS)
    except sqlite3.Error as e:
        raise StorageError(f"Cannot open database {db_path}: {e}") from e
    return conn


def utc_now() -> str:
    """Current time as ISO-8601 UTC text (sortable)."""
    return datetime.now(timezone.utc).isoformat(timespec='microseconds')


# =============================================================================
# PASSWORD STORE
# =============================================================================

class PasswordStore:
    """
    Saved-password table.

    Usage:
        with PasswordStore("securepass.db") as store:
            row = store.insert("GitHub", token, user_id)
            rows = store.list_for_user(user_id)   # newest first
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or config.DB_PATH
        self.conn: Optional[sqlite3.Connection] = None

    def open(self) -> "PasswordStore":
        """Connect and create the table if needed."""
        if self.conn is None:
            self.conn = connect(self.db_path)
            self.conn.executescript(SCHEMA)
        return self

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> "PasswordStore":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    def insert(self, title: str, encrypted_password: str, user_id: str) -> Dict:
        """
        Save one encrypted password.

        Returns:
            The stored row: id, title, encrypted_password, user_id, created_at

        Raises:
            StorageError: Missing title/ciphertext/user, or database failure
        """
        self._require_open()
        if not title or not title.strip():
            raise StorageError("Title is required")
        if not encrypted_password:
            raise StorageError("Encrypted password is required")
        if not user_id:
            raise StorageError("User id is required")

        row = {
            'id': str(uuid.uuid4()),
            'title': title.strip(),
            'encrypted_password': encrypted_password,
            'user_id': user_id,
            'created_at': utc_now(),
        }
        try:
            self.conn.execute(
                f"INSERT INTO passwords ({COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                (row['id'], row['title'], row['encrypted_password'],
                 row['user_id'], row['created_at'])
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Insert failed: {e}") from e

        logger.info("Saved password %s for user %s", row['id'], user_id)
        return row

    def list_for_user(self, user_id: str) -> List[Dict]:
        """All rows owned by user_id, newest first."""
        self._require_open()
        try:
            rows = self.conn.execute(
                f"""SELECT {COLUMNS} FROM passwords
                    WHERE user_id = ?
                    ORDER BY created_at DESC, rowid DESC""",
                (user_id,)
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Select failed: {e}") from e
        return [dict(row) for row in rows]

    def get(self, record_id: str, user_id: str) -> Dict:
        """
        One row by id, only if owned by user_id.

        Raises:
            RecordNotFound: No such row for this user
        """
        self._require_open()
        try:
            row = self.conn.execute(
                f"SELECT {COLUMNS} FROM passwords WHERE id = ? AND user_id = ?",
                (record_id, user_id)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Select failed: {e}") from e
        if not row:
            raise RecordNotFound(f"Password {record_id} not found")
        return dict(row)

    def delete(self, record_id: str, user_id: str) -> None:
        """
        Remove one row owned by user_id.

        Raises:
            RecordNotFound: No such row for this user
        """
        self._require_open()
        try:
            cur = self.conn.execute(
                "DELETE FROM passwords WHERE id = ? AND user_id = ?",
                (record_id, user_id)
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Delete failed: {e}") from e
        if cur.rowcount == 0:
            raise RecordNotFound(f"Password {record_id} not found")
        logger.info("Deleted password %s for user %s", record_id, user_id)

    def _require_open(self) -> None:
        if not self.conn:
            raise StorageError("Store is closed. Call open() first.")
