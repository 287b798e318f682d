"""
SecurePass - Accounts

Local sign-up / sign-in. A successful call returns a Session whose user_id
is what the manager uses to own (and key) saved passwords.
"""

import logging
import os
import sqlite3
import uuid
from dataclasses import dataclass
from typing import Optional

from . import config, crypto
from .errors import AuthError, StorageError
from .store import connect, utc_now

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_salt BLOB NOT NULL,
    password_hash BLOB NOT NULL,
    scrypt_log_n INTEGER NOT NULL,
    created_at TEXT NOT NULL
);
"""

INVALID_CREDENTIALS = "Invalid login credentials"


@dataclass(frozen=True)
class Session:
    """Logged-in user."""

    user_id: str
    email: str


def normalize_email(email: str) -> str:
    """Strip and lower-case; reject anything without a local part and domain."""
    email = (email or "").strip().lower()
    local, _, domain = email.partition("@")
    if not local or not domain:
        raise AuthError("Please enter a valid email address")
    return email


class AccountStore:
    """
    Accounts table in the SecurePass database.

    Usage:
        with AccountStore(db_path) as accounts:
            session = accounts.sign_up("alice@example.com", "hunter22")
            session = accounts.sign_in("alice@example.com", "hunter22")
    """

    def __init__(self, db_path: Optional[str] = None, log_n: Optional[int] = None):
        self.db_path = db_path or config.DB_PATH
        self.log_n = log_n if log_n is not None else config.ACCOUNT_SCRYPT_LOG_N
        self.conn: Optional[sqlite3.Connection] = None

    def open(self) -> "AccountStore":
        if self.conn is None:
            self.conn = connect(self.db_path)
            self.conn.executescript(SCHEMA)
        return self

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> "AccountStore":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    def sign_up(self, email: str, password: str) -> Session:
        """
        Create an account and return its session.

        Raises:
            AuthError: Bad email, short password, or email already registered
        """
        self._require_open()
        email = normalize_email(email)
        if not password or len(password) < config.MIN_ACCOUNT_PASSWORD_LENGTH:
            raise AuthError(
                f"Password should be at least {config.MIN_ACCOUNT_PASSWORD_LENGTH} characters"
            )

        user_id = str(uuid.uuid4())
        salt = os.urandom(crypto.SALT_SIZE)
        password_hash = crypto.hash_account_password(password, salt, self.log_n)

        try:
            self.conn.execute(
                """INSERT INTO accounts
                   (id, email, password_salt, password_hash, scrypt_log_n, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (user_id, email, salt, password_hash, self.log_n, utc_now())
            )
            self.conn.commit()
        except sqlite3.IntegrityError as e:
            raise AuthError("User already registered") from e
        except sqlite3.Error as e:
            raise StorageError(f"Account insert failed: {e}") from e

        logger.info("Registered user %s", user_id)
        return Session(user_id=user_id, email=email)

    def sign_in(self, email: str, password: str) -> Session:
        """
        Check credentials and return the session.

        Raises:
            AuthError: Unknown email or wrong password (same message for both)
        """
        self._require_open()
        email = normalize_email(email)
        if not password:
            raise AuthError(INVALID_CREDENTIALS)
        try:
            row = self.conn.execute(
                "SELECT * FROM accounts WHERE email = ?", (email,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Account lookup failed: {e}") from e

        if not row:
            logger.info("Sign-in for unknown email")
            raise AuthError(INVALID_CREDENTIALS)

        candidate = crypto.hash_account_password(
            password, row['password_salt'], row['scrypt_log_n']
        )
        if not crypto.constant_compare(candidate, row['password_hash']):
            logger.info("Wrong password for user %s", row['id'])
            raise AuthError(INVALID_CREDENTIALS)

        return Session(user_id=row['id'], email=row['email'])

    def _require_open(self) -> None:
        if not self.conn:
            raise StorageError("Account store is closed. Call open() first.")
