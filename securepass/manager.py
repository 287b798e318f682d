"""
SecurePass - Password Manager (session + form state)

Holds what the front end shows: who is logged in, the generator options,
the last generated password and the saved-password list. Every operation
that touches saved passwords needs a session; the session's user id owns
the rows and is the input to the record key.

Usage:
    with PasswordManager("securepass.db") as pm:
        pm.login("alice@example.com", "hunter22")
        pm.set_policy(length=20, include_symbols=False)
        pm.generate()
        pm.save("GitHub")
        pm.copy_saved(pm.saved_passwords[0]['id'])
"""

import dataclasses
import logging
from typing import Callable, Dict, List, Optional

from . import config, crypto
from .accounts import AccountStore, Session
from .clipboard import copy_to_clipboard
from .errors import InvalidPolicy, NotAuthenticated, SecurePassError
from .store import PasswordStore

logger = logging.getLogger(__name__)


class PasswordManager:
    """Session-scoped state plus the generate / save / copy operations."""

    def __init__(
        self,
        db_path: Optional[str] = None,
        key_secret: Optional[str] = None,
        log_n: Optional[int] = None,
        account_log_n: Optional[int] = None,
        copy: Callable[[str], None] = copy_to_clipboard,
    ):
        """
        Args:
            db_path: SQLite file (default config.DB_PATH)
            key_secret: Application secret for derive_user_key()
                (default config.KEY_SECRET)
            log_n: scrypt cost for new ciphertexts (default config.SCRYPT_LOG_N)
            account_log_n: scrypt cost for new account hashes
            copy: Clipboard function (tests pass a stub)
        """
        self.db_path = db_path or config.DB_PATH
        self.key_secret = key_secret if key_secret is not None else config.KEY_SECRET
        self.log_n = log_n
        self.copy = copy

        self.accounts = AccountStore(self.db_path, log_n=account_log_n)
        self.store = PasswordStore(self.db_path)

        self.session: Optional[Session] = None
        self.policy = crypto.GenerationPolicy()
        self.generated_password = ""
        self.saved_passwords: List[Dict] = []

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def open(self) -> "PasswordManager":
        self.accounts.open()
        self.store.open()
        return self

    def close(self) -> None:
        self.logout()
        self.accounts.close()
        self.store.close()

    def __enter__(self) -> "PasswordManager":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    # =========================================================================
    # Session
    # =========================================================================

    def sign_up(self, email: str, password: str) -> Session:
        """Register and log straight in."""
        return self._start_session(self.accounts.sign_up(email, password))

    def login(self, email: str, password: str) -> Session:
        return self._start_session(self.accounts.sign_in(email, password))

    def logout(self) -> None:
        """Drop the session and everything shown for it."""
        if self.session:
            logger.info("Logged out user %s", self.session.user_id)
        self.session = None
        self.generated_password = ""
        self.saved_passwords = []

    @property
    def logged_in(self) -> bool:
        return self.session is not None

    # =========================================================================
    # Generator
    # =========================================================================

    def set_policy(self, **changes) -> crypto.GenerationPolicy:
        """
        Update generator options, e.g. set_policy(length=24, include_symbols=False).

        Raises:
            InvalidPolicy: Unknown option name
        """
        known = {f.name for f in dataclasses.fields(crypto.GenerationPolicy)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise InvalidPolicy(f"Unknown generator option(s): {', '.join(unknown)}")
        self.policy = dataclasses.replace(self.policy, **changes)
        return self.policy

    def generate(self) -> str:
        """Generate with the current policy and remember the result."""
        self.generated_password = crypto.generate_password(self.policy)
        return self.generated_password

    def copy_generated(self) -> None:
        if not self.generated_password:
            raise SecurePassError("Generate a password first")
        self.copy(self.generated_password)

    # =========================================================================
    # Saved passwords
    # =========================================================================

    def save(self, title: str) -> Dict:
        """
        Encrypt the generated password and store it under title.

        On success the generated password is cleared and the list reloaded.

        Raises:
            NotAuthenticated: No session
            SecurePassError: Missing title or nothing generated
            StorageError: Insert failed
        """
        session = self._require_session()
        if not title or not title.strip() or not self.generated_password:
            raise SecurePassError("Please provide both title and generate a password")

        token = crypto.encrypt_password(self.generated_password, self._user_key(), self.log_n)
        row = self.store.insert(title, token, session.user_id)

        self.generated_password = ""
        self.refresh()
        return row

    def refresh(self) -> List[Dict]:
        """Reload the saved-password list (newest first)."""
        session = self._require_session()
        self.saved_passwords = self.store.list_for_user(session.user_id)
        return self.saved_passwords

    def reveal(self, record_id: str) -> str:
        """
        Decrypt one saved password.

        Raises:
            RecordNotFound: Not one of this user's rows
            DecryptionFailure: Token does not decrypt under this user's key
        """
        session = self._require_session()
        token = self.store.get(record_id, session.user_id)['encrypted_password']

        # Rows written by the browser client were keyed with the bare user id
        if token.startswith(crypto.LEGACY_PREFIX):
            return crypto.decrypt_password(token, session.user_id)
        return crypto.decrypt_password(token, self._user_key())

    def copy_saved(self, record_id: str) -> None:
        self.copy(self.reveal(record_id))

    def delete(self, record_id: str) -> None:
        session = self._require_session()
        self.store.delete(record_id, session.user_id)
        self.refresh()

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _start_session(self, session: Session) -> Session:
        self.session = session
        self.generated_password = ""
        if not self.key_secret:
            logger.warning(
                "No SECUREPASS_KEY_SECRET set: saved passwords are keyed by the "
                "account id alone, which is not a secret"
            )
        logger.info("Logged in user %s", session.user_id)
        self.refresh()
        return session

    def _user_key(self) -> str:
        return crypto.derive_user_key(self._require_session().user_id, self.key_secret)

    def _require_session(self) -> Session:
        if not self.session:
            raise NotAuthenticated("Please log in first")
        return self.session
