"""
SecurePass - Exceptions

Every error raised on purpose by the package derives from SecurePassError,
so the interactive menu can catch one type and show a short notification.
"""


class SecurePassError(Exception):
    """Base class for all SecurePass errors."""


class InvalidPolicy(SecurePassError, ValueError):
    """Generation policy resolves to an empty alphabet or a bad length."""


class DecryptionFailure(SecurePassError):
    """Ciphertext is malformed, tampered, or the key does not match."""


class EncryptionError(SecurePassError, ValueError):
    """Plaintext/key is not encodable text, or the scrypt cost is out of range."""


class AuthError(SecurePassError):
    """Sign-up or sign-in rejected."""


class NotAuthenticated(AuthError):
    """Operation needs a session but nobody is logged in."""


class StorageError(SecurePassError):
    """The password store rejected or failed an operation."""


class RecordNotFound(StorageError):
    """No saved password with that id for this user."""


class ClipboardUnavailable(SecurePassError):
    """No clipboard mechanism is available on this system."""
