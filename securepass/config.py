"""
SecurePass - Configuration

Module-level settings. Each one can be overridden with an environment
variable, read once at import time.
"""

import os


# =============================================================================
# Storage
# =============================================================================

DEFAULT_DB_PATH = os.path.join(os.path.expanduser("~"), ".securepass", "securepass.db")
DB_PATH = os.environ.get("SECUREPASS_DB", DEFAULT_DB_PATH)


# =============================================================================
# Crypto
# =============================================================================

# Application secret mixed into every per-user key (see crypto.derive_user_key).
# Unset means the bare account identifier is used as the key.
KEY_SECRET = os.environ.get("SECUREPASS_KEY_SECRET") or None

SCRYPT_R = 8
SCRYPT_P = 1

# Ceiling on scrypt work (memory ~ 128 * N * r * p bytes), both for what we
# write and for what we accept from a token header
MAX_SCRYPT_MEMORY = 64 * 1024 * 1024


def scrypt_params_valid(log_n, r, p) -> bool:
    """True if N = 2**log_n, r, p are usable and within MAX_SCRYPT_MEMORY."""
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in (log_n, r, p)):
        return False
    if log_n < 1 or r < 1 or p < 1 or max(log_n, r, p) > 255:
        return False
    return 128 * (2 ** log_n) * r * p <= MAX_SCRYPT_MEMORY


def _scrypt_log_n(env_name: str, default: str) -> int:
    raw = os.environ.get(env_name, default)
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{env_name} must be an integer, got {raw!r}") from None
    if not scrypt_params_valid(value, SCRYPT_R, SCRYPT_P):
        raise ValueError(
            f"{env_name}={value} is outside the supported scrypt cost "
            f"(1..{(MAX_SCRYPT_MEMORY // (128 * SCRYPT_R * SCRYPT_P)).bit_length() - 1})"
        )
    return value


# scrypt cost for new ciphertexts: N = 2**SCRYPT_LOG_N
# 15 -> ~32 MB RAM, roughly 60-100ms per record
SCRYPT_LOG_N = _scrypt_log_n("SECUREPASS_SCRYPT_LOG_N", "15")

# scrypt cost for account password hashes
ACCOUNT_SCRYPT_LOG_N = _scrypt_log_n("SECUREPASS_ACCOUNT_SCRYPT_LOG_N", "15")


# =============================================================================
# Password generator defaults (match the original slider and checkboxes)
# =============================================================================

DEFAULT_LENGTH = 16
MIN_UI_LENGTH = 8
MAX_UI_LENGTH = 32


# =============================================================================
# Accounts
# =============================================================================

MIN_ACCOUNT_PASSWORD_LENGTH = 6


# =============================================================================
# Logging
# =============================================================================

LOG_LEVEL = os.environ.get("SECUREPASS_LOG_LEVEL", "WARNING").upper()
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
