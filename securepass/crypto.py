"""
SecurePass - Cryptography Module

Everything that touches randomness or ciphers lives here:
- Password generation from a character-class policy
- Password encryption/decryption for storage (AES-256-GCM + scrypt)
- Reading ciphertexts written by the old browser client (OpenSSL "Salted__")
- Per-user key derivation and account password hashing

Token layout (URL-safe base64, no secrets needed besides the key string):

    version(1) | log2(N)(1) | r(1) | p(1) | salt(16) | nonce(12) | ciphertext+tag

    1. Key string + salt -> scrypt(N, r, p) -> AES key (32 bytes)
    2. AES-256-GCM over the UTF-8 plaintext, header bytes as associated data
"""

import base64
import binascii
import hashlib
import hmac
import logging
import os
import secrets
import string
from dataclasses import dataclass
from typing import Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from . import config
from .errors import DecryptionFailure, EncryptionError, InvalidPolicy

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

TOKEN_VERSION = 1
KEY_SIZE = 32            # AES-256
SALT_SIZE = 16
NONCE_SIZE = 12          # 96-bit nonce for AES-GCM
TAG_SIZE = 16
HEADER_SIZE = 4
MIN_TOKEN_SIZE = HEADER_SIZE + SALT_SIZE + NONCE_SIZE + TAG_SIZE

# Largest log2(N) encrypt_password() accepts at the configured r and p
MAX_LOG_N = (config.MAX_SCRYPT_MEMORY // (128 * config.SCRYPT_R * config.SCRYPT_P)).bit_length() - 1

# OpenSSL-compatible tokens written by the browser client
LEGACY_MAGIC = b"Salted__"
LEGACY_PREFIX = "U2FsdGVkX1"   # base64 of the magic
LEGACY_SALT_SIZE = 8
LEGACY_IV_SIZE = 16

RECORD_KEY_INFO = "securepass-record-v1"


# =============================================================================
# Password Generation
# =============================================================================

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
NUMBERS = string.digits
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"


@dataclass(frozen=True)
class GenerationPolicy:
    """Length and character classes for one generated password."""

    length: int = config.DEFAULT_LENGTH
    include_uppercase: bool = True
    include_lowercase: bool = True
    include_numbers: bool = True
    include_symbols: bool = True


def resolve_alphabet(policy: GenerationPolicy) -> str:
    """
    Concatenate the enabled character classes.

    Order is fixed: uppercase, lowercase, numbers, symbols.

    Raises:
        InvalidPolicy: If every class is disabled
    """
    alphabet = ""
    if policy.include_uppercase:
        alphabet += UPPERCASE
    if policy.include_lowercase:
        alphabet += LOWERCASE
    if policy.include_numbers:
        alphabet += NUMBERS
    if policy.include_symbols:
        alphabet += SYMBOLS

    if not alphabet:
        raise InvalidPolicy("At least one character class must be enabled")
    return alphabet


def generate_password(policy: Optional[GenerationPolicy] = None) -> str:
    """
    Generate a random password from a policy.

    Each position is drawn independently and uniformly from the resolved
    alphabet with secrets.choice() (backed by os.urandom).

    Args:
        policy: Length and character classes (defaults: 16 chars, all classes)

    Returns:
        Random password string of exactly policy.length characters

    Raises:
        InvalidPolicy: Empty alphabet or length below 1
    """
    if policy is None:
        policy = GenerationPolicy()

    if isinstance(policy.length, bool) or not isinstance(policy.length, int) or policy.length < 1:
        raise InvalidPolicy(f"Length must be a positive integer, got {policy.length!r}")

    alphabet = resolve_alphabet(policy)
    return ''.join(secrets.choice(alphabet) for _ in range(policy.length))


# =============================================================================
# Key Derivation
# =============================================================================

def derive_record_key(key: str, salt: bytes, log_n: int, r: int, p: int) -> bytes:
    """
    Stretch the caller's key string into a 32-byte AES key with scrypt.

    Args:
        key: Key string (user key from derive_user_key())
        salt: Random salt stored in the token
        log_n: scrypt cost exponent (N = 2**log_n)
        r, p: scrypt block size and parallelization

    Returns:
        32-byte AES key
    """
    kdf = Scrypt(
        salt=salt,
        length=KEY_SIZE,
        n=2 ** log_n,
        r=r,
        p=p,
    )
    return kdf.derive(key.encode('utf-8'))


def derive_user_key(user_id: str, secret: Optional[str] = None) -> str:
    """
    Build the key string that encrypts a user's saved passwords.

    The account identifier alone is not a secret: anyone who can read the
    stored rows can usually read the user id as well. When an application
    secret is configured it is the HKDF input key material and the user id
    goes into 'info', giving one independent key per user.

    Args:
        user_id: Stable account identifier from the session
        secret: Application secret (config.KEY_SECRET); None keeps the
            identifier as the key so tokens written by the old client still
            decrypt

    Returns:
        Key string for encrypt_password()/decrypt_password()
    """
    if not secret:
        return user_id

    h = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=None,
        info=f"{RECORD_KEY_INFO}:{user_id}".encode('utf-8'),
    )
    return h.derive(secret.encode('utf-8')).hex()


# =============================================================================
# Encryption (AES-256-GCM)
# =============================================================================

def encrypt_password(plaintext: str, key: str, log_n: Optional[int] = None) -> str:
    """
    Encrypt a password into a self-contained text token.

    A fresh salt and nonce are drawn for every call, so encrypting the same
    password twice gives different tokens.

    Args:
        plaintext: Password to encrypt
        key: Key string (see derive_user_key())
        log_n: scrypt cost exponent, defaults to config.SCRYPT_LOG_N

    Returns:
        URL-safe base64 token

    Raises:
        EncryptionError: log_n outside 1..MAX_LOG_N, or plaintext/key not
            encodable as UTF-8 (e.g. lone surrogates)
    """
    if log_n is None:
        log_n = config.SCRYPT_LOG_N
    _check_scrypt_cost(log_n)

    try:
        data = plaintext.encode('utf-8')
    except UnicodeEncodeError as e:
        raise EncryptionError("Password is not valid text") from e

    header = bytes([TOKEN_VERSION, log_n, config.SCRYPT_R, config.SCRYPT_P])
    salt = os.urandom(SALT_SIZE)
    nonce = os.urandom(NONCE_SIZE)

    try:
        aes_key = derive_record_key(key, salt, log_n, config.SCRYPT_R, config.SCRYPT_P)
    except UnicodeEncodeError as e:
        raise EncryptionError("Key is not valid text") from e
    ciphertext = AESGCM(aes_key).encrypt(nonce, data, header)

    return base64.urlsafe_b64encode(header + salt + nonce + ciphertext).decode('ascii')


def _check_scrypt_cost(log_n) -> None:
    """Refuse a cost decrypt_password() would reject (or scrypt cannot run)."""
    if not config.scrypt_params_valid(log_n, config.SCRYPT_R, config.SCRYPT_P):
        raise EncryptionError(f"scrypt cost log_n must be 1..{MAX_LOG_N}, got {log_n!r}")


def decrypt_password(token: str, key: str) -> str:
    """
    Decrypt a token produced by encrypt_password() (or by the old client).

    Args:
        token: Token text as stored
        key: Same key string used for encryption

    Returns:
        Plaintext password

    Raises:
        DecryptionFailure: Malformed token, wrong key, or tampering
    """
    if not isinstance(token, str) or not token:
        raise DecryptionFailure("Ciphertext is empty")

    if token.startswith(LEGACY_PREFIX):
        return decrypt_legacy(token, key)

    try:
        raw = base64.urlsafe_b64decode(token.encode('ascii'))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise DecryptionFailure("Ciphertext is not valid base64") from e

    if len(raw) < MIN_TOKEN_SIZE:
        raise DecryptionFailure("Ciphertext is too short")

    header = raw[:HEADER_SIZE]
    version, log_n, r, p = header
    if version != TOKEN_VERSION:
        raise DecryptionFailure(f"Unknown ciphertext version {version}")
    if not config.scrypt_params_valid(log_n, r, p):
        raise DecryptionFailure("Ciphertext has invalid key derivation parameters")

    salt = raw[HEADER_SIZE:HEADER_SIZE + SALT_SIZE]
    nonce = raw[HEADER_SIZE + SALT_SIZE:HEADER_SIZE + SALT_SIZE + NONCE_SIZE]
    ciphertext = raw[HEADER_SIZE + SALT_SIZE + NONCE_SIZE:]

    try:
        aes_key = derive_record_key(key, salt, log_n, r, p)
    except UnicodeEncodeError as e:
        raise DecryptionFailure("Key is not valid text") from e
    try:
        plaintext = AESGCM(aes_key).decrypt(nonce, ciphertext, header)
    except InvalidTag as e:
        raise DecryptionFailure("Wrong key or tampered ciphertext") from e

    try:
        return plaintext.decode('utf-8')
    except UnicodeDecodeError as e:
        raise DecryptionFailure("Decrypted data is not valid UTF-8") from e


# =============================================================================
# Legacy Tokens (OpenSSL "Salted__", AES-256-CBC)
# =============================================================================

def _evp_bytes_to_key(password: bytes, salt: bytes, key_len: int, iv_len: int) -> Tuple[bytes, bytes]:
    """OpenSSL EVP_BytesToKey with MD5 and one iteration."""
    derived = b""
    block = b""
    while len(derived) < key_len + iv_len:
        block = hashlib.md5(block + password + salt).digest()
        derived += block
    return derived[:key_len], derived[key_len:key_len + iv_len]


def decrypt_legacy(token: str, key: str) -> str:
    """
    Decrypt a token written by the browser client.

    Format: base64("Salted__" | salt(8) | AES-256-CBC ciphertext), key and IV
    from EVP_BytesToKey(MD5) over the key string. CBC has no authentication
    tag, so a wrong key is caught through the padding or UTF-8 check.

    Raises:
        DecryptionFailure: Malformed token, bad padding, or non-UTF-8 output
    """
    try:
        raw = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptionFailure("Legacy ciphertext is not valid base64") from e

    body_len = len(raw) - len(LEGACY_MAGIC) - LEGACY_SALT_SIZE
    if not raw.startswith(LEGACY_MAGIC) or body_len <= 0 or body_len % 16:
        raise DecryptionFailure("Legacy ciphertext is malformed")

    salt = raw[len(LEGACY_MAGIC):len(LEGACY_MAGIC) + LEGACY_SALT_SIZE]
    body = raw[len(LEGACY_MAGIC) + LEGACY_SALT_SIZE:]
    try:
        password = key.encode('utf-8')
    except UnicodeEncodeError as e:
        raise DecryptionFailure("Key is not valid text") from e
    aes_key, iv = _evp_bytes_to_key(password, salt, KEY_SIZE, LEGACY_IV_SIZE)

    decryptor = Cipher(algorithms.AES(aes_key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(body) + decryptor.finalize()

    try:
        unpadder = padding.PKCS7(128).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()
        result = plaintext.decode('utf-8')
    except (ValueError, UnicodeDecodeError) as e:
        raise DecryptionFailure("Wrong key or corrupted legacy ciphertext") from e

    logger.debug("Decrypted legacy CBC ciphertext")
    return result


# =============================================================================
# Account Passwords
# =============================================================================

def hash_account_password(password: str, salt: bytes, log_n: Optional[int] = None) -> bytes:
    """
    Hash an account password with scrypt.

    Args:
        password: Password typed at sign-up/sign-in
        salt: Per-account random salt (stored next to the hash)
        log_n: scrypt cost exponent, defaults to config.ACCOUNT_SCRYPT_LOG_N

    Returns:
        32-byte hash

    Raises:
        EncryptionError: log_n out of range or password not encodable
    """
    if log_n is None:
        log_n = config.ACCOUNT_SCRYPT_LOG_N
    _check_scrypt_cost(log_n)
    try:
        return derive_record_key(password, salt, log_n, config.SCRYPT_R, config.SCRYPT_P)
    except UnicodeEncodeError as e:
        raise EncryptionError("Password is not valid text") from e


def constant_compare(a: bytes, b: bytes) -> bool:
    """Compare two byte strings in constant time (hmac.compare_digest)."""
    return hmac.compare_digest(a, b)
