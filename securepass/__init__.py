"""
SecurePass - Password Generator & Manager

Generate random passwords, save them encrypted, copy them back later.

Key Features:
- Generator: configurable length and character classes, CSPRNG-backed
- Storage encryption: AES-256-GCM with a per-record scrypt key
- Reads ciphertexts written by the old browser client (AES-CBC "Salted__")
- Local accounts: each user only sees and decrypts their own passwords

Components:
- crypto.py: Password generation and all cipher operations
- store.py: SQLite table of saved (encrypted) passwords
- accounts.py: Sign-up / sign-in, sessions
- manager.py: Session and form state tying it together
- clipboard.py: Copy to clipboard (pyperclip)
- config.py: Settings with environment overrides

Usage:
    python securepass_main.py                       # Interactive menu
"""

from .crypto import GenerationPolicy, decrypt_password, encrypt_password, generate_password
from .errors import DecryptionFailure, InvalidPolicy, SecurePassError

__version__ = "0.1.0"

__all__ = [
    "GenerationPolicy",
    "generate_password",
    "encrypt_password",
    "decrypt_password",
    "InvalidPolicy",
    "DecryptionFailure",
    "SecurePassError",
]
