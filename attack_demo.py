"""
SecurePass - Attack Demonstration

Run: python attack_demo.py

What it shows:
1) Without an application secret, anyone holding a row and its user_id can
   decrypt it (the account id is the key).
2) With SECUREPASS_KEY_SECRET set, the same attacker gets nothing.
3) Ciphertext tampering is detected by AES-GCM.
4) Another user's key does not decrypt a row.
"""

import base64
import os
import shutil
import sqlite3
import tempfile

from securepass import crypto
from securepass.errors import DecryptionFailure
from securepass.manager import PasswordManager


LINE = "=" * 70


def section(title: str):
    print(f"\n{LINE}\n{title}\n{LINE}")


def stolen_row(db_path: str):
    """What an attacker with read access to the database sees."""
    conn = sqlite3.connect(db_path)
    row = conn.execute("SELECT encrypted_password, user_id FROM passwords").fetchone()
    conn.close()
    return row


def try_decrypt(token: str, key: str, label: str):
    try:
        print(f"{label}: recovered {crypto.decrypt_password(token, key)!r}")
    except DecryptionFailure as e:
        print(f"{label}: failed as expected ({e})")


def save_one(db_path: str, key_secret: str) -> str:
    with PasswordManager(db_path, key_secret=key_secret, copy=lambda text: None) as pm:
        pm.sign_up("alice@example.com", "CorrectHorse")
        password = pm.generate()
        pm.save("Bank")
    return password


def main():
    tmp_dir = tempfile.mkdtemp()
    try:
        section("Attack 1: Stolen row, no application secret")
        weak_db = os.path.join(tmp_dir, "weak.db")
        print(f"Alice saved: {save_one(weak_db, '')!r}")
        token, user_id = stolen_row(weak_db)
        try_decrypt(token, user_id, "Attacker using user_id as key")

        section("Attack 2: Stolen row, application secret configured")
        strong_db = os.path.join(tmp_dir, "strong.db")
        print(f"Alice saved: {save_one(strong_db, 'server-side-secret')!r}")
        token, user_id = stolen_row(strong_db)
        try_decrypt(token, user_id, "Attacker using user_id as key")

        section("Attack 3: Ciphertext tampering")
        raw = bytearray(base64.urlsafe_b64decode(token))
        raw[-1] ^= 1
        key = crypto.derive_user_key(user_id, "server-side-secret")
        try_decrypt(base64.urlsafe_b64encode(bytes(raw)).decode(), key, "Tampered token")

        section("Attack 4: Another user's key")
        try_decrypt(token, crypto.derive_user_key("someone-else", "server-side-secret"),
                    "Other user's key")
    finally:
        shutil.rmtree(tmp_dir, ignore_errors=True)


if __name__ == "__main__":
    main()
