"""
SecurePass - Guided Journey (single run, no user input)

Run: python demo.py

Simulates what a user does in the interactive menu (`securepass_main.py`)
and explains what happens underneath:
 - Sign up
 - Generator options and generation
 - Saving (encryption) and listing
 - Revealing a saved password (decryption)
 - Logging out and back in
"""

import os
import shutil
import tempfile
from textwrap import indent

from securepass import crypto
from securepass.manager import PasswordManager


LINE = "=" * 70


def step(title: str, menu_option: str, code_path: str):
    print(f"\n{LINE}\n{title}  (menu option {menu_option}, code: {code_path})\n{LINE}")


def explain(title: str, body: str):
    print(f"\n[Behind the scenes] {title}")
    print(indent(body.strip(), "  "))


def main():
    tmp_dir = tempfile.mkdtemp()
    db_path = os.path.join(tmp_dir, "securepass.db")
    printed = []
    pm = PasswordManager(db_path, key_secret="demo-app-secret", copy=printed.append).open()

    try:
        step("Sign up", "1", "securepass/accounts.py:sign_up")
        session = pm.sign_up("alice@example.com", "CorrectHorse")
        print(f"Logged in as {session.email} (user id {session.user_id})")
        explain("Account", """
The password is hashed with scrypt and a random salt; only the hash is stored.
The user id (uuid4) owns every saved password and feeds the record key.
""")

        step("Generator options", "3", "securepass/manager.py:set_policy")
        policy = pm.set_policy(length=20)
        print(f"Policy: {policy}")
        print(f"Alphabet ({len(crypto.resolve_alphabet(policy))} chars): "
              f"{crypto.resolve_alphabet(policy)}")

        step("Generate", "4", "securepass/crypto.py:generate_password")
        generated = pm.generate()
        print(f"Generated: {generated}")
        explain("Randomness", "Each character is secrets.choice() over the alphabet (os.urandom).")

        step("Save", "6", "securepass/manager.py:save")
        row = pm.save("GitHub")
        print(f"Saved '{row['title']}' at {row['created_at']}")
        print(f"Stored ciphertext: {row['encrypted_password'][:60]}...")
        explain("Encryption", """
key string = HKDF(app secret, info="securepass-record-v1:<user id>")
AES key    = scrypt(key string, random salt)
token      = version | scrypt params | salt | nonce | AES-256-GCM(password)
""")

        pm.generate()
        pm.save("Gmail")

        step("List saved passwords", "7", "securepass/store.py:list_for_user")
        for e in pm.saved_passwords:
            print(f"  {e['title']:<10} {e['created_at']}  {e['id'][:8]}...")

        step("Show saved password", "9", "securepass/manager.py:reveal")
        target = pm.saved_passwords[-1]
        revealed = pm.reveal(target['id'])
        print(f"{target['title']}: {revealed}")
        print(f"Matches what was generated: {revealed == generated}")

        step("Log out and back in", "11 / 2", "securepass/manager.py:logout/login")
        pm.logout()
        print(f"Logged in: {pm.logged_in}")
        pm.login("alice@example.com", "CorrectHorse")
        print(f"Logged in: {pm.logged_in}, {len(pm.saved_passwords)} saved passwords")
    finally:
        pm.close()
        shutil.rmtree(tmp_dir, ignore_errors=True)

    print(f"\n{LINE}\nDone.\n{LINE}")


if __name__ == "__main__":
    main()
