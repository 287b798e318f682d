"""
SecurePass - Interactive Menu

Main user interface for the password generator & manager.
Features:
- Sign up / log in / log out
- Generator options (length, character classes)
- Generate, copy, and save passwords (encrypted)
- List saved passwords, copy or show one, delete one
"""

import getpass
import logging
import os
import sys

from securepass import config
from securepass.errors import (
    AuthError,
    ClipboardUnavailable,
    DecryptionFailure,
    InvalidPolicy,
    NotAuthenticated,
    SecurePassError,
    StorageError,
)
from securepass.manager import PasswordManager

logger = logging.getLogger(__name__)


def clear_screen():
    try:
        os.system("cls" if os.name == "nt" else "clear")
    except OSError:
        pass


def pause():
    input("\nPress Enter to continue...")


def ask_yes_no(prompt, default):
    suffix = "[Y/n]" if default else "[y/N]"
    answer = input(f"{prompt} {suffix}: ").strip().lower()
    if not answer:
        return default
    return answer in ('y', 'yes')


def pick_saved(pm):
    """Show the saved list and return the chosen record id (or None)."""
    entries = pm.refresh()
    if not entries:
        print("No saved passwords.")
        return None

    print_saved(entries)
    print(f"\nEnter # (1-{len(entries)}) or ID:")
    choice = input("> ").strip()
    if not choice:
        return None
    if choice.isdigit() and 1 <= int(choice) <= len(entries):
        return entries[int(choice) - 1]['id']

    matches = [e for e in entries if e['id'].startswith(choice)]
    if len(matches) == 1:
        return matches[0]['id']
    print("Multiple matches. Please use full ID." if matches else "Entry not found.")
    return None


def print_saved(entries):
    print(f"{'#':<4}  {'Title':<30}  {'Created (UTC)':<20}  {'ID (first 8)'}")
    print("-" * 75)
    for i, e in enumerate(entries, 1):
        created = e['created_at'][:19].replace('T', ' ')
        print(f"{i:<4}  {e['title']:<30}  {created:<20}  {e['id'][:8]}...")


def cmd_sign_up(pm):
    clear_screen()
    print("=== Sign Up ===\n")
    email = input("Email: ").strip()
    pw = getpass.getpass("Password: ")
    pw2 = getpass.getpass("Confirm: ")
    if pw != pw2:
        print("\nPasswords don't match.")
        pause()
        return
    try:
        session = pm.sign_up(email, pw)
        print(f"\n✓ Account created. Logged in as {session.email}")
    except AuthError as e:
        print(f"\nERROR: {e}")
    except SecurePassError:
        print("\nERROR: Sign up failed")
    pause()


def cmd_login(pm):
    clear_screen()
    print("=== Log In ===\n")
    email = input("Email: ").strip()
    pw = getpass.getpass("Password: ")
    try:
        session = pm.login(email, pw)
        print(f"\n✓ Logged in successfully as {session.email}")
    except AuthError as e:
        print(f"\nERROR: {e}")
    except SecurePassError:
        print("\nERROR: Login failed")
    pause()


def cmd_options(pm):
    clear_screen()
    print("=== Generator Options ===\n")
    p = pm.policy
    try:
        length = int(input(
            f"Password length ({config.MIN_UI_LENGTH}-{config.MAX_UI_LENGTH}) [{p.length}]: "
        ).strip() or p.length)
    except ValueError:
        length = p.length
    length = max(config.MIN_UI_LENGTH, min(config.MAX_UI_LENGTH, length))

    pm.set_policy(
        length=length,
        include_uppercase=ask_yes_no("Uppercase letters?", p.include_uppercase),
        include_lowercase=ask_yes_no("Lowercase letters?", p.include_lowercase),
        include_numbers=ask_yes_no("Numbers?", p.include_numbers),
        include_symbols=ask_yes_no("Symbols?", p.include_symbols),
    )
    print(f"\n✓ Options saved (length {length}).")
    pause()


def cmd_generate(pm):
    clear_screen()
    print("=== Generate Password ===\n")
    try:
        print(f"Generated: {pm.generate()}")
    except InvalidPolicy as e:
        print(f"ERROR: {e}")
    pause()


def cmd_copy_generated(pm):
    clear_screen()
    print("=== Copy Generated Password ===\n")
    try:
        pm.copy_generated()
        print("✓ Password copied to clipboard!")
    except ClipboardUnavailable:
        print("Clipboard not available on this system.")
        print(f"Password: {pm.generated_password}")
    except SecurePassError as e:
        print(f"ERROR: {e}")
    pause()


def cmd_save(pm):
    clear_screen()
    print("=== Save Password ===\n")
    if pm.generated_password:
        print(f"Generated: {pm.generated_password}\n")
    title = input("Password title: ").strip()
    try:
        pm.save(title)
        print("\n✓ Password saved successfully!")
    except StorageError as e:
        logger.error("Save failed: %s", e)
        print("\nERROR: Error saving password")
    except SecurePassError as e:
        print(f"\nERROR: {e}")
    pause()


def cmd_list(pm):
    clear_screen()
    print("=== Saved Passwords ===\n")
    try:
        entries = pm.refresh()
        if entries:
            print_saved(entries)
        else:
            print("No saved passwords.")
    except NotAuthenticated as e:
        print(f"ERROR: {e}")
    except StorageError as e:
        logger.error("Fetch failed: %s", e)
        print("ERROR: Error fetching passwords")
    pause()


def cmd_copy_saved(pm, show=False):
    clear_screen()
    print("=== Show Saved Password ===\n" if show else "=== Copy Saved Password ===\n")
    try:
        record_id = pick_saved(pm)
        if record_id:
            if show:
                print(f"\n  Password: {pm.reveal(record_id)}")
            else:
                pm.copy_saved(record_id)
                print("\n✓ Password copied to clipboard!")
    except ClipboardUnavailable:
        print("\nClipboard not available. Use 'Show saved password' instead.")
    except DecryptionFailure:
        print("\nERROR: This password cannot be decrypted with your key")
    except SecurePassError as e:
        print(f"\nERROR: {e}")
    pause()


def cmd_delete(pm):
    clear_screen()
    print("=== Delete Saved Password ===\n")
    try:
        record_id = pick_saved(pm)
        if record_id and input("\nType 'yes' to confirm: ").strip().lower() == 'yes':
            pm.delete(record_id)
            print("\n✓ Deleted.")
        elif record_id:
            print("Cancelled.")
    except SecurePassError as e:
        print(f"\nERROR: {e}")
    pause()


def cmd_logout(pm):
    clear_screen()
    print("=== Log Out ===\n")
    if pm.logged_in:
        pm.logout()
        print("✓ Logged out successfully!")
    else:
        print("Not logged in.")
    pause()


def print_menu(pm):
    p = pm.policy
    classes = [name for name, on in (
        ("upper", p.include_uppercase), ("lower", p.include_lowercase),
        ("numbers", p.include_numbers), ("symbols", p.include_symbols)) if on]
    print("SecurePass - Password Generator & Manager")
    print("=" * 45)
    print(f"User: {pm.session.email if pm.session else '(not logged in)'}")
    print(f"Generator: length {p.length}, {', '.join(classes) or 'no classes'}")
    if pm.generated_password:
        print(f"Generated: {pm.generated_password}")
    print("\n 1) Sign up")
    print(" 2) Log in")
    print(" 3) Generator options")
    print(" 4) Generate password")
    print(" 5) Copy generated password")
    print(" 6) Save generated password")
    print(" 7) List saved passwords")
    print(" 8) Copy saved password")
    print(" 9) Show saved password")
    print("10) Delete saved password")
    print("11) Log out")
    print(" 0) Exit")


def main_menu(db_path=None):
    with PasswordManager(db_path) as pm:
        actions = {
            '1': cmd_sign_up,
            '2': cmd_login,
            '3': cmd_options,
            '4': cmd_generate,
            '5': cmd_copy_generated,
            '6': cmd_save,
            '7': cmd_list,
            '8': cmd_copy_saved,
            '9': lambda m: cmd_copy_saved(m, show=True),
            '10': cmd_delete,
            '11': cmd_logout,
        }
        while True:
            clear_screen()
            print_menu(pm)
            c = input("\n> ").strip()
            if c == '0':
                print("\nGoodbye!")
                break
            action = actions.get(c)
            if action:
                action(pm)


def main():
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    try:
        main_menu()
    except SecurePassError as e:
        print(f"\nERROR: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nExiting...")
        sys.exit(0)


if __name__ == "__main__":
    main()
