"""
LocalVault - Interactive Menu

Main user interface for the credential vault.
Features:
- Set up / unlock / lock the vault
- Add entries (manual or generated secrets)
- List, reveal, edit and delete entries
- Quick copy to clipboard
- Export a backup and import another vault file
"""

import getpass
import logging
import os

import pyperclip

from localvault import crypto
from localvault.config import MIN_PASSPHRASE_LENGTH, configure_logging, resolve_vault_path
from localvault.errors import (
    AuthenticationFailure,
    EntryNotFoundError,
    InvalidFileError,
    VaultError,
    WeakPassphraseError,
    WrongPassphraseError,
)
from localvault.importer import import_vault_file
from localvault.vault import Vault, VaultState

logger = logging.getLogger("localvault.menu")


def clear_screen():
    if os.environ.get("TERM"):
        os.system("cls" if os.name == "nt" else "clear")


def pause():
    input("\nPress Enter to continue...")


def choose_vault_path(current):
    print(f"Vault file path [{current}]: ", end="")
    return os.path.expanduser(input().strip()) or current


def ask_new_passphrase():
    while True:
        pw = getpass.getpass("Enter master passphrase: ")
        pw2 = getpass.getpass("Confirm: ")
        if pw != pw2:
            print("Passphrases don't match.\n")
            continue
        if len(pw) < MIN_PASSPHRASE_LENGTH:
            print(f"Too short (min {MIN_PASSPHRASE_LENGTH} chars).\n")
            continue
        return pw


def print_entries(entries):
    print(f"{'#':<4}  {'Title':<24}  {'Note':<24}  {'ID (first 8)'}")
    print("-" * 70)
    for i, e in enumerate(entries, 1):
        print(f"{i:<4}  {e.title[:24]:<24}  {(e.note or '-')[:24]:<24}  {e.id[:8]}...")


def pick_entry(vault):
    """Show the list and return the chosen EntryMeta (None if cancelled)."""
    entries = vault.list_entries()
    if not entries:
        print("No entries in vault.")
        return None

    print_entries(entries)
    print(f"\nEnter # (1-{len(entries)}) or ID prefix:")
    choice = input("> ").strip()
    if not choice:
        print("Cancelled.")
        return None

    if choice.isdigit() and 1 <= int(choice) <= len(entries):
        return entries[int(choice) - 1]

    matches = [e for e in entries if e.id.startswith(choice)]
    if len(matches) == 1:
        return matches[0]
    print("Multiple matches. Please use more of the ID." if matches else "Entry not found.")
    return None


def copy_to_clipboard(value):
    try:
        pyperclip.copy(value)
        print("\n✓ Copied to clipboard!")
    except pyperclip.PyperclipException as e:
        print(f"\nClipboard unavailable ({e}).")


# =============================================================================
# Commands
# =============================================================================

def cmd_setup(vault):
    clear_screen()
    print("=== Set Up Vault ===\n")
    if vault.state is not VaultState.NO_MASTER:
        print(f"A master passphrase is already set for: {vault.path}")
        return
    pw = ask_new_passphrase()
    print("\nDeriving key...")
    try:
        if vault.setup(pw):
            print("\n✓ Vault created and unlocked.")
        else:
            print("\nVault already has a master passphrase.")
    except WeakPassphraseError as e:
        print(f"ERROR: {e}")


def cmd_unlock(vault):
    clear_screen()
    print("=== Unlock Vault ===\n")
    state = vault.state
    if state is VaultState.NO_MASTER:
        print(f"No vault at {vault.path}. Set one up first.")
        return
    if state is VaultState.UNLOCKED:
        print("Already unlocked.")
        return
    if vault.unlock(getpass.getpass("Master passphrase: ")):
        print("\n✓ Vault unlocked.")
    else:
        print("\nERROR: Wrong passphrase.")


def require_unlocked(vault):
    if vault.is_unlocked:
        return True
    cmd_unlock(vault)
    return vault.is_unlocked


def cmd_add_manual(vault):
    clear_screen()
    print("=== Add New Entry (Manual) ===\n")
    if not require_unlocked(vault):
        return
    title = input("Title (required): ").strip()
    note = input("Note (optional): ").strip()
    secret = getpass.getpass("Secret: ")
    try:
        meta = vault.add_entry(title, secret, note)
        print(f"\n✓ Added! ID: {meta.id}")
    except ValueError as e:
        print(f"ERROR: {e}")


def cmd_add_generated(vault):
    clear_screen()
    print("=== Add New Entry (Generated) ===\n")
    if not require_unlocked(vault):
        return
    title = input("Title (required): ").strip()
    note = input("Note (optional): ").strip()
    raw_length = input("Secret length [18]: ").strip()
    length = int(raw_length) if raw_length.isdigit() else 18
    upper = input("Include uppercase? [Y/n]: ").strip().lower() not in ("n", "no")
    symbols = input("Include symbols? [Y/n]: ").strip().lower() not in ("n", "no")
    secret = crypto.generate_password(length, upper, symbols)
    print(f"\nGenerated: {secret}")
    try:
        meta = vault.add_entry(title, secret, note)
        print(f"\n✓ Added! ID: {meta.id}")
    except ValueError as e:
        print(f"ERROR: {e}")


def cmd_list_entries(vault):
    clear_screen()
    print("=== List Entries ===\n")
    if not require_unlocked(vault):
        return
    entries = vault.list_entries()
    if not entries:
        print("No entries.")
    else:
        print_entries(entries)


def cmd_reveal(vault):
    clear_screen()
    print("=== Reveal Entry ===\n")
    if not require_unlocked(vault):
        return
    meta = pick_entry(vault)
    if meta is None:
        return

    print(f"\n  ID: {meta.id}")
    print(f"  Title: {meta.title}")
    if meta.note:
        print(f"  Note: {meta.note}")
    print(f"  Updated: {meta.updated_at}")

    print("\nOptions:")
    print("  1) Show secret")
    print("  2) Copy to clipboard (without showing)")
    print("  0) Cancel")
    choice = input("\n> ").strip()
    if choice not in ("1", "2"):
        print("Cancelled.")
        return

    try:
        secret = vault.reveal_entry(meta.id)
    except (AuthenticationFailure, EntryNotFoundError) as e:
        print(f"ERROR: {e}")
        return
    if choice == "1":
        print(f"\n  Secret: {secret}")
    else:
        copy_to_clipboard(secret)


def cmd_edit(vault):
    clear_screen()
    print("=== Edit Entry ===\n")
    if not require_unlocked(vault):
        return
    meta = pick_entry(vault)
    if meta is None:
        return
    title = input(f"Title [{meta.title}]: ").strip() or meta.title
    note = input(f"Note [{meta.note or '-'}]: ").strip() or meta.note
    secret = getpass.getpass("New secret (Enter to keep current): ")
    try:
        vault.update_entry(meta.id, title, note, secret or None)
        print("\n✓ Entry updated.")
    except (ValueError, EntryNotFoundError) as e:
        print(f"ERROR: {e}")


def cmd_delete(vault):
    clear_screen()
    print("=== Delete Entry ===\n")
    if not require_unlocked(vault):
        return
    meta = pick_entry(vault)
    if meta is None:
        return

    print("\nAbout to delete:")
    print(f"  Title: {meta.title}")
    print(f"  ID: {meta.id}")
    if input("\nType 'yes' to confirm: ").strip().lower() != "yes":
        print("Cancelled.")
        return

    if vault.remove_entry(meta.id):
        print("\n✓ Entry deleted.")
    else:
        print("\nEntry not found.")


def cmd_export(vault):
    clear_screen()
    print("=== Export Backup ===\n")
    if not require_unlocked(vault):
        return
    default = os.path.join(os.path.dirname(vault.path), "vault-backup.json")
    out = os.path.expanduser(input(f"Output file [{default}]: ").strip()) or default
    if os.path.exists(out) and input("File exists. Overwrite? [y/N]: ").strip().lower() != "y":
        print("Cancelled.")
        return
    try:
        count = vault.export_backup(out)
        print(f"\n✓ Exported {count} entries to: {out}")
    except OSError as e:
        print(f"ERROR: {e}")


def cmd_import(vault):
    clear_screen()
    print("=== Import Vault File ===\n")
    if not require_unlocked(vault):
        return
    source = os.path.expanduser(input("Vault file to import: ").strip())
    if not source:
        print("Cancelled.")
        return
    pw = getpass.getpass("Passphrase of that vault: ")
    try:
        result = import_vault_file(vault, source, pw)
        print(f"\n✓ Imported {result.imported_count} entries.")
    except WrongPassphraseError:
        print("\nERROR: Wrong passphrase for the imported vault.")
    except InvalidFileError as e:
        print(f"\nERROR: Invalid vault file ({e}). Nothing was imported.")


def cmd_lock(vault):
    clear_screen()
    print("=== Lock Vault ===\n")
    if vault.is_unlocked:
        vault.lock()
        print("✓ Locked.")
    else:
        print("Not open.")


def print_menu(vault):
    status = vault.status()
    print("LocalVault - Interactive Menu")
    print("=" * 40)
    print(f"Vault: {vault.path}")
    if not status.has_master:
        print("Status: NOT SET UP")
    else:
        print(f"Status: {'UNLOCKED' if status.unlocked else 'LOCKED'} ({status.entry_count} entries)")
    print("\n 1) Set up vault")
    print(" 2) Unlock vault")
    print(" 3) Add entry (manual)")
    print(" 4) Add entry (generated)")
    print(" 5) List entries")
    print(" 6) Reveal entry")
    print(" 7) Edit entry")
    print(" 8) Delete entry")
    print(" 9) Export backup")
    print("10) Import vault file")
    print("11) Change vault path")
    print("12) Lock vault")
    print(" 0) Exit")


COMMANDS = {
    "1": cmd_setup,
    "2": cmd_unlock,
    "3": cmd_add_manual,
    "4": cmd_add_generated,
    "5": cmd_list_entries,
    "6": cmd_reveal,
    "7": cmd_edit,
    "8": cmd_delete,
    "9": cmd_export,
    "10": cmd_import,
    "12": cmd_lock,
}


def main_menu(vault_path=None):
    vault = Vault(resolve_vault_path(vault_path))
    while True:
        clear_screen()
        try:
            print_menu(vault)
        except InvalidFileError as e:
            print(f"ERROR: vault file is unreadable ({e})")
        c = input("\n> ").strip()
        if c == "0":
            vault.lock()
            print("\nGoodbye!")
            break
        if c == "11":
            vault.lock()
            vault = Vault(choose_vault_path(vault.path))
        elif c in COMMANDS:
            try:
                COMMANDS[c](vault)
            except VaultError as e:
                logger.debug("Command %s failed", c, exc_info=True)
                print(f"ERROR: {e}")
        else:
            continue
        pause()


def main():
    configure_logging()
    try:
        main_menu()
    except KeyboardInterrupt:
        print("\nExiting...")


if __name__ == "__main__":
    main()
