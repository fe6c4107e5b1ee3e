"""
LocalVault - Guided Journey (single run, no user input)

Run: python demo.py

This script simulates what a first-time user would see in the interactive
menu (`localvault_main.py`) and explains what happens under the hood:
 - Vault setup (master passphrase)
 - Adding entries (manual + generated)
 - Listing and revealing
 - Lock / unlock (and a wrong passphrase)
 - Export backup and import it into a second vault
"""

import json
import os
import tempfile
from textwrap import indent

from localvault import crypto
from localvault.importer import import_vault_file
from localvault.vault import Vault


LINE = "=" * 70


def step(title: str, menu_option: str, code_path: str):
    print(f"\n{LINE}\n{title}  (menu option {menu_option}, code: {code_path})\n{LINE}")


def explain(title: str, body: str):
    print(f"\n[Behind the scenes] {title}")
    print(indent(body.strip(), "  "))


def main():
    workdir = tempfile.mkdtemp(prefix="localvault-demo-")
    vault_path = os.path.join(workdir, "vault.json")
    master_passphrase = "correcthorse1"

    # 1) Setup
    step("Set up vault", "1", "localvault/vault.py:setup")
    vault = Vault(vault_path)
    vault.setup(master_passphrase)
    print(f"✓ Vault created and unlocked: {vault_path}")
    explain("Key derivation", """
        A random 16-byte salt is generated and scrypt (N=16384, r=8, p=1)
        turns the passphrase into a 32-byte key. The key is stored as the
        master hash together with salt and parameters; it is also the key
        that encrypts every entry.
    """)

    # 2) Add entries
    step("Add entries", "3 / 4", "localvault/vault.py:add_entry")
    bank = vault.add_entry("bank", "p@ss", note="checking")
    generated = crypto.generate_password(18)
    vault.add_entry("github", generated)
    print(f"✓ Added 'bank' (ID {bank.id[:8]}...) and 'github' (generated: {generated})")
    explain("Entry encryption", """
        Each secret is encrypted with AES-256-GCM under a fresh 96-bit nonce.
        The entry id is passed as associated data, so the envelope only
        decrypts while attached to that id.
    """)

    # 3) List + file contents
    step("List entries", "5", "localvault/vault.py:list_entries")
    for e in vault.list_entries():
        print(f"  {e.title:<10} {e.id[:8]}...  updated {e.updated_at}")
    with open(vault_path, "r", encoding="utf-8") as f:
        stored = json.load(f)
    print("\nStored envelope for 'bank':")
    print(indent(json.dumps(stored["entries"][-1]["passwordCrypto"], indent=2), "  "))

    # 4) Reveal
    step("Reveal entry", "6", "localvault/vault.py:reveal_entry")
    print(f"  Secret: {vault.reveal_entry(bank.id)}")

    # 5) Lock / unlock
    step("Lock and unlock", "12 / 2", "localvault/vault.py:lock, unlock")
    vault.lock()
    print(f"  unlock('wrong')         -> {vault.unlock('wrong')}")
    print(f"  unlock('{master_passphrase}') -> {vault.unlock(master_passphrase)}")
    print(f"  reveal after unlock     -> {vault.reveal_entry(bank.id)}")

    # 6) Export + import
    step("Export backup, import into a second vault", "9 / 10", "localvault/importer.py")
    backup_path = os.path.join(workdir, "vault-backup.json")
    print(f"  Exported {vault.export_backup(backup_path)} entries to {backup_path}")

    second = Vault(os.path.join(workdir, "second.json"))
    second.setup("a-different-passphrase")
    result = import_vault_file(second, backup_path, master_passphrase)
    print(f"  Imported {result.imported_count} entries into the second vault")
    for e in second.list_entries():
        print(f"    {e.title:<10} new ID {e.id[:8]}...")
    explain("Re-keying", """
        The backup's passphrase is verified against its own master hash,
        every secret is decrypted with the backup's key, then re-encrypted
        under the second vault's key with a newly minted id. If any entry
        fails to decrypt, nothing is imported.
    """)

    vault.lock()
    second.lock()
    print(f"\nDemo files left in: {workdir}")


if __name__ == "__main__":
    main()
