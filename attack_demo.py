"""
LocalVault - Attack Demonstration

Run: python attack_demo.py

What it shows (and why attacks fail):
1) Wrong master passphrase cannot unlock the vault.
2) Ciphertext tampering is detected by AES-GCM.
3) Moving one entry's envelope onto another entry fails (id bound as AD).
4) A corrupted foreign vault imports nothing (all-or-nothing merge).
"""

import base64
import json
import os
import tempfile

from localvault.errors import AuthenticationFailure, InvalidFileError
from localvault.importer import import_vault
from localvault.vault import Vault


LINE = "=" * 70


def section(title: str):
    print(f"\n{LINE}\n{title}\n{LINE}")


def main():
    workdir = tempfile.mkdtemp(prefix="localvault-attack-")
    vault_path = os.path.join(workdir, "vault.json")
    master_passphrase = "CorrectHorseBatteryStaple!"

    vault = Vault(vault_path)
    vault.setup(master_passphrase)
    bank = vault.add_entry("bank", "super_secret_password", note="checking account")
    mail = vault.add_entry("mail", "another_secret")

    # 1) Wrong master passphrase
    section("Attack 1: Wrong master passphrase")
    attacker = Vault(vault_path)
    if attacker.unlock("wrong_passphrase"):
        print("Unexpected: wrong passphrase unlocked the vault")
    else:
        print("Expected failure: derived key does not match the stored hash")

    # 2) Ciphertext tampering
    section("Attack 2: Flip one bit of a stored ciphertext")
    with open(vault_path, "r", encoding="utf-8") as f:
        doc = json.load(f)
    original = json.dumps(doc)
    crypt = doc["entries"][1]["passwordCrypto"]
    raw = bytearray(base64.b64decode(crypt["ciphertext"]))
    raw[0] ^= 1
    crypt["ciphertext"] = base64.b64encode(bytes(raw)).decode("ascii")
    with open(vault_path, "w", encoding="utf-8") as f:
        json.dump(doc, f, indent=2)
    try:
        vault.reveal_entry(bank.id)
        print("Unexpected: tampered ciphertext decrypted")
    except AuthenticationFailure as e:
        print(f"Expected failure: {e}")

    # 3) Envelope substitution between entries
    section("Attack 3: Copy mail's envelope onto bank's entry")
    doc = json.loads(original)
    by_id = {e["id"]: e for e in doc["entries"]}
    by_id[bank.id]["passwordCrypto"] = dict(by_id[mail.id]["passwordCrypto"])
    with open(vault_path, "w", encoding="utf-8") as f:
        json.dump(doc, f, indent=2)
    try:
        vault.reveal_entry(bank.id)
        print("Unexpected: substituted envelope decrypted")
    except AuthenticationFailure as e:
        print(f"Expected failure: {e} (the envelope is bound to the other entry id)")

    # Restore the untouched file
    with open(vault_path, "w", encoding="utf-8") as f:
        json.dump(json.loads(original), f, indent=2)
    print("\nRestored vault still reveals:", vault.reveal_entry(bank.id))

    # 4) Corrupted import
    section("Attack 4: Import a vault whose last entry is corrupted")
    foreign_path = os.path.join(workdir, "foreign.json")
    foreign = Vault(foreign_path)
    foreign.setup("foreign-passphrase")
    for i in range(3):
        foreign.add_entry(f"site-{i}", f"secret-{i}")
    foreign.lock()
    with open(foreign_path, "r", encoding="utf-8") as f:
        foreign_doc = json.load(f)
    foreign_doc["entries"][-1]["passwordCrypto"]["tag"] = base64.b64encode(b"\x00" * 16).decode("ascii")

    before = len(vault.list_entries())
    try:
        import_vault(vault, foreign_doc, "foreign-passphrase")
        print("Unexpected: corrupted import succeeded")
    except InvalidFileError as e:
        print(f"Expected failure: {e}")
    print(f"Entries before: {before}, after: {len(vault.list_entries())}")

    vault.lock()
    print(f"\nDemo files left in: {workdir}")


if __name__ == "__main__":
    main()
