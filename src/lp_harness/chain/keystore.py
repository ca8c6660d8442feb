"""
Keystore files for harness accounts.

Accounts are written in the Web3 Secret Storage (V3) format under
``<datadir>/keystore`` so that the node binary can unlock them with the same
password the harness used.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address

logger = logging.getLogger(__name__)

KEYSTORE_DIRNAME = "keystore"
"""Subdirectory of a node datadir that holds key files."""


def keystore_dir_for(datadir: Path) -> Path:
    """Return the keystore directory the node expects inside ``datadir``."""
    return datadir / KEYSTORE_DIRNAME


def _key_filename(address: str) -> str:
    # Same naming scheme geth uses, so the node's keystore scan finds it.
    timestamp = datetime.now(UTC).strftime("%Y-%m-%dT%H-%M-%S.%f000Z")
    return f"UTC--{timestamp}--{address[2:].lower()}"


def create_key(
    keystore_dir: Path,
    password: str = "",
    *,
    kdf: str | None = None,
    iterations: int | None = None,
) -> str:
    """
    Create a fresh account and write its encrypted key file.

    Args:
        keystore_dir: Directory to write into. Created if missing.
        password: Passphrase protecting the key file.
        kdf: Key derivation function (``scrypt`` or ``pbkdf2``); eth-account default if None.
        iterations: KDF work factor override.

    Returns:
        Checksummed address of the new account.
    """
    keystore_dir.mkdir(parents=True, exist_ok=True)

    account = Account.create()
    keyfile = Account.encrypt(account.key, password, kdf=kdf, iterations=iterations)

    path = keystore_dir / _key_filename(account.address)
    path.write_text(json.dumps(keyfile))
    logger.info("Created account %s in %s", account.address, keystore_dir)

    return account.address


def find_key_file(keystore_dir: Path, address: str) -> Path:
    """
    Locate the key file for ``address``.

    Raises:
        FileNotFoundError: If no file in the directory belongs to the address.
    """
    wanted = address[2:].lower() if address.startswith("0x") else address.lower()
    for path in sorted(keystore_dir.iterdir()):
        if not path.is_file():
            continue
        if path.name.lower().endswith(wanted):
            return path
        try:
            stored = json.loads(path.read_text()).get("address", "")
        except (json.JSONDecodeError, UnicodeDecodeError):
            continue
        if stored.lower() == wanted:
            return path
    raise FileNotFoundError(f"No key file for {address} in {keystore_dir}")


def load_account(keystore_dir: Path, address: str, password: str = "") -> LocalAccount:
    """Decrypt the key file for ``address`` into a signing account."""
    keyfile = json.loads(find_key_file(keystore_dir, address).read_text())
    private_key = Account.decrypt(keyfile, password)
    account = Account.from_key(private_key)

    if account.address != to_checksum_address(address):
        raise ValueError(f"Key file for {address} decrypted to {account.address}")

    return account
