"""
Account provisioning for harness nodes.

A node either gets a brand-new funded account or reuses one a previous node
left behind in its datadir. Either way the round mechanism is bootstrapped
before the node starts, since an orchestrator cannot register into an
uninitialized round.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from lp_harness.errors import ProvisioningError

from .client import ChainClient
from .keystore import create_key, keystore_dir_for

logger = logging.getLogger(__name__)

DATADIR_PREFIX = "lp-harness-"
"""Prefix of the fresh data directories made for new accounts."""


@dataclass(frozen=True, slots=True)
class DevAccount:
    """An account a node will transact with."""

    address: str
    """Checksummed account address."""

    datadir: Path
    """Node data directory holding the keystore."""

    password: str = field(default="", repr=False)
    """Keystore passphrase."""

    created: bool = False
    """Whether the account was created (and funded) by the provisioner."""

    @property
    def keystore_dir(self) -> Path:
        """Directory holding the account's key file."""
        return keystore_dir_for(self.datadir)


@dataclass(slots=True)
class AccountProvisioner:
    """
    Creates or reuses chain accounts and bootstraps rounds.

    Every chain error is fatal: the fixture chain is local and fully
    controlled, so a failure means the fixture is broken.
    """

    client: ChainClient
    """Chain to provision against."""

    password: str = field(default="", repr=False)
    """Passphrase for newly created key files."""

    kdf: str | None = None
    """Key derivation function for new key files (eth-account default if None)."""

    iterations: int | None = None
    """KDF work factor for new key files."""

    def provision(self, datadir: Path | None = None, account: str | None = None) -> DevAccount:
        """
        Prepare an account and initialize the current round.

        Args:
            datadir: Node data directory. New accounts are written to its keystore;
                existing accounts are looked up there. A fresh temporary
                directory is made for a new account when None.
            account: Existing account address to reuse. A new one is created when None.

        Returns:
            The provisioned account.

        Raises:
            ProvisioningError: If key creation, funding or round initialization fails.
        """
        if account is None:
            if datadir is None:
                datadir = Path(tempfile.mkdtemp(prefix=DATADIR_PREFIX))
            dev_account = self._create_and_fund(datadir)
        else:
            if datadir is None:
                raise ProvisioningError(f"Reusing {account} needs the datadir holding its key")
            keystore_dir = keystore_dir_for(datadir)
            if not keystore_dir.is_dir():
                raise ProvisioningError(f"No keystore for {account} under {datadir}")
            dev_account = DevAccount(address=account, datadir=datadir, password=self.password)
            logger.info("Reusing account %s from %s", account, keystore_dir)

        try:
            self.client.initialize_round()
        except ProvisioningError:
            raise
        except Exception as exc:
            raise ProvisioningError(f"Round initialization failed: {exc}") from exc

        return dev_account

    def _create_and_fund(self, datadir: Path) -> DevAccount:
        keystore_dir = keystore_dir_for(datadir)

        try:
            address = create_key(
                keystore_dir, self.password, kdf=self.kdf, iterations=self.iterations
            )
        except OSError as exc:
            raise ProvisioningError(f"Cannot write keystore in {keystore_dir}: {exc}") from exc

        try:
            self.client.fund_account(address, keystore_dir, self.password)
        except ProvisioningError:
            raise
        except Exception as exc:
            raise ProvisioningError(f"Funding {address} failed: {exc}") from exc

        return DevAccount(address=address, datadir=datadir, password=self.password, created=True)
