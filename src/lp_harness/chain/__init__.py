"""Settlement-chain side of the harness: container, accounts, rounds."""

from .accounts import AccountProvisioner, DevAccount
from .client import (
    ChainClient,
    TranscoderInfo,
    TranscoderStatus,
    Web3ChainClient,
    from_perc,
)
from .fixture import ChainFixture
from .keystore import create_key, keystore_dir_for, load_account
from .rounds import current_round, wait_for_next_round, wait_until_round_initialized

__all__ = [
    # Container
    "ChainFixture",
    # Client
    "ChainClient",
    "TranscoderInfo",
    "TranscoderStatus",
    "Web3ChainClient",
    "from_perc",
    # Accounts
    "AccountProvisioner",
    "DevAccount",
    "create_key",
    "keystore_dir_for",
    "load_account",
    # Round barriers
    "current_round",
    "wait_for_next_round",
    "wait_until_round_initialized",
]
