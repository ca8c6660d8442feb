"""
Chain client capability surface.

The harness only needs a handful of protocol reads and setup transactions.
``ChainClient`` names them; ``Web3ChainClient`` implements them against the
fixture chain's JSON-RPC endpoint. Contract addresses are resolved through the
protocol Controller, the same way the node resolves them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from web3 import Web3
from web3.contract import Contract

from lp_harness.errors import ProvisioningError

from .keystore import load_account

logger = logging.getLogger(__name__)

PERC_DIVISOR = 1_000_000
"""Fixed-point divisor the protocol uses for percentages."""

DEFAULT_FUNDING_WEI = Web3.to_wei(1, "ether")
"""ETH sent to each new account so it can pay for gas."""

DEFAULT_TX_TIMEOUT = 120.0
"""Seconds to wait for a setup transaction receipt."""


def from_perc(perc: float) -> int:
    """
    Convert a percentage into the protocol's fixed-point representation.

    ``100.0`` maps to ``PERC_DIVISOR``.
    """
    return int(perc * PERC_DIVISOR / 100)


class TranscoderStatus(IntEnum):
    """On-chain registration status reported by the BondingManager."""

    NOT_REGISTERED = 0
    REGISTERED = 1

    @property
    def label(self) -> str:
        """Human-readable status as the node's CLI prints it."""
        return "Registered" if self is TranscoderStatus.REGISTERED else "Not Registered"


@dataclass(frozen=True, slots=True)
class TranscoderInfo:
    """Snapshot of an orchestrator's on-chain registration."""

    address: str
    """Orchestrator account."""

    active: bool
    """Whether the orchestrator is in the active set for the current round."""

    status: str
    """Registration status label."""

    delegated_stake: int
    """Total stake bonded to the orchestrator."""

    reward_cut: int
    """Block reward cut, fixed-point."""

    fee_share: int
    """Fee share, fixed-point."""


@runtime_checkable
class ChainClient(Protocol):
    """Chain operations consumed by the harness."""

    def current_round(self) -> int:
        """Return the protocol's current round number."""
        ...

    def current_round_initialized(self) -> bool:
        """Return whether the current round has been initialized."""
        ...

    def initialize_round(self) -> None:
        """Initialize the current round. No-op if already initialized."""
        ...

    def fund_account(self, address: str, keystore_dir: Path, password: str = "") -> None:
        """Grant a fresh account ETH for gas and protocol tokens from the faucet."""
        ...

    def balance(self, address: str) -> int:
        """Return the account's ETH balance in wei."""
        ...

    def token_balance(self, address: str) -> int:
        """Return the account's protocol token balance."""
        ...

    def get_transcoder(self, address: str) -> TranscoderInfo:
        """Read an orchestrator's on-chain registration."""
        ...


# Minimal ABIs: only the functions the harness calls.
_CONTROLLER_ABI: list[dict[str, Any]] = [
    {
        "name": "getContract",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "_id", "type": "bytes32"}],
        "outputs": [{"name": "", "type": "address"}],
    }
]

_ROUNDS_MANAGER_ABI: list[dict[str, Any]] = [
    {
        "name": "currentRound",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "currentRoundInitialized",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "initializeRound",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [],
        "outputs": [],
    },
]

_BONDING_MANAGER_ABI: list[dict[str, Any]] = [
    {
        "name": "getTranscoder",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "_transcoder", "type": "address"}],
        "outputs": [
            {"name": "lastRewardRound", "type": "uint256"},
            {"name": "rewardCut", "type": "uint256"},
            {"name": "feeShare", "type": "uint256"},
            {"name": "lastActiveStakeUpdateRound", "type": "uint256"},
            {"name": "activationRound", "type": "uint256"},
            {"name": "deactivationRound", "type": "uint256"},
            {"name": "activeCumulativeRewards", "type": "uint256"},
            {"name": "cumulativeRewards", "type": "uint256"},
            {"name": "cumulativeFees", "type": "uint256"},
            {"name": "lastFeeRound", "type": "uint256"},
        ],
    },
    {
        "name": "isActiveTranscoder",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "_transcoder", "type": "address"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "transcoderStatus",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "_transcoder", "type": "address"}],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "name": "transcoderTotalStake",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "_transcoder", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

_TOKEN_ABI: list[dict[str, Any]] = [
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "_owner", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    }
]

_FAUCET_ABI: list[dict[str, Any]] = [
    {
        "name": "request",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [],
        "outputs": [],
    }
]


class Web3ChainClient:
    """
    ``ChainClient`` backed by web3.py.

    Setup transactions (round initialization, ETH funding) are sent from
    ``sender``, which defaults to the first unlocked account of the dev chain.
    Faucet requests are signed locally with the funded account's own key.
    """

    def __init__(
        self,
        rpc_uri: str,
        controller_address: str,
        *,
        sender: str | None = None,
        funding_wei: int = DEFAULT_FUNDING_WEI,
        tx_timeout: float = DEFAULT_TX_TIMEOUT,
    ) -> None:
        self.rpc_uri = rpc_uri
        self.w3 = Web3(Web3.HTTPProvider(rpc_uri))
        self.controller_address = Web3.to_checksum_address(controller_address)
        self.funding_wei = funding_wei
        self.tx_timeout = tx_timeout
        self._sender = sender
        self._contracts: dict[str, Contract] = {}

    @property
    def sender(self) -> str:
        """Account that pays for harness setup transactions."""
        if self._sender is None:
            self._sender = self.w3.eth.accounts[0]
        return self._sender

    def _contract(self, name: str, abi: list[dict[str, Any]]) -> Contract:
        """Resolve a protocol contract by name through the Controller."""
        if name not in self._contracts:
            controller = self.w3.eth.contract(address=self.controller_address, abi=_CONTROLLER_ABI)
            address = controller.functions.getContract(Web3.keccak(text=name)).call()
            logger.debug("Resolved %s at %s", name, address)
            self._contracts[name] = self.w3.eth.contract(address=address, abi=abi)
        return self._contracts[name]

    @property
    def rounds_manager(self) -> Contract:
        return self._contract("RoundsManager", _ROUNDS_MANAGER_ABI)

    @property
    def bonding_manager(self) -> Contract:
        return self._contract("BondingManager", _BONDING_MANAGER_ABI)

    @property
    def token(self) -> Contract:
        return self._contract("LivepeerToken", _TOKEN_ABI)

    @property
    def faucet(self) -> Contract:
        return self._contract("LivepeerTokenFaucet", _FAUCET_ABI)

    def _wait_for_receipt(self, tx_hash: bytes, what: str) -> None:
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.tx_timeout)
        if receipt["status"] != 1:
            raise ProvisioningError(f"{what} transaction {Web3.to_hex(tx_hash)} reverted")
        logger.debug("%s mined in block %d", what, receipt["blockNumber"])

    def current_round(self) -> int:
        return int(self.rounds_manager.functions.currentRound().call())

    def current_round_initialized(self) -> bool:
        return bool(self.rounds_manager.functions.currentRoundInitialized().call())

    def initialize_round(self) -> None:
        # The contract reverts on a second initialization within the same round.
        if self.current_round_initialized():
            logger.debug("Round %d already initialized", self.current_round())
            return

        tx_hash = self.rounds_manager.functions.initializeRound().transact({"from": self.sender})
        self._wait_for_receipt(tx_hash, "initializeRound")
        logger.info("Initialized round %d", self.current_round())

    def fund_account(self, address: str, keystore_dir: Path, password: str = "") -> None:
        address = Web3.to_checksum_address(address)

        # Gas money first: the faucet request below is paid by the new account.
        tx_hash = self.w3.eth.send_transaction(
            {"from": self.sender, "to": address, "value": self.funding_wei}
        )
        self._wait_for_receipt(tx_hash, "ETH transfer")

        account = load_account(keystore_dir, address, password)
        tx = self.faucet.functions.request().build_transaction(
            {
                "from": address,
                "nonce": self.w3.eth.get_transaction_count(address),
                "chainId": self.w3.eth.chain_id,
            }
        )
        signed = account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        self._wait_for_receipt(tx_hash, "faucet request")

        logger.info(
            "Funded %s: %d wei, %d tokens",
            address,
            self.balance(address),
            self.token_balance(address),
        )

    def balance(self, address: str) -> int:
        return int(self.w3.eth.get_balance(Web3.to_checksum_address(address)))

    def token_balance(self, address: str) -> int:
        """Return the account's protocol token balance."""
        return int(self.token.functions.balanceOf(Web3.to_checksum_address(address)).call())

    def get_transcoder(self, address: str) -> TranscoderInfo:
        """Read an orchestrator's registration from the BondingManager."""
        address = Web3.to_checksum_address(address)
        functions = self.bonding_manager.functions

        fields = functions.getTranscoder(address).call()
        status = TranscoderStatus(functions.transcoderStatus(address).call())

        return TranscoderInfo(
            address=address,
            active=bool(functions.isActiveTranscoder(address).call()),
            status=status.label,
            delegated_stake=int(functions.transcoderTotalStake(address).call()),
            reward_cut=int(fields[1]),
            fee_share=int(fields[2]),
        )
