"""Tests for the web3-backed chain client with a mocked provider."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from web3 import Web3

from lp_harness.chain import client as client_module
from lp_harness.chain.client import (
    PERC_DIVISOR,
    ChainClient,
    TranscoderStatus,
    Web3ChainClient,
    from_perc,
)
from lp_harness.errors import ProvisioningError
from tests.lp_harness.helpers import FakeChainClient

CONTROLLER = "0x77A0865438f2EfD65667362D4a8937537CA7a5EF"
SENDER = Web3.to_checksum_address("0x" + "11" * 20)
ORCHESTRATOR = Web3.to_checksum_address("0x" + "ab" * 20)
TX_HASH = b"\x01" * 32


@pytest.fixture
def client() -> Web3ChainClient:
    """Client whose provider and contracts are mocks."""
    chain_client = Web3ChainClient("http://localhost:8545", CONTROLLER, sender=SENDER)
    chain_client.w3 = MagicMock()
    chain_client.w3.eth.wait_for_transaction_receipt.return_value = {
        "status": 1,
        "blockNumber": 7,
    }
    for name in ("RoundsManager", "BondingManager", "LivepeerToken", "LivepeerTokenFaucet"):
        chain_client._contracts[name] = MagicMock(name=name)
    return chain_client


class TestFromPerc:
    """Percentage to fixed-point conversion."""

    def test_full_percentage_is_divisor(self) -> None:
        assert from_perc(100) == PERC_DIVISOR

    def test_examples(self) -> None:
        assert from_perc(10) == 100_000
        assert from_perc(5) == 50_000
        assert from_perc(12.5) == 125_000
        assert from_perc(0) == 0


def test_status_labels() -> None:
    assert TranscoderStatus.REGISTERED.label == "Registered"
    assert TranscoderStatus.NOT_REGISTERED.label == "Not Registered"


def test_fake_satisfies_protocol() -> None:
    assert isinstance(FakeChainClient(), ChainClient)


class TestContractResolution:
    """Contracts are looked up through the Controller once."""

    def test_resolves_by_hashed_name_and_caches(self) -> None:
        chain_client = Web3ChainClient("http://localhost:8545", CONTROLLER, sender=SENDER)
        w3 = MagicMock()
        chain_client.w3 = w3
        controller = w3.eth.contract.return_value
        controller.functions.getContract.return_value.call.return_value = ORCHESTRATOR

        first = chain_client.rounds_manager
        second = chain_client.rounds_manager

        assert first is second
        controller.functions.getContract.assert_called_once_with(
            Web3.keccak(text="RoundsManager")
        )

    def test_sender_defaults_to_first_node_account(self) -> None:
        chain_client = Web3ChainClient("http://localhost:8545", CONTROLLER)
        chain_client.w3 = MagicMock()
        chain_client.w3.eth.accounts = [SENDER]

        assert chain_client.sender == SENDER


class TestRounds:
    """Round reads and initialization."""

    def test_current_round(self, client: Web3ChainClient) -> None:
        client.rounds_manager.functions.currentRound.return_value.call.return_value = 42

        assert client.current_round() == 42

    def test_initialize_round_sends_transaction(self, client: Web3ChainClient) -> None:
        functions = client.rounds_manager.functions
        functions.currentRoundInitialized.return_value.call.return_value = False
        functions.initializeRound.return_value.transact.return_value = TX_HASH

        client.initialize_round()

        functions.initializeRound.return_value.transact.assert_called_once_with({"from": SENDER})
        client.w3.eth.wait_for_transaction_receipt.assert_called_once()

    def test_initialize_round_noop_when_initialized(self, client: Web3ChainClient) -> None:
        functions = client.rounds_manager.functions
        functions.currentRoundInitialized.return_value.call.return_value = True

        client.initialize_round()

        functions.initializeRound.return_value.transact.assert_not_called()

    def test_reverted_initialization_raises(self, client: Web3ChainClient) -> None:
        functions = client.rounds_manager.functions
        functions.currentRoundInitialized.return_value.call.return_value = False
        functions.initializeRound.return_value.transact.return_value = TX_HASH
        client.w3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "blockNumber": 7}

        with pytest.raises(ProvisioningError, match="reverted"):
            client.initialize_round()


class TestFundAccount:
    """ETH transfer followed by a faucet request."""

    def test_sends_eth_then_signed_faucet_request(
        self, client: Web3ChainClient, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        account = MagicMock()
        monkeypatch.setattr(client_module, "load_account", lambda *args: account)
        client.w3.eth.send_transaction.return_value = TX_HASH
        client.w3.eth.send_raw_transaction.return_value = TX_HASH
        client.w3.eth.get_balance.return_value = client.funding_wei
        client.token.functions.balanceOf.return_value.call.return_value = 1000

        client.fund_account(ORCHESTRATOR.lower(), tmp_path)

        client.w3.eth.send_transaction.assert_called_once_with(
            {"from": SENDER, "to": ORCHESTRATOR, "value": client.funding_wei}
        )
        client.w3.eth.send_raw_transaction.assert_called_once_with(
            account.sign_transaction.return_value.raw_transaction
        )
        assert client.w3.eth.wait_for_transaction_receipt.call_count == 2

    def test_failed_transfer_stops_before_faucet(
        self, client: Web3ChainClient, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setattr(client_module, "load_account", MagicMock())
        client.w3.eth.send_transaction.return_value = TX_HASH
        client.w3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "blockNumber": 7}

        with pytest.raises(ProvisioningError, match="ETH transfer"):
            client.fund_account(ORCHESTRATOR, tmp_path)

        client.w3.eth.send_raw_transaction.assert_not_called()


class TestGetTranscoder:
    """BondingManager reads."""

    def test_maps_contract_fields(self, client: Web3ChainClient) -> None:
        functions = client.bonding_manager.functions
        functions.getTranscoder.return_value.call.return_value = [
            3, 100_000, 50_000, 3, 4, 0, 0, 0, 0, 0
        ]
        functions.transcoderStatus.return_value.call.return_value = 1
        functions.isActiveTranscoder.return_value.call.return_value = True
        functions.transcoderTotalStake.return_value.call.return_value = 500

        info = client.get_transcoder(ORCHESTRATOR.lower())

        assert info.address == ORCHESTRATOR
        assert info.active
        assert info.status == "Registered"
        assert info.delegated_stake == 500
        assert info.reward_cut == from_perc(10)
        assert info.fee_share == from_perc(5)

    def test_unregistered(self, client: Web3ChainClient) -> None:
        functions = client.bonding_manager.functions
        functions.getTranscoder.return_value.call.return_value = [0] * 10
        functions.transcoderStatus.return_value.call.return_value = 0
        functions.isActiveTranscoder.return_value.call.return_value = False
        functions.transcoderTotalStake.return_value.call.return_value = 0

        info = client.get_transcoder(ORCHESTRATOR)

        assert not info.active
        assert info.status == "Not Registered"
