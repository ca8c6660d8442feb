"""
Assertion helpers for on-chain node state.

Meant to run after a round barrier: registration state read before the round
boundary is not yet authoritative.
"""

from __future__ import annotations

import logging

from lp_harness.chain.client import ChainClient, TranscoderStatus, from_perc
from lp_harness.node.registration import OrchestratorRegistration

logger = logging.getLogger(__name__)


def assert_orchestrator_registered_and_activated(
    client: ChainClient,
    address: str,
    params: OrchestratorRegistration,
) -> None:
    """
    Assert an orchestrator is active with the parameters it registered.

    Args:
        client: Chain to read from.
        address: Orchestrator account.
        params: Parameters the orchestrator registered with.

    Raises:
        AssertionError: If any on-chain field disagrees.
    """
    info = client.get_transcoder(address)
    logger.debug("Transcoder %s: %s", address, info)

    assert info.active, f"Orchestrator {address} is not active"
    assert info.status == TranscoderStatus.REGISTERED.label, (
        f"Orchestrator {address} status is {info.status!r}"
    )
    assert info.delegated_stake == params.stake_amount, (
        f"Orchestrator {address} stake {info.delegated_stake}, expected {params.stake_amount}"
    )
    assert info.fee_share == from_perc(params.fee_share), (
        f"Orchestrator {address} fee share {info.fee_share}, "
        f"expected {from_perc(params.fee_share)}"
    )
    assert info.reward_cut == from_perc(params.block_reward_cut), (
        f"Orchestrator {address} reward cut {info.reward_cut}, "
        f"expected {from_perc(params.block_reward_cut)}"
    )
