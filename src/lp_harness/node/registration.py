"""
Orchestrator registration through a node's control plane.

The node turns ``POST /activateOrchestrator`` into the bond, pricing and
registration transactions. Those only take effect at the next round boundary,
so registration is not considered done until the chain's round has advanced
past the round observed just before the accepted request.
"""

from __future__ import annotations

import asyncio
import logging

import httpx
from pydantic import Field

from lp_harness import metrics
from lp_harness.chain.client import ChainClient
from lp_harness.chain.rounds import ROUND_POLL_INTERVAL, current_round, wait_for_next_round
from lp_harness.errors import InvalidTransitionError
from lp_harness.models import StrictBaseModel

from .launcher import NodeHandle
from .lifecycle import NodeState, can_transition

logger = logging.getLogger(__name__)

REGISTRATION_PATH = "/activateOrchestrator"

RETRY_INTERVAL = 0.2
"""Seconds between registration attempts."""

POST_TIMEOUT = 10.0
"""Per-request timeout for control-plane POSTs."""


class OrchestratorRegistration(StrictBaseModel):
    """Pricing and staking parameters an orchestrator registers with."""

    price_per_unit: int = Field(ge=0)
    """Price in wei per ``pixels_per_unit`` pixels."""

    pixels_per_unit: int = Field(gt=0)
    """Pixels per pricing unit."""

    block_reward_cut: float = Field(ge=0, le=100)
    """Share of block rewards kept by the orchestrator, in percent."""

    fee_share: float = Field(ge=0, le=100)
    """Share of fees passed to delegators, in percent."""

    stake_amount: int = Field(ge=0)
    """Tokens to bond to self."""

    service_uri: str | None = None
    """Advertised service URI. Defaults to the node's service address."""

    def to_form(self, default_service_uri: str) -> dict[str, str]:
        """
        Render the control-plane form fields.

        Args:
            default_service_uri: Used when no explicit service URI is set.
        """
        return {
            "pricePerUnit": str(self.price_per_unit),
            "pixelsPerUnit": str(self.pixels_per_unit),
            "blockRewardCut": f"{self.block_reward_cut:g}",
            "feeShare": f"{self.fee_share:g}",
            "serviceURI": self.service_uri or default_service_uri,
            "amount": str(self.stake_amount),
        }


async def http_post_with_params(
    client: httpx.AsyncClient,
    url: str,
    values: dict[str, str] | None = None,
    headers: dict[str, str] | None = None,
) -> tuple[str, bool]:
    """
    POST form-encoded values.

    Returns:
        Tuple of (response body, accepted). Transport errors yield ``("", False)``.
    """
    request_headers = {"Content-Type": "application/x-www-form-urlencoded"}
    request_headers.update(headers or {})

    try:
        response = await client.post(url, data=values or {}, headers=request_headers)
    except httpx.HTTPError as exc:
        logger.debug("POST %s failed: %s", url, exc)
        return "", False

    return response.text, response.is_success


async def register_orchestrator(
    node: NodeHandle,
    params: OrchestratorRegistration,
    client: ChainClient,
    *,
    retry_interval: float = RETRY_INTERVAL,
    round_poll_interval: float = ROUND_POLL_INTERVAL,
) -> int:
    """
    Register ``node`` as an orchestrator and wait for activation.

    Retries the registration request indefinitely until the node accepts it,
    then blocks until the next round boundary.

    Args:
        node: A ready node.
        params: Registration parameters.
        client: Chain used for the round barrier.
        retry_interval: Seconds between rejected attempts.
        round_poll_interval: Seconds between round polls.

    Returns:
        The round in which the registration became active.

    Raises:
        InvalidTransitionError: If the node is not ready.
        ValueError: If there is no service URI to advertise.
        ChainQueryError: If reading the round fails.
    """
    if not can_transition(node.state, NodeState.REGISTERED):
        raise InvalidTransitionError(f"Node {node.index} is {node.state.value}, not ready")

    # The service interface doubles as the advertised address when none is configured.
    service_addr = node.config.service_addr or node.config.http_addr
    if params.service_uri is None and service_addr is None:
        raise ValueError(f"Node {node.index} has no service or HTTP address to advertise")

    url = f"http://{node.cli_addr}{REGISTRATION_PATH}"
    form = params.to_form(default_service_uri=f"http://{service_addr}")

    attempts = 0
    async with httpx.AsyncClient(timeout=POST_TIMEOUT) as http:
        while True:
            baseline = await current_round(client)
            attempts += 1
            metrics.registration_attempts.inc()

            body, accepted = await http_post_with_params(http, url, form)
            if accepted:
                break

            logger.debug(
                "Registration attempt %d on node %d rejected: %s", attempts, node.index, body
            )
            await asyncio.sleep(retry_interval)

    metrics.registrations_accepted.inc()
    node.transition(NodeState.REGISTERED)
    logger.info(
        "Node %d registration accepted after %d attempts in round %d",
        node.index,
        attempts,
        baseline,
    )

    active_round = await wait_for_next_round(client, baseline, poll_interval=round_poll_interval)
    node.transition(NodeState.ACTIVE)
    return active_round
