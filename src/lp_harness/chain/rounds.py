"""
Round barriers.

Staking and pricing changes only take effect at the next round boundary, so
any assertion on them must first pass one of these barriers. Both poll the
chain on a fixed interval with no upper bound; the test runner's timeout is
the backstop. Accessor failures abort the wait immediately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TypeVar

from lp_harness import metrics
from lp_harness.errors import ChainQueryError

from .client import ChainClient

logger = logging.getLogger(__name__)

ROUND_POLL_INTERVAL = 0.5
"""Seconds between round accessor reads."""

T = TypeVar("T")


async def _query(accessor: Callable[[], T], name: str) -> T:
    """Run a blocking chain accessor off the event loop."""
    metrics.round_polls.inc()
    try:
        return await asyncio.to_thread(accessor)
    except Exception as exc:
        raise ChainQueryError(f"{name} failed: {exc}") from exc


async def current_round(client: ChainClient) -> int:
    """Read the current round, wrapping failures as ``ChainQueryError``."""
    return await _query(client.current_round, "current_round")


async def wait_for_next_round(
    client: ChainClient,
    from_round: int | None = None,
    poll_interval: float = ROUND_POLL_INTERVAL,
) -> int:
    """
    Block until the chain's round is strictly greater than ``from_round``.

    Args:
        client: Chain to poll.
        from_round: Baseline round. Read from the chain when omitted.
        poll_interval: Seconds between polls.

    Returns:
        The first observed round past the baseline.

    Raises:
        ChainQueryError: If the round accessor fails.
    """
    if from_round is None:
        from_round = await current_round(client)

    logger.debug("Waiting for a round after %d", from_round)
    while True:
        observed = await current_round(client)
        if observed > from_round:
            logger.info("Round advanced %d -> %d", from_round, observed)
            return observed

        await asyncio.sleep(poll_interval)


async def wait_until_round_initialized(
    client: ChainClient,
    poll_interval: float = ROUND_POLL_INTERVAL,
) -> None:
    """
    Block until the current round reports initialized.

    Raises:
        ChainQueryError: If the accessor fails.
    """
    while True:
        initialized = await _query(client.current_round_initialized, "current_round_initialized")
        if initialized:
            return

        await asyncio.sleep(poll_interval)
