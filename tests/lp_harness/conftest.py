"""
Shared fixtures for harness tests.

Nodes run in-process as aiohttp stubs and the chain is an in-memory fake,
so nothing here needs Docker or the node binary.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator

import pytest

from lp_harness.node import NodeLauncher
from lp_harness.ports import PortAllocator

from .helpers import FAST_PROBE_INTERVAL, FakeChainClient, StubNodeRunner

logger = logging.getLogger(__name__)


@pytest.fixture(scope="session")
def port_allocator() -> PortAllocator:
    """
    Provide a shared port allocator across all tests.

    Session-scoped so stubs never rebind a port a previous test just released.
    """
    return PortAllocator()


@pytest.fixture
def chain() -> FakeChainClient:
    """Fresh fake chain at round 10, initialized."""
    return FakeChainClient(round=10)


@pytest.fixture
def stub_runner() -> StubNodeRunner:
    """Runner serving node stubs that are immediately healthy."""
    return StubNodeRunner()


@pytest.fixture
async def launcher(
    stub_runner: StubNodeRunner,
    port_allocator: PortAllocator,
) -> AsyncGenerator[NodeLauncher, None]:
    """Launcher over stub nodes with guaranteed teardown."""
    node_launcher = NodeLauncher(
        runner=stub_runner,
        port_allocator=port_allocator,
        probe_interval=FAST_PROBE_INTERVAL,
    )

    try:
        yield node_launcher
    finally:
        try:
            await asyncio.wait_for(node_launcher.stop_all(), timeout=10.0)
        except TimeoutError:
            logger.warning("Launcher teardown timed out")
