"""
Fixtures for end-to-end tests.

Every test gets its own chain container and its own launcher. Tests skip when
no Docker daemon is reachable or the node binary is not installed.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import AsyncGenerator, Generator

import docker
import pytest
from docker.errors import DockerException

from lp_harness import (
    AccountProvisioner,
    ChainFixture,
    HarnessSettings,
    NodeLauncher,
    PortAllocator,
    SubprocessNodeRunner,
    Web3ChainClient,
)

logger = logging.getLogger(__name__)


@pytest.fixture(scope="session")
def settings() -> HarnessSettings:
    """Harness settings from the environment (set by the lp-harness command)."""
    return HarnessSettings.from_env()


@pytest.fixture(scope="session")
def docker_client() -> docker.DockerClient:
    try:
        client = docker.from_env()
        client.ping()
    except DockerException as exc:
        pytest.skip(f"Docker daemon unavailable: {exc}")
    return client


@pytest.fixture(scope="session")
def node_binary(settings: HarnessSettings) -> str:
    binary = shutil.which(settings.node_binary)
    if binary is None:
        pytest.skip(f"Node binary {settings.node_binary!r} not found")
    return binary


@pytest.fixture(scope="session")
def port_allocator() -> PortAllocator:
    """Session-scoped so no two tests ever hand out the same port."""
    return PortAllocator()


@pytest.fixture
def chain(
    settings: HarnessSettings, docker_client: docker.DockerClient
) -> Generator[ChainFixture, None, None]:
    """A fresh chain container, torn down after the test."""
    fixture = ChainFixture(settings.geth_image, docker_client=docker_client)
    with fixture:
        fixture.wait_for_rpc(timeout=settings.rpc_timeout)
        yield fixture


@pytest.fixture
def chain_client(chain: ChainFixture, settings: HarnessSettings) -> Web3ChainClient:
    return Web3ChainClient(chain.rpc_uri, settings.controller_address)


@pytest.fixture
def provisioner(chain_client: Web3ChainClient) -> AccountProvisioner:
    return AccountProvisioner(chain_client)


@pytest.fixture
async def launcher(
    node_binary: str, port_allocator: PortAllocator
) -> AsyncGenerator[NodeLauncher, None]:
    """Launcher running real node processes, stopped after the test."""
    node_launcher = NodeLauncher(
        runner=SubprocessNodeRunner(node_binary),
        port_allocator=port_allocator,
    )

    try:
        yield node_launcher
    finally:
        try:
            await asyncio.wait_for(node_launcher.stop_all(), timeout=30.0)
        except TimeoutError:
            logger.warning("Node teardown timed out")
