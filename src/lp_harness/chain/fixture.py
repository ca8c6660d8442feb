"""
Ephemeral settlement chain running in a Docker container.

The image ships a dev-mode geth with the protocol contracts already deployed.
Container ports are published to random host ports so that concurrent test
sessions on one machine do not collide.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from types import TracebackType
from urllib.parse import urlparse

import docker
import httpx
from docker.errors import DockerException, NotFound
from docker.models.containers import Container

from lp_harness.config import DEFAULT_GETH_IMAGE
from lp_harness.errors import ChainFixtureError

logger = logging.getLogger(__name__)

RPC_PORT = "8545/tcp"
"""JSON-RPC port inside the container."""

WS_PORT = "8546/tcp"
"""Secondary service port inside the container."""


def _docker_host() -> str:
    """Host on which published container ports are reachable."""
    docker_host = os.environ.get("DOCKER_HOST", "")
    if docker_host.startswith("tcp://"):
        return urlparse(docker_host).hostname or "localhost"
    return "localhost"


@dataclass(slots=True)
class ChainFixture:
    """
    Lifecycle of one chain container.

    Owns the container exclusively. ``terminate`` may be called any number of times.
    """

    image: str = DEFAULT_GETH_IMAGE
    """Image to run."""

    docker_client: docker.DockerClient | None = field(default=None, repr=False)
    """Docker client. Built from the environment on start when None."""

    rpc_uri: str = field(default="", init=False)
    """Externally reachable JSON-RPC URI."""

    ws_uri: str = field(default="", init=False)
    """Externally reachable URI of the secondary port."""

    container: Container | None = field(default=None, init=False, repr=False)
    """Running container, None before start and after terminate."""

    def start(self) -> ChainFixture:
        """
        Run the chain container and resolve its endpoints.

        Returns:
            The fixture itself, for chaining.

        Raises:
            ChainFixtureError: If Docker is unavailable, the image cannot run,
                or a port mapping is missing.
        """
        try:
            if self.docker_client is None:
                self.docker_client = docker.from_env()

            self.container = self.docker_client.containers.run(
                self.image,
                detach=True,
                ports={RPC_PORT: None, WS_PORT: None},
            )
        except DockerException as exc:
            raise ChainFixtureError(f"Failed to start {self.image}: {exc}") from exc

        # From here on a failed start must not leave the container running:
        # __exit__ is never called when __enter__ raises.
        try:
            self.container.reload()
            host = _docker_host()
            self.rpc_uri = f"http://{host}:{self._mapped_port(RPC_PORT)}"
            self.ws_uri = f"http://{host}:{self._mapped_port(WS_PORT)}"
        except DockerException as exc:
            self.terminate()
            raise ChainFixtureError(f"Failed to inspect {self.image}: {exc}") from exc
        except BaseException:
            self.terminate()
            raise

        logger.info(
            "Started chain container %s (rpc=%s, ws=%s)",
            self.container.short_id,
            self.rpc_uri,
            self.ws_uri,
        )
        return self

    def _mapped_port(self, container_port: str) -> str:
        assert self.container is not None, "Container not started"

        bindings = self.container.attrs.get("NetworkSettings", {}).get("Ports", {})
        published = bindings.get(container_port)
        if not published:
            raise ChainFixtureError(f"Port {container_port} is not published by {self.image}")
        return published[0]["HostPort"]

    def wait_for_rpc(self, timeout: float = 60.0, poll_interval: float = 0.5) -> int:
        """
        Wait until the chain answers JSON-RPC requests.

        The container reports started before geth binds its listener.

        Args:
            timeout: Maximum wait time in seconds.
            poll_interval: Time between checks.

        Returns:
            The chain's block number at the time it first answered.

        Raises:
            ChainFixtureError: If the RPC does not answer in time.
        """
        payload = {"jsonrpc": "2.0", "method": "eth_blockNumber", "params": [], "id": 1}
        start = time.monotonic()

        while time.monotonic() - start < timeout:
            try:
                response = httpx.post(self.rpc_uri, json=payload, timeout=2.0)
                if response.status_code == 200 and "result" in response.json():
                    block = int(response.json()["result"], 16)
                    logger.info("Chain RPC at %s is up (block %d)", self.rpc_uri, block)
                    return block
            except (httpx.HTTPError, ValueError):
                pass
            time.sleep(poll_interval)

        raise ChainFixtureError(f"Chain RPC at {self.rpc_uri} not ready after {timeout:.0f}s")

    def terminate(self) -> None:
        """Stop and remove the container."""
        container = self.container
        if container is None:
            return

        self.container = None
        try:
            container.stop(timeout=5)
            container.remove(v=True, force=True)
        except NotFound:
            logger.debug("Chain container %s already removed", container.short_id)
            return

        logger.info("Terminated chain container %s", container.short_id)

    def __enter__(self) -> ChainFixture:
        return self.start()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.terminate()
