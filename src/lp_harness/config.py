"""
Environment-driven settings for the harness.

Module constants are read at import; ``HarnessSettings.from_env()`` reads the
variables again when called. The e2e CLI forwards its options through the
same variables so that pytest workers see a consistent configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

_SUPPORTED_NETWORKS: list[str] = ["devnet", "offchain"]

DEFAULT_GETH_IMAGE = "livepeer/geth-with-livepeer-protocol:confluence"
"""Chain image with the protocol contracts pre-deployed."""

DEFAULT_CONTROLLER_ADDRESS = "0x77A0865438f2EfD65667362D4a8937537CA7a5EF"
"""Controller contract address baked into the devnet image."""

DEFAULT_NODE_BINARY = "livepeer"
"""Node executable, resolved against PATH."""


def network_from_env() -> str:
    """Read and validate ``LP_HARNESS_NETWORK``."""
    network = os.environ.get("LP_HARNESS_NETWORK", "devnet").lower()
    if network not in _SUPPORTED_NETWORKS:
        raise ValueError(
            f"Invalid LP_HARNESS_NETWORK environment variable: '{network}'. "
            f"Supported values: {_SUPPORTED_NETWORKS}"
        )
    return network


LP_HARNESS_NETWORK = network_from_env()
"""Network name passed to every launched node."""


@dataclass(frozen=True, slots=True)
class HarnessSettings:
    """Resolved harness configuration."""

    geth_image: str = DEFAULT_GETH_IMAGE
    """Docker image for the ephemeral chain."""

    controller_address: str = DEFAULT_CONTROLLER_ADDRESS
    """Protocol Controller contract address on the fixture chain."""

    node_binary: str = DEFAULT_NODE_BINARY
    """Executable launched by the subprocess runner."""

    network: str = LP_HARNESS_NETWORK
    """Network name handed to nodes."""

    rpc_timeout: float = 60.0
    """Seconds to wait for the fixture chain's RPC to answer after container start."""

    @classmethod
    def from_env(cls) -> HarnessSettings:
        """Build settings from ``LP_HARNESS_*`` environment variables."""
        return cls(
            geth_image=os.environ.get("LP_HARNESS_GETH_IMAGE", DEFAULT_GETH_IMAGE),
            controller_address=os.environ.get("LP_HARNESS_CONTROLLER", DEFAULT_CONTROLLER_ADDRESS),
            node_binary=os.environ.get("LP_HARNESS_NODE_BINARY", DEFAULT_NODE_BINARY),
            network=network_from_env(),
            rpc_timeout=float(os.environ.get("LP_HARNESS_RPC_TIMEOUT", "60")),
        )
