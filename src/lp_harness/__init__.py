"""
Integration-test harness for chain-backed media network nodes.

Boots an ephemeral settlement chain, provisions accounts, launches nodes,
registers orchestrators and synchronizes assertions to round boundaries.
"""

from .assertions import assert_orchestrator_registered_and_activated
from .chain import (
    AccountProvisioner,
    ChainClient,
    ChainFixture,
    DevAccount,
    Web3ChainClient,
    wait_for_next_round,
    wait_until_round_initialized,
)
from .config import HarnessSettings
from .errors import (
    ChainFixtureError,
    ChainQueryError,
    HarnessError,
    InvalidTransitionError,
    NodeExitedError,
    ProvisioningError,
)
from .node import (
    NodeConfig,
    NodeHandle,
    NodeLauncher,
    NodeState,
    OrchestratorRegistration,
    SubprocessNodeRunner,
    default_node_config,
    register_orchestrator,
)
from .ports import NodeAddresses, PortAllocator

__all__ = [
    # Chain
    "AccountProvisioner",
    "ChainClient",
    "ChainFixture",
    "DevAccount",
    "Web3ChainClient",
    "wait_for_next_round",
    "wait_until_round_initialized",
    # Nodes
    "NodeAddresses",
    "NodeConfig",
    "NodeHandle",
    "NodeLauncher",
    "NodeState",
    "OrchestratorRegistration",
    "PortAllocator",
    "SubprocessNodeRunner",
    "default_node_config",
    "register_orchestrator",
    # Assertions
    "assert_orchestrator_registered_and_activated",
    # Configuration
    "HarnessSettings",
    # Errors
    "ChainFixtureError",
    "ChainQueryError",
    "HarnessError",
    "InvalidTransitionError",
    "NodeExitedError",
    "ProvisioningError",
]
