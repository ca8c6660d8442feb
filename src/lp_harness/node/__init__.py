"""Service-node side of the harness: configuration, launch, readiness, registration."""

from .config import NodeConfig, default_node_config
from .launcher import NodeHandle, NodeLauncher, NodeRunner, SubprocessNodeRunner
from .lifecycle import NodeState, can_transition
from .readiness import OneShotSignal, ReadinessProbe
from .registration import OrchestratorRegistration, http_post_with_params, register_orchestrator

__all__ = [
    # Configuration
    "NodeConfig",
    "default_node_config",
    # Launch
    "NodeHandle",
    "NodeLauncher",
    "NodeRunner",
    "SubprocessNodeRunner",
    # Lifecycle
    "NodeState",
    "can_transition",
    # Readiness
    "OneShotSignal",
    "ReadinessProbe",
    # Registration
    "OrchestratorRegistration",
    "http_post_with_params",
    "register_orchestrator",
]
