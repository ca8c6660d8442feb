"""Helper utilities for harness tests."""

from .mocks import ChainDown, FakeChainClient
from .node_stub import FAST_PROBE_INTERVAL, CrashingNodeRunner, NodeStub, StubNodeRunner

__all__ = [
    # Chain
    "ChainDown",
    "FakeChainClient",
    # Nodes
    "FAST_PROBE_INTERVAL",
    "CrashingNodeRunner",
    "NodeStub",
    "StubNodeRunner",
]
