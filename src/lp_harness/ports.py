"""
Address allocation for harness-launched nodes.

Every node binds three listeners: the HTTP service interface, the CLI control
plane and the RTMP ingest. Concurrent launches must never collide, so each
category is served from its own monotonically increasing counter.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from dataclasses import dataclass, field

BASE_HTTP_PORT = 8935
"""Starting port for the node's HTTP service interface."""

BASE_CLI_PORT = 7935
"""Starting port for the node's CLI control plane."""

BASE_RTMP_PORT = 1935
"""Starting port for RTMP ingest."""

LOCALHOST = "127.0.0.1"


@dataclass(frozen=True, slots=True)
class NodeAddresses:
    """Bind addresses handed to a single node."""

    http_addr: str
    """HTTP service address, also advertised as the service URI."""

    cli_addr: str
    """CLI control-plane address (status, registration)."""

    rtmp_addr: str
    """RTMP ingest address."""

    def __iter__(self) -> Iterator[str]:
        """Unpack as (http_addr, cli_addr, rtmp_addr)."""
        return iter((self.http_addr, self.cli_addr, self.rtmp_addr))


@dataclass(slots=True)
class PortAllocator:
    """
    Thread-safe port allocator for harness nodes.

    Hands out ports from three counters without probing the OS.
    Ports are never reused for the lifetime of the allocator.
    """

    host: str = field(default=LOCALHOST)
    """Interface every allocated address binds to."""

    _http_counter: int = field(default=0)
    """Current HTTP port offset."""

    _cli_counter: int = field(default=0)
    """Current CLI port offset."""

    _rtmp_counter: int = field(default=0)
    """Current RTMP port offset."""

    _lock: threading.Lock = field(default_factory=threading.Lock)
    """Guards all three counters."""

    def allocate_ports(self) -> tuple[int, int, int]:
        """
        Allocate one port from each category.

        Returns:
            Tuple of (http_port, cli_port, rtmp_port).
        """
        with self._lock:
            http_port = BASE_HTTP_PORT + self._http_counter
            cli_port = BASE_CLI_PORT + self._cli_counter
            rtmp_port = BASE_RTMP_PORT + self._rtmp_counter
            self._http_counter += 1
            self._cli_counter += 1
            self._rtmp_counter += 1
            return http_port, cli_port, rtmp_port

    def allocate_addresses(self) -> NodeAddresses:
        """
        Allocate a full set of bind addresses for one node.

        Returns:
            Addresses as ``host:port`` strings.
        """
        http_port, cli_port, rtmp_port = self.allocate_ports()
        return NodeAddresses(
            http_addr=f"{self.host}:{http_port}",
            cli_addr=f"{self.host}:{cli_port}",
            rtmp_addr=f"{self.host}:{rtmp_port}",
        )

    def reset(self) -> None:
        """Reset counters to initial state."""
        with self._lock:
            self._http_counter = 0
            self._cli_counter = 0
            self._rtmp_counter = 0
