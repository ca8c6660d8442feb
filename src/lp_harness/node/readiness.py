"""
Readiness probing for launched nodes.

A node is ready once its control plane answers ``GET /status`` with 200.
Anything else, including connection errors while the node is still binding
its listeners, counts as "not yet". The probe cannot tell a slow node from a
dead one; the launcher watches the run task for that.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from lp_harness import metrics

logger = logging.getLogger(__name__)

PROBE_INTERVAL = 0.2
"""Seconds between status probes."""

PROBE_REQUEST_TIMEOUT = 2.0
"""Per-request timeout for a single probe."""

STATUS_PATH = "/status"


@dataclass(slots=True)
class OneShotSignal:
    """
    A notification that fires at most once.

    Any number of waiters may block on it; all of them observe the same firing.
    """

    _event: asyncio.Event = field(default_factory=asyncio.Event)
    """Underlying event waiters block on."""

    _listeners: list[Callable[[], None]] = field(default_factory=list)
    """Callbacks run synchronously on the firing."""

    fire_count: int = 0
    """Number of times the signal was delivered. Never exceeds one."""

    @property
    def fired(self) -> bool:
        return self._event.is_set()

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback run when the signal fires."""
        self._listeners.append(callback)

    def fire(self) -> bool:
        """
        Deliver the signal.

        Returns:
            True on the first call, False on every later call.
        """
        if self._event.is_set():
            return False

        self._event.set()
        self.fire_count += 1
        for callback in self._listeners:
            callback()
        return True

    async def wait(self) -> None:
        """Block until the signal has fired."""
        await self._event.wait()


@dataclass(slots=True)
class ReadinessProbe:
    """Polls a node's status endpoint until it reports healthy."""

    cli_addr: str
    """Control-plane address of the node (``host:port``)."""

    interval: float = PROBE_INTERVAL
    """Seconds between probes."""

    attempts: int = field(default=0, init=False)
    """Probes issued so far."""

    @property
    def url(self) -> str:
        return f"http://{self.cli_addr}{STATUS_PATH}"

    async def probe_once(self, client: httpx.AsyncClient) -> bool:
        """Issue one probe. Transport errors count as not ready."""
        self.attempts += 1
        metrics.readiness_polls.inc()
        try:
            response = await client.get(self.url)
        except httpx.HTTPError as exc:
            logger.debug("Probe %d of %s failed: %s", self.attempts, self.url, exc)
            return False
        return response.status_code == 200

    async def run(self, signal: OneShotSignal) -> None:
        """
        Poll until the node answers 200, then fire ``signal`` and stop.

        There is no deadline; cancel the task to abandon the probe.
        """
        async with httpx.AsyncClient(timeout=PROBE_REQUEST_TIMEOUT) as client:
            while True:
                await asyncio.sleep(self.interval)
                if await self.probe_once(client):
                    break

        logger.info("Node at %s ready after %d probes", self.cli_addr, self.attempts)
        metrics.nodes_ready.inc()
        signal.fire()
