"""
In-process node stubs.

``NodeStub`` serves the two control-plane endpoints the harness talks to,
with scriptable failures. The runners below plug it (or a crash) into
``NodeLauncher`` in place of a real node process.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from aiohttp import web

from lp_harness.node import NodeConfig

logger = logging.getLogger(__name__)

FAST_PROBE_INTERVAL = 0.02
"""Probe interval used by in-process launches."""


@dataclass(slots=True)
class NodeStub:
    """Fake node control plane."""

    host: str
    port: int

    status_failures: int = 0
    """Number of initial status requests answered with 503."""

    registration_failures: int = 0
    """Number of initial registration requests answered with 500."""

    on_registration: Callable[[], None] | None = None
    """Called after a registration is accepted."""

    status_requests: int = 0
    registrations: list[dict[str, str]] = field(default_factory=list)
    accepted: asyncio.Event = field(default_factory=asyncio.Event)

    _runner: web.AppRunner | None = field(default=None, repr=False)

    @classmethod
    def for_addr(cls, addr: str, **kwargs: object) -> NodeStub:
        host, port = addr.rsplit(":", 1)
        return cls(host=host, port=int(port), **kwargs)  # type: ignore[arg-type]

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    async def _handle_status(self, _request: web.Request) -> web.Response:
        self.status_requests += 1
        if self.status_requests <= self.status_failures:
            return web.Response(status=503, text="starting")
        return web.json_response({"status": "ok"})

    async def _handle_activate(self, request: web.Request) -> web.Response:
        form = await request.post()
        self.registrations.append({key: str(value) for key, value in form.items()})
        if len(self.registrations) <= self.registration_failures:
            return web.Response(status=500, text="not yet")

        if self.on_registration is not None:
            self.on_registration()
        self.accepted.set()
        return web.Response(status=200, text="ok")

    async def start(self) -> None:
        app = web.Application()
        app.add_routes(
            [
                web.get("/status", self._handle_status),
                web.post("/activateOrchestrator", self._handle_activate),
            ]
        )
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        await web.TCPSite(self._runner, self.host, self.port).start()
        logger.debug("Node stub listening on %s", self.url)

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None


@dataclass(slots=True)
class StubNodeRunner:
    """
    Runs a ``NodeStub`` on the configuration's CLI address until cancelled.

    Stubs are kept by CLI address so tests can inspect them.
    """

    startup_delay: float = 0.0
    """Seconds before the stub starts listening."""

    status_failures: int = 0
    registration_failures: int = 0
    on_registration: Callable[[], None] | None = None

    stubs: dict[str, NodeStub] = field(default_factory=dict)

    async def __call__(self, config: NodeConfig) -> int | None:
        assert config.cli_addr is not None
        stub = NodeStub.for_addr(
            config.cli_addr,
            status_failures=self.status_failures,
            registration_failures=self.registration_failures,
            on_registration=self.on_registration,
        )
        self.stubs[config.cli_addr] = stub

        await asyncio.sleep(self.startup_delay)
        await stub.start()
        try:
            await asyncio.Event().wait()
        finally:
            await stub.stop()
        return None


@dataclass(slots=True)
class CrashingNodeRunner:
    """A node that exits before it ever listens."""

    returncode: int = 1
    delay: float = 0.05

    async def __call__(self, config: NodeConfig) -> int | None:
        await asyncio.sleep(self.delay)
        return self.returncode
