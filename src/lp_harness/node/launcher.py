"""
Node launcher and handles.

Each launched node gets two background tasks: its run loop and a readiness
probe. Launching never blocks; callers fan out as many nodes as they need and
then wait on each handle's one-shot ready signal independently.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Protocol

from lp_harness.chain.accounts import AccountProvisioner, DevAccount
from lp_harness.errors import NodeExitedError
from lp_harness.ports import PortAllocator

from .config import NodeConfig, default_node_config
from .lifecycle import NodeState, check_transition
from .readiness import PROBE_INTERVAL, OneShotSignal, ReadinessProbe

logger = logging.getLogger(__name__)

NODE_LOG_NAME = "node.log"
"""File inside the node datadir that captures the node's own output."""


class NodeRunner(Protocol):
    """
    Runs one node until it exits.

    Cancelling the awaiting task must shut the node down.
    """

    async def __call__(self, config: NodeConfig) -> int | None:
        """Run the node; return its exit status if it has one."""
        ...


@dataclass(slots=True)
class SubprocessNodeRunner:
    """Runs the node binary as a child process."""

    binary: str
    """Executable to launch."""

    extra_args: list[str] = field(default_factory=list)
    """Flags appended after the configuration's own."""

    stop_timeout: float = 5.0
    """Seconds to wait after SIGTERM before sending SIGKILL."""

    async def __call__(self, config: NodeConfig) -> int | None:
        args = [*config.to_args(), *self.extra_args]

        # Startup failures are only visible in the node's own output.
        log_file: IO[bytes] | None = None
        if config.datadir is not None:
            log_path = Path(config.datadir) / NODE_LOG_NAME
            log_path.parent.mkdir(parents=True, exist_ok=True)
            log_file = log_path.open("ab")

        try:
            try:
                process = await asyncio.create_subprocess_exec(
                    self.binary,
                    *args,
                    stdout=log_file,
                    stderr=asyncio.subprocess.STDOUT if log_file is not None else None,
                )
            except OSError as exc:
                raise NodeExitedError(f"Cannot launch {self.binary}: {exc}") from exc

            logger.info("Launched %s (pid %d) with %s", self.binary, process.pid, " ".join(args))

            try:
                returncode = await process.wait()
            except asyncio.CancelledError:
                await self._terminate(process)
                raise

            logger.warning("Node process %d exited with status %d", process.pid, returncode)
            return returncode
        finally:
            if log_file is not None:
                log_file.close()

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return

        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=self.stop_timeout)
        except ProcessLookupError:
            return
        except asyncio.TimeoutError:
            logger.warning("Node process %d ignored SIGTERM, killing", process.pid)
            process.kill()
            await process.wait()


@dataclass(slots=True)
class NodeHandle:
    """
    A launched node.

    The launcher owns the node's tasks until ``stop`` releases them.
    """

    config: NodeConfig
    """Configuration the node was launched with."""

    account: DevAccount | None
    """Account the node transacts with, if it is on-chain."""

    index: int
    """Launch order within the launcher (for logging)."""

    ready: OneShotSignal = field(default_factory=OneShotSignal)
    """Fires once, when the first status probe returns 200."""

    state: NodeState = NodeState.CREATED
    """Lifecycle state."""

    _task: asyncio.Task[int | None] | None = field(default=None, repr=False)
    """Background task running the node."""

    _probe_task: asyncio.Task[None] | None = field(default=None, repr=False)
    """Background task probing readiness."""

    @property
    def cli_addr(self) -> str:
        """Control-plane address."""
        assert self.config.cli_addr is not None, "Node launched without a CLI address"
        return self.config.cli_addr

    @property
    def running(self) -> bool:
        """Whether the node's run loop is still alive."""
        return self._task is not None and not self._task.done()

    def transition(self, target: NodeState) -> None:
        """Move to ``target``, enforcing forward-only lifecycle order."""
        previous = self.state
        self.state = check_transition(previous, target)
        logger.debug("Node %d: %s -> %s", self.index, previous.value, target.value)

    async def wait_ready(self, timeout: float | None = None) -> None:
        """
        Wait for the ready signal.

        Args:
            timeout: Maximum wait in seconds. None waits indefinitely.

        Raises:
            NodeExitedError: If the node's run loop ended before it became ready.
            TimeoutError: If ``timeout`` elapsed first.
        """
        if self.ready.fired:
            return

        assert self._task is not None, "Node not launched"
        waiter = asyncio.ensure_future(self.ready.wait())
        try:
            await asyncio.wait(
                {waiter, self._task}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if not waiter.done():
                waiter.cancel()

        if self.ready.fired:
            return

        if self._task.done():
            if self._task.cancelled():
                raise NodeExitedError(f"Node {self.index} was cancelled before becoming ready")
            exc = self._task.exception()
            if exc is not None:
                raise NodeExitedError(f"Node {self.index} failed before becoming ready") from exc
            returncode = self._task.result()
            raise NodeExitedError(
                f"Node {self.index} exited with status {returncode} before becoming ready",
                returncode=returncode,
            )

        raise TimeoutError(f"Node {self.index} not ready after {timeout}s")

    async def stop(self, timeout: float = 10.0) -> None:
        """Cancel the probe and the run loop, then mark the node stopped."""
        if self.state is NodeState.STOPPED:
            return

        for task in (self._probe_task, self._task):
            if task is None:
                continue
            if not task.done():
                task.cancel()
                try:
                    await asyncio.wait_for(task, timeout=timeout)
                except (asyncio.CancelledError, asyncio.TimeoutError):
                    pass
                except Exception as exc:
                    logger.warning(
                        "Node %d task %s failed during shutdown: %r",
                        self.index,
                        task.get_name(),
                        exc,
                    )
            elif not task.cancelled() and task.exception() is not None:
                logger.warning(
                    "Node %d task %s failed: %r", self.index, task.get_name(), task.exception()
                )

        self.transition(NodeState.STOPPED)
        logger.info("Stopped node %d", self.index)


@dataclass(slots=True)
class NodeLauncher:
    """
    Starts nodes and tracks them until teardown.

    Handles launch, readiness probing and orderly shutdown.
    """

    runner: NodeRunner
    """How node run loops are executed."""

    port_allocator: PortAllocator = field(default_factory=PortAllocator)
    """Source of bind addresses for ``start_orchestrator``."""

    probe_interval: float = PROBE_INTERVAL
    """Seconds between readiness probes."""

    handles: list[NodeHandle] = field(default_factory=list)
    """Every node launched and not yet stopped."""

    async def launch(self, config: NodeConfig, account: DevAccount | None = None) -> NodeHandle:
        """
        Start a node in the background.

        Returns immediately. Await ``handle.wait_ready()`` for readiness.

        Args:
            config: Node configuration. Must carry a CLI address.
            account: Account the configuration refers to.

        Returns:
            Handle to the launched node.
        """
        if config.cli_addr is None:
            raise ValueError("Node configuration has no CLI address to probe")

        handle = NodeHandle(config=config, account=account, index=len(self.handles))
        handle.ready.add_listener(lambda: handle.transition(NodeState.READY))
        handle.transition(NodeState.LAUNCHING)

        handle._task = asyncio.create_task(self.runner(config), name=f"node-{handle.index}")

        probe = ReadinessProbe(cli_addr=config.cli_addr, interval=self.probe_interval)
        handle._probe_task = asyncio.create_task(
            probe.run(handle.ready),
            name=f"probe-{handle.index}",
        )

        self.handles.append(handle)
        logger.info(
            "Launching node %d (cli=%s, http=%s, orchestrator=%s)",
            handle.index,
            config.cli_addr,
            config.http_addr,
            config.orchestrator,
        )
        return handle

    async def start_orchestrator(
        self,
        provisioner: AccountProvisioner,
        datadir: Path | None = None,
        *,
        eth_url: str,
        eth_controller: str,
        account: str | None = None,
        ready_timeout: float | None = None,
    ) -> NodeHandle:
        """
        Provision an account, launch an orchestrator+transcoder and wait for it.

        Args:
            provisioner: Creates or reuses the node's account.
            datadir: Node data directory. A fresh one is made for a new account when None.
            eth_url: Chain JSON-RPC URL for the node.
            eth_controller: Controller contract address.
            account: Existing account to reuse from ``datadir``. New if None.
            ready_timeout: Optional readiness deadline in seconds.

        Returns:
            A ready node handle.
        """
        dev_account = await asyncio.to_thread(provisioner.provision, datadir, account)

        config = default_node_config(
            self.port_allocator.allocate_addresses(),
            orchestrator=True,
            transcoder=True,
            eth_url=eth_url,
            eth_controller=eth_controller,
            eth_acct_addr=dev_account.address,
            eth_password=dev_account.password,
            datadir=str(dev_account.datadir),
        )

        handle = await self.launch(config, dev_account)
        await handle.wait_ready(ready_timeout)
        return handle

    async def stop_all(self) -> None:
        """Stop every launched node."""
        for handle in self.handles:
            await handle.stop()
        self.handles.clear()
        logger.info("All nodes stopped")
