"""
Exceptions raised by the harness.

Everything here is fatal to the running test. Transient conditions (a node
that is not ready yet, a rejected registration, a round that has not advanced)
are retried by the polling loops and never surface as exceptions.
"""

from __future__ import annotations


class HarnessError(Exception):
    """Base class for all harness failures."""


class ChainFixtureError(HarnessError):
    """
    The settlement-chain container could not be started or reached.

    Indicates a misconfigured environment (no Docker daemon, missing image).
    Never retried.
    """


class ProvisioningError(HarnessError):
    """
    Account creation, funding or round initialization failed.

    Raised when the fixture chain rejects a setup transaction.
    """


class ChainQueryError(HarnessError):
    """A chain accessor failed while a round barrier was waiting on it."""


class NodeExitedError(HarnessError):
    """
    The node's run loop ended before the node reported ready.

    Carries the exit status when the node ran as a subprocess.
    """

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class InvalidTransitionError(HarnessError):
    """A node lifecycle transition was attempted out of order."""
