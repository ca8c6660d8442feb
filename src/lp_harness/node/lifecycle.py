"""Test lifecycle of a harness node."""

from __future__ import annotations

from enum import Enum

from lp_harness.errors import InvalidTransitionError


class NodeState(Enum):
    """
    Where a node is in its test lifecycle.

    States only move forward. ``STOPPED`` is reachable from anywhere and is final.
    """

    CREATED = "created"
    LAUNCHING = "launching"
    READY = "ready"
    REGISTERED = "registered"
    ACTIVE = "active"
    STOPPED = "stopped"


_FORWARD: dict[NodeState, NodeState] = {
    NodeState.CREATED: NodeState.LAUNCHING,
    NodeState.LAUNCHING: NodeState.READY,
    NodeState.READY: NodeState.REGISTERED,
    NodeState.REGISTERED: NodeState.ACTIVE,
}


def can_transition(current: NodeState, target: NodeState) -> bool:
    """Whether ``current -> target`` is a legal lifecycle move."""
    if current is NodeState.STOPPED:
        return False
    if target is NodeState.STOPPED:
        return True
    return _FORWARD.get(current) is target


def check_transition(current: NodeState, target: NodeState) -> NodeState:
    """
    Validate a lifecycle move.

    Returns:
        ``target``, for assignment.

    Raises:
        InvalidTransitionError: If the move is not allowed.
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(f"Cannot move node from {current.value} to {target.value}")
    return target
