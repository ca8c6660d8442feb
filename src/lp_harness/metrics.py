"""
Metric registry using prometheus_client.

Counts iterations of the harness polling loops. A stuck test shows up as one
counter climbing without the matching lifecycle counter ever moving.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, generate_latest

# Dedicated registry, kept apart from the default process collectors.
REGISTRY = CollectorRegistry()

readiness_polls = Counter(
    "lp_harness_readiness_polls_total",
    "Status probes issued against launched nodes",
    registry=REGISTRY,
)

nodes_ready = Counter(
    "lp_harness_nodes_ready_total",
    "Nodes that reported ready",
    registry=REGISTRY,
)

registration_attempts = Counter(
    "lp_harness_registration_attempts_total",
    "Orchestrator registration POSTs issued",
    registry=REGISTRY,
)

registrations_accepted = Counter(
    "lp_harness_registrations_accepted_total",
    "Orchestrator registrations accepted by the node",
    registry=REGISTRY,
)

round_polls = Counter(
    "lp_harness_round_polls_total",
    "Round accessor reads issued by round barriers",
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """Render every harness metric in Prometheus text format."""
    return generate_latest(REGISTRY)
