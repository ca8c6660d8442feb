"""
Harness entry point.

Usage::

    python -m lp_harness
    python -m lp_harness --node-binary ./livepeer -k test_orchestrator_registration
"""

from lp_harness.cli import e2e

if __name__ == "__main__":
    e2e()
