"""Pytest configuration and shared fixtures."""

import logging
import os

from hypothesis import settings

if "LP_HARNESS_NETWORK" not in os.environ:
    os.environ["LP_HARNESS_NETWORK"] = "devnet"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

# Create a profile named "no_deadline" with deadline disabled.
settings.register_profile("no_deadline", deadline=None)
settings.load_profile("no_deadline")
