"""CLI command for running the end-to-end suite against a real chain and node binary."""

import os
import sys
from pathlib import Path
from typing import Sequence

import click
import pytest

from lp_harness.config import DEFAULT_CONTROLLER_ADDRESS, DEFAULT_GETH_IMAGE, DEFAULT_NODE_BINARY

PROJECT_NAME = "lp-harness"


def find_project_root(start: Path) -> Path:
    """Walk up from ``start`` to the directory holding this project's pyproject.toml."""
    root = start
    while root != root.parent:
        pyproject = root / "pyproject.toml"
        if pyproject.exists() and f'name = "{PROJECT_NAME}"' in pyproject.read_text():
            return root
        root = root.parent
    raise click.ClickException(f"No {PROJECT_NAME} pyproject.toml above {start}")


@click.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_extra_args": True,
    }
)
@click.option("--geth-image", default=DEFAULT_GETH_IMAGE, show_default=True)
@click.option("--node-binary", default=DEFAULT_NODE_BINARY, show_default=True)
@click.option("--controller", default=DEFAULT_CONTROLLER_ADDRESS, show_default=True)
@click.option("--network", default="devnet", show_default=True)
@click.argument("pytest_args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def e2e(
    ctx: click.Context,
    geth_image: str,
    node_binary: str,
    controller: str,
    network: str,
    pytest_args: Sequence[str],
) -> None:
    """
    Run the end-to-end suite: real chain container, real node processes.

    Requires a Docker daemon and the node binary on PATH (or --node-binary).

    Examples:
        # Run everything
        lp-harness

        # Use a locally built node
        lp-harness --node-binary ./livepeer -v

        # Run one scenario
        lp-harness -k test_orchestrator_registration
    """
    os.environ["LP_HARNESS_GETH_IMAGE"] = geth_image
    os.environ["LP_HARNESS_NODE_BINARY"] = node_binary
    os.environ["LP_HARNESS_CONTROLLER"] = controller
    os.environ["LP_HARNESS_NETWORK"] = network

    project_root = find_project_root(Path.cwd())

    args = [
        f"--rootdir={project_root}",
        "-m",
        "e2e",
        str(project_root / "tests" / "e2e"),
    ]
    args.extend(pytest_args)
    args.extend(ctx.args)

    exit_code = pytest.main(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    e2e()
