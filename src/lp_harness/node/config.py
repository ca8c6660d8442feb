"""
Node configuration handed to the launcher.

The harness does not interpret most of these settings; it only fills in the
addresses, roles and chain wiring a test needs and renders the result as the
node's command-line flags.
"""

from __future__ import annotations

from pydantic import Field

from lp_harness.config import network_from_env
from lp_harness.models import StrictBaseModel
from lp_harness.ports import NodeAddresses


class NodeConfig(StrictBaseModel):
    """
    Immutable node configuration.

    Field aliases match the node's flag names. ``None`` means "leave the node's
    default in place" and the flag is not emitted at all.
    """

    network: str = Field(default_factory=network_from_env)
    """Network to connect to."""

    http_addr: str | None = None
    """Address to bind for HTTP commands."""

    service_addr: str | None = None
    """Service address advertised on chain by an orchestrator."""

    cli_addr: str | None = None
    """Address to bind for CLI commands (status, registration)."""

    rtmp_addr: str | None = None
    """Address to bind for RTMP ingest."""

    orchestrator: bool = False
    """Run as an orchestrator."""

    transcoder: bool = False
    """Run as a transcoder."""

    broadcaster: bool = False
    """Run as a broadcaster."""

    eth_url: str | None = None
    """Chain JSON-RPC URL."""

    eth_controller: str | None = None
    """Protocol Controller contract address."""

    eth_acct_addr: str | None = None
    """Account the node transacts with."""

    eth_password: str | None = None
    """Keystore passphrase for ``eth_acct_addr``."""

    datadir: str | None = Field(default=None, alias="dataDir")
    """Directory the node stores data (and its keystore) in."""

    block_polling_interval: int | None = None
    """Seconds between chain polls inside the node."""

    price_per_unit: int | None = None
    """Orchestrator price per ``pixels_per_unit`` pixels, in wei."""

    pixels_per_unit: int | None = None
    """Pixels per pricing unit."""

    initialize_round: bool | None = None
    """Let the node initialize new rounds automatically."""

    def to_args(self) -> list[str]:
        """
        Render the configuration as command-line flags.

        Returns:
            Flags in ``-name=value`` form, in field order.
        """
        args: list[str] = []
        for name, value in self.model_dump(by_alias=True, exclude_none=True).items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            args.append(f"-{name}={value}")
        return args


def default_node_config(addresses: NodeAddresses, **overrides: object) -> NodeConfig:
    """
    Build the baseline configuration every harness node starts from.

    The service interface doubles as the advertised service address. Nodes
    poll the chain every second and initialize rounds on their own.

    Args:
        addresses: Freshly allocated bind addresses.
        **overrides: Field values replacing the defaults.

    Returns:
        A validated configuration.
    """
    values: dict[str, object] = {
        "http_addr": addresses.http_addr,
        "service_addr": addresses.http_addr,
        "cli_addr": addresses.cli_addr,
        "rtmp_addr": addresses.rtmp_addr,
        "eth_password": "",
        "block_polling_interval": 1,
        "price_per_unit": 1,
        "initialize_round": True,
    }
    values.update(overrides)
    return NodeConfig.model_validate(values)
