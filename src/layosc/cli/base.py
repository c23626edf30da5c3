import asyncio
from typing import Optional

import click

from layosc.server.bg_killer import kill_layosc_servers, list_running_servers
from layosc.server.server import start_server
from layosc.system import BridgeConfig, list_bridge_configs, load_bridge_config
from layosc.types import BridgeError
from layosc.util import DEFAULT_LOGLEVEL, format_error_response


def print_tree(cmd, prefix="", parent_ctx=None):
    """Print command tree starting from given command."""
    ctx = click.Context(cmd, info_name=cmd.name, parent=parent_ctx)

    # Only print root name if no parent
    if not parent_ctx:
        click.echo(cmd.name)

    for sub in sorted(cmd.list_commands(ctx)):
        sub_cmd = cmd.get_command(ctx, sub)
        click.echo(f"{prefix}└── {sub}")
        if isinstance(sub_cmd, click.Group):
            print_tree(sub_cmd, prefix + "    ", ctx)


def tree_option(f):
    """Add --tree option to command."""

    def callback(ctx, param, value):
        if not value or ctx.resilient_parsing:
            return
        print_tree(ctx.command)
        ctx.exit()

    return click.option(
        "--tree",
        is_flag=True,
        help="Show command tree from this point",
        expose_value=False,
        is_eager=True,
        callback=callback,
    )(f)


@click.group()
@tree_option
def cli():
    """layosc - OSC/UDP bridge for quantum gate operations.

    Translates OSC gate requests (/X, /H, /CX, /Mz, ...) into operations on a
    quantum execution backend and sends measurement results back:

    - Standalone bridge server with a state-vector backend

    - Registry of running bridge servers

    - Named bridge configurations
    """
    pass


def _build_config(
    tx: str,
    rx: str,
    config_name: Optional[str],
    overrides: dict,
) -> BridgeConfig:
    base = load_bridge_config(config_name) if config_name else BridgeConfig()
    values = base.to_dict()
    values.update(tx_addr=tx, rx_addr=rx)
    values.update({k: v for k, v in overrides.items() if v is not None})
    return BridgeConfig.from_dict(values)


@cli.command()
@click.argument("tx")
@click.argument("rx")
@click.option(
    "--config",
    "-n",
    "config_name",
    help='Named bridge configuration to start from (e.g. "default")',
)
@click.option("--n-qubits", "-q", type=int, help="Backend register size")
@click.option("--seed", "-s", type=int, help="Backend measurement seed")
@click.option(
    "--send-bind",
    "-b",
    "send_bind_addr",
    help="host:port the outbound socket binds to (default: 0.0.0.0:9999)",
)
@click.option("--queue-len", type=int, help="Capacity of each pipeline channel")
@click.option(
    "--qubit-map",
    "-m",
    help='Coordinate -> qubit mapping: "y", "x" or "row_major:<width>"',
)
@click.option(
    "--log-to-file/--no-log-to-file",
    "-ltf/",
    default=True,
    help="Enable/disable logging to file (default: enabled)",
)
@click.option(
    "--log-to-stdout/--no-log-to-stdout",
    "-lts/",
    default=True,
    help="Enable/disable console logging (default: enabled)",
)
@click.option(
    "--log-path",
    "-lp",
    default="",
    help="Custom path for log file (default: auto-generated)",
)
@click.option(
    "--clear-prev-log/--no-clear-prev-log",
    "-c/",
    default=True,
    help="Clear previous log file on startup (default: enabled)",
)
@click.option(
    "--log-level",
    "-ll",
    default=DEFAULT_LOGLEVEL,
    help="Logging level (TRACE, DEBUG, INFO, WARNING, ERROR) (default: INFO)",
)
def server(tx, rx, config_name, **kwargs):
    """Start a bridge server.

    Requests are received on RX and measurement results are sent to TX, both
    given as host:port. Runs until Ctrl-C:

    - Requests are applied to a seeded state-vector simulator

    - Each /Mz flushes pending gates and replies with /Mz 0 <bit>
    """
    overrides = {
        key: kwargs.pop(key)
        for key in ("n_qubits", "seed", "send_bind_addr", "queue_len", "qubit_map")
    }
    try:
        config = _build_config(tx, rx, config_name, overrides)
    except (FileNotFoundError, ValueError) as e:
        raise click.BadParameter(str(e)) from e

    try:
        asyncio.run(start_server(config, **kwargs))
    except BridgeError:
        click.echo(f"Error: {format_error_response()}", err=True)
        raise SystemExit(1)


@cli.command()
def list():
    """List all running bridge servers.

    Displays information about each registered server instance:

    - Process ID (PID)

    - Running status

    - Start time

    - Network configuration (tx and rx addresses)
    """
    servers = list_running_servers()

    click.echo("\nRunning layosc servers:")
    click.echo("-----------------------")

    if not servers:
        click.echo("No servers found")
        click.echo("")
        return

    for server in servers:
        status = "(RUNNING)" if server.get("running", False) else "(NOT RUNNING)"
        click.echo(f"\nPID: {server['pid']} {status}")
        click.echo(f"Started: {server['timestamp']}")
        click.echo(f"rx: {server['rx']} -> tx: {server['tx']}")
    click.echo("")


@cli.command()
def kill():
    """Kill all running bridge servers.

    Forcefully terminates all registered bridge server processes.
    Useful for cleaning up orphaned processes or freeing UDP ports.
    """
    killed = kill_layosc_servers()
    if killed:
        click.echo(f"Killed {killed} layosc server(s)")
    else:
        click.echo("No running layosc servers found")
    click.echo("")


@cli.command()
@click.option(
    "--path", "-p", default=None, help="Additional INI file to read configs from"
)
def configs(path: Optional[str]):
    """List available named bridge configurations."""
    try:
        names = list_bridge_configs(path)
    except FileNotFoundError:
        click.echo(f"Error: {format_error_response()}", err=True)
        raise SystemExit(1)

    click.echo("\nAvailable bridge configurations:")
    click.echo("--------------------------------")

    if not names:
        click.echo("No bridge configurations found")
        click.echo("")
        return

    for name in sorted(names):
        config = load_bridge_config(name, path)
        click.echo(
            f"  - {name}: rx {config.rx_addr} -> tx {config.tx_addr}, "
            f"{config.backend}({config.n_qubits} qubits, seed={config.seed})"
        )
    click.echo("")
