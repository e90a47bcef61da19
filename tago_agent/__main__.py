"""Command line entry point for the TAGO.io telemetry agent."""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from contextlib import suppress
from typing import Optional

import click

from . import __version__, async_run_agent
from .config import load_config
from .core.exceptions import AssociationTimeout, ConfigException
from .diagnostics import get_config_diagnostics

_LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


async def _async_main(config_path: str, restart_limit: Optional[int]) -> int:
    config = load_config(config_path)
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)
    return await async_run_agent(config, stop_event, restart_limit=restart_limit)


@click.group()
@click.version_option(version=__version__, prog_name="tago-agent")
def cli() -> None:
    """TAGO.io MQTT telemetry agent."""
    pass


@cli.command()
@click.option("--config", "config_path", required=True, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--log-level",
    default="INFO",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
)
@click.option(
    "--restart-limit",
    type=click.IntRange(min=0),
    default=None,
    help="In-process rebuilds after fatal link loss before exiting (default: unlimited)",
)
def run(config_path: str, log_level: str, restart_limit: Optional[int]) -> None:
    """Run the telemetry loop."""
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)
    try:
        restarts = asyncio.run(_async_main(config_path, restart_limit))
    except ConfigException as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(2)
    except AssociationTimeout as exc:
        _LOGGER.critical(f"Giving up after fatal link failure: {exc}")
        sys.exit(3)
    _LOGGER.info(f"Agent stopped after {restarts} restart(s)")


@cli.command("check-config")
@click.option("--config", "config_path", required=True, type=click.Path(exists=True, dir_okay=False))
def check_config(config_path: str) -> None:
    """Validate a configuration file and print it with secrets redacted."""
    try:
        config = load_config(config_path)
    except ConfigException as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(2)
    click.echo(json.dumps(get_config_diagnostics(config), indent=2))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
