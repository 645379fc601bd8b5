"""``orca`` command: load configuration and run the provider process.

Start-up order: configuration, logging, health server, reconciliation
from EC2 tags, then readiness. SIGINT and SIGTERM stop the process.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from dataclasses import replace
from pathlib import Path

from injector import Injector
from loguru import logger

from orca import __version__
from orca.config import DEFAULT_CONFIG_PATH, OrcaConfig, load_config
from orca.core.exceptions import ConfigurationError, OrcaError
from orca.module import OrcaModule
from orca.observability.logging import setup_logging, teardown_logging
from orca.provider import OrcaProvider
from orca.providers.aws import AWSModule
from orca.server import HealthServer

log = logger.bind(component="main")

EXIT_RUNTIME_ERROR = 1
EXIT_CONFIG_ERROR = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="orca", description="ORCA virtual node for AWS EC2")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to orca.toml")
    parser.add_argument("--node-name", type=str, default=None, help="Override node.name")
    parser.add_argument(
        "--log-level", type=str.upper, default=None,
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override logging.level",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    return parser.parse_args(argv)


def apply_overrides(config: OrcaConfig, args: argparse.Namespace) -> OrcaConfig:
    if args.node_name:
        config = replace(config, node=replace(config.node, name=args.node_name))
    if args.log_level:
        config = replace(config, logging=replace(config.logging, level=args.log_level))
    return config


async def run(config: OrcaConfig, injector: Injector | None = None) -> None:
    injector = injector or Injector([OrcaModule(config), AWSModule()])
    provider = injector.get(OrcaProvider)
    server = injector.get(HealthServer)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    log.info(
        "Starting ORCA {version} as node {node} in {region}",
        version=__version__,
        node=config.node.name,
        region=config.aws.region,
    )
    if config.aws.endpoint_url:
        log.warning("Using AWS endpoint override {url}", url=config.aws.endpoint_url)

    await server.start()
    try:
        await provider.reconcile()
        server.set_ready(True)
        log.info("ORCA is running")
        await stop.wait()
        log.info("Shutting down")
    finally:
        server.set_ready(False)
        await server.stop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.version:
        print(f"ORCA version {__version__}")
        return 0

    try:
        config = apply_overrides(load_config(args.config), args)
    except ConfigurationError as e:
        print(f"Failed to load config: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    handler_ids = setup_logging(config.logging)
    try:
        asyncio.run(run(config))
    except OrcaError as e:
        log.error("ORCA stopped: {error}", error=e)
        return EXIT_RUNTIME_ERROR
    finally:
        teardown_logging(handler_ids)
    return 0
