from __future__ import annotations

import argparse
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from docledger.cli.commands import recent_cmd, register_cmd, verify_cmd
from docledger.cli.context import CLIContext
from docledger.core.errors import DocLedgerError
from docledger.main import load_config, validate_config
from docledger.models.config import AppConfig
from docledger.utils.constants import APP_NAME, APP_VERSION
from docledger.utils.logger import get_logger, setup_logger

logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docledger",
        description=f"{APP_NAME} -- register and verify document fingerprints",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config file (default: config/config.yaml when present)",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0)
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")

    subparsers = parser.add_subparsers(dest="command", required=True)
    register_cmd.register(subparsers)
    verify_cmd.register(subparsers)
    recent_cmd.register(subparsers)

    return parser


def main(argv: list[str] | None = None, ctx: CLIContext | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    console = ctx.console if ctx is not None else Console()
    try:
        raw_config = load_config(args.config)
    except DocLedgerError as exc:
        console.print(f"[red]{escape(exc.message)}[/red]")
        return 1

    warnings = validate_config(raw_config)
    config = AppConfig.from_dict(raw_config)
    if args.verbose:
        config.log_level = "DEBUG"
    setup_logger(config.log_level, config.log_file)
    for warning in warnings:
        logger.warning("Config: %s", warning)

    if ctx is None:
        ctx = CLIContext(config=config, console=console)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 2

    try:
        return handler(args, ctx)
    except DocLedgerError as exc:
        logger.error(str(exc))
        console.print(f"[red]{escape(exc.status_message)}:[/red] {escape(exc.message)}")
        return 1
    finally:
        ctx.close()
