"""Utilities shared by CLI entrypoints."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from sheet_finder.config import ConfigError, load_config
from sheet_finder.logging import LogDestination, configure_logging

_LOG_LEVEL_CHOICES = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
_LOG_FORMAT_CHOICES = ("text", "json")
_LOG_DESTINATION_CHOICES = ("auto", "stdout", "stderr")

EXIT_CONFIG_ERROR = 2

CliRunner = Callable[[argparse.Namespace], int]


def build_parser(
    *,
    prog: str,
    description: str,
    default_log_destination: LogDestination = "auto",
) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description=description,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="TOML file overriding defaults.")
    parser.add_argument("--env-file", type=Path, help=".env file holding GOOGLE_API_KEY.")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=_LOG_LEVEL_CHOICES,
        default="INFO",
        help="Logging verbosity (case-insensitive).",
    )
    parser.add_argument(
        "--log-format",
        type=str.lower,
        choices=_LOG_FORMAT_CHOICES,
        default="text",
        help="Structured JSON or human-readable text logs.",
    )
    parser.add_argument(
        "--log-destination",
        type=str.lower,
        choices=_LOG_DESTINATION_CHOICES,
        default=default_log_destination,
        help="stdout, stderr, or auto (warnings and above to stderr).",
    )
    return parser


def run_cli(
    parser: argparse.ArgumentParser,
    argv: Sequence[str] | None,
    *,
    cli_name: str,
    display_name: str,
    runner: CliRunner,
) -> int:
    """Load configuration, install logging, then hand off to `runner`.

    Configuration is read first so the API key is redacted from every log line.
    """

    args = parser.parse_args(argv)
    logger = logging.getLogger(f"sheet_finder.cli.{cli_name}")
    log_options = {
        "level": args.log_level,
        "fmt": args.log_format,
        "destination": args.log_destination,
    }
    try:
        config = load_config(env_file=args.env_file, config_file=args.config)
    except ConfigError as exc:
        configure_logging(**log_options)
        logger.error("Configuration invalid", extra={"cli": cli_name, "error": str(exc)})
        return EXIT_CONFIG_ERROR

    configure_logging(**log_options, secrets=(config.google.api_key,))
    args.app_config = config
    logger.info("%s CLI ready", display_name, extra={"cli": cli_name})
    return runner(args)


__all__ = ["EXIT_CONFIG_ERROR", "build_parser", "run_cli"]
