"""`sheet-server` CLI entrypoint."""

from __future__ import annotations

import argparse
from collections.abc import Sequence

import uvicorn

from sheet_finder.cli import _common
from sheet_finder.web import create_app

PROG_NAME = "sheet-server"
DESCRIPTION = "Serve the sheet-music search API over HTTP."


def build_parser() -> argparse.ArgumentParser:
    parser = _common.build_parser(prog=PROG_NAME, description=DESCRIPTION)
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")
    return parser


def run(args: argparse.Namespace) -> int:
    # log_config=None keeps the handlers installed by configure_logging.
    uvicorn.run(create_app(args.app_config), host=args.host, port=args.port, log_config=None)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    return _common.run_cli(parser, argv, cli_name="server", display_name="Server", runner=run)


if __name__ == "__main__":  # pragma: no cover - manual execution guard
    raise SystemExit(main())


__all__ = ["build_parser", "main", "run"]
