"""`sheet-search` CLI entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence

from sheet_finder.cli import _common
from sheet_finder.config import MissingCredentialError
from sheet_finder.drive import DriveError
from sheet_finder.gdrive_search import SearchBackendError, SearchCriteria, SheetMusicSearcher

PROG_NAME = "sheet-search"
DESCRIPTION = "Search the Drive sheet-music library and print matching files as JSON."

EXIT_BACKEND_ERROR = 3
EXIT_DRIVE_ERROR = 4

logger = logging.getLogger("sheet_finder.cli.search")


def build_parser() -> argparse.ArgumentParser:
    parser = _common.build_parser(
        prog=PROG_NAME,
        description=DESCRIPTION,
        default_log_destination="stderr",
    )
    parser.add_argument("--title", default="", help="Substring of the song title.")
    parser.add_argument("--key", default="", help="Musical key appearing in the file name.")
    parser.add_argument("--lyrics", default="", help="Lyric snippet to match in the file text.")
    return parser


def run(args: argparse.Namespace) -> int:
    criteria = SearchCriteria(song_title=args.title, key=args.key, lyrics=args.lyrics)
    searcher = SheetMusicSearcher(args.app_config)
    try:
        files = asyncio.run(searcher.search(criteria))
    except MissingCredentialError as exc:
        logger.error("Configuration invalid", extra={"cli": "search", "error": str(exc)})
        return _common.EXIT_CONFIG_ERROR
    except SearchBackendError as exc:
        logger.error(
            "Drive search failed",
            extra={"status": exc.status_code, "upstream_message": exc.upstream_message},
        )
        return EXIT_BACKEND_ERROR
    except DriveError as exc:
        logger.error("Drive request failed", extra={"error": str(exc)})
        return EXIT_DRIVE_ERROR

    json.dump(files, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    return _common.run_cli(parser, argv, cli_name="search", display_name="Search", runner=run)


if __name__ == "__main__":  # pragma: no cover - manual execution guard
    raise SystemExit(main())


__all__ = ["build_parser", "main", "run"]
