"""imapstats — entry point for the command-line application."""
from __future__ import annotations

import logging
import sys

from imapstats import config
from imapstats.cli import build_parser, run


def _setup_logging(verbose: bool = False) -> None:
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    handlers: list[logging.Handler] = [console]
    try:
        config.ensure_dirs()
        handlers.append(logging.FileHandler(config.LOG_PATH, encoding="utf-8"))
    except OSError as exc:
        print(f"warning: cannot write log file {config.LOG_PATH}: {exc}", file=sys.stderr)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=fmt,
        handlers=handlers,
    )


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
