"""Command line: run the tasks of a YAML configuration file."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from .dag import Dag
from .errors import DagError

VERSION = "0.2.0"

_LEVELS = {
    "off": logging.CRITICAL + 10,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": 5,
}

_FORMAT = "[%(asctime)s %(levelname)s %(name)s] %(message)s"


def _log_level(text: str) -> int:
    level = _LEVELS.get(text.lower())
    if level is None:
        raise argparse.ArgumentTypeError(
            f"invalid log level {text!r}; choose from {', '.join(_LEVELS)}"
        )
    return level


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dagrun", description="Run the tasks of a YAML file.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument(
        "--log-path",
        help="Log output file, the default is to print to the terminal.",
    )
    parser.add_argument("--yaml", required=True, help="yaml configuration file path.")
    parser.add_argument(
        "--log-level",
        type=_log_level,
        default=logging.INFO,
        help="Log level, the default is 'info'.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the configuration given on the command line; return the exit status."""
    args = _build_parser().parse_args(argv)

    if args.log_path:
        handler: logging.Handler = logging.FileHandler(args.log_path, mode="w", encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))

    package_logger = logging.getLogger(__package__ or "dagrun")
    previous_level = package_logger.level
    package_logger.setLevel(args.log_level)
    package_logger.addHandler(handler)
    try:
        Dag.with_yaml(args.yaml).start()
    except DagError as exc:
        print(f"dagrun: {exc}", file=sys.stderr)
        return 1
    finally:
        package_logger.removeHandler(handler)
        package_logger.setLevel(previous_level)
        handler.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())