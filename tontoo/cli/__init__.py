"""
Tontoo CLI entry point.

Dispatches ``build``, ``dev``, ``run`` and ``info`` to the command
modules. A bare bundle path (``tontoo app.tontoo``) is treated as
``tontoo run app.tontoo``.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from tontoo import __version__
from tontoo.config import get_settings
from tontoo.observability.logging import configure_logging

from .commands import cmd_build, cmd_dev, cmd_info, cmd_run

VALID_COMMANDS = {"build", "dev", "run", "info", "help"}


def _is_legacy_invocation(argv: List[str]) -> bool:
    if not argv or argv[0].startswith("-") or argv[0] in VALID_COMMANDS:
        return False
    return argv[0].endswith(get_settings().bundle_extension) or Path(argv[0]).is_file()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Tontoo – build and run declarative service bundles",
        prog="tontoo",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print full tracebacks and detailed CLI errors (or set TONTOO_VERBOSE=1)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warn", "error"],
        default=None,
        help="Set logging level for runtime output (or set TONTOO_LOG_LEVEL)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    build_parser_ = subparsers.add_parser("build", help="Build the project into a .tontoo bundle")
    build_parser_.add_argument("--root", default=".", help="Project directory (default: current directory)")
    build_parser_.add_argument("--out", "-o", default=None, help="Output directory (default: <root>/build)")
    build_parser_.set_defaults(func=cmd_build)

    dev_parser = subparsers.add_parser("dev", help="Build in memory and run immediately")
    dev_parser.add_argument("--root", default=".", help="Project directory (default: current directory)")
    dev_parser.set_defaults(func=cmd_dev)

    run_parser = subparsers.add_parser("run", help="Run a .tontoo bundle")
    run_parser.add_argument("file", help="Path to the .tontoo bundle")
    run_parser.set_defaults(func=cmd_run)

    info_parser = subparsers.add_parser("info", help="Show version and settings")
    info_parser.set_defaults(func=cmd_info)
    return parser


def main(argv: Optional[list] = None) -> None:
    """
    Main CLI entrypoint.

    Args:
        argv: Command-line arguments (None uses sys.argv[1:])

    Examples:
        >>> main(['build', '--root', 'my-project'])  # doctest: +SKIP
        >>> main(['my-project.tontoo'])  # doctest: +SKIP
    """
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)

    if _is_legacy_invocation(argv):
        argv = ["run"] + argv

    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.verbose = getattr(args, "verbose", False)
    configure_logging(args.log_level)
    args.func(args)


if __name__ == "__main__":  # pragma: no cover
    main()
