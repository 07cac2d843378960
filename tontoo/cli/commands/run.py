"""Run command: execute a built ``.tontoo`` bundle."""

import argparse
import sys
from pathlib import Path

from tontoo.runtime.runner import run_file

from ..errors import CLIFileNotFoundError, handle_cli_exception


def cmd_run(args: argparse.Namespace) -> None:
    """
    Handle ``tontoo run FILE`` and the bare ``tontoo FILE`` form.

    The exit code is the runner's: 0 after a clean shutdown, 1 when the
    bundle is corrupt or its main file is missing.
    """
    try:
        bundle = Path(args.file)
        if not bundle.is_file():
            raise CLIFileNotFoundError(
                f"Bundle not found: {bundle}",
                hint="Build one with 'tontoo build' first",
            )
        exit_code = run_file(bundle)
    except Exception as exc:
        handle_cli_exception(exc, verbose=getattr(args, "verbose", False))
        return
    if exit_code:
        sys.exit(exit_code)
