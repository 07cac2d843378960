"""
Build and dev commands.

``build`` writes the bundle artefacts for a project directory; ``dev``
builds the same bundle in memory and runs it straight away.
"""

import argparse
import sys
from pathlib import Path

from tontoo.builder import build_in_memory, build_project
from tontoo.config import get_settings
from tontoo.errors import BuildSyntaxError, TontooError
from tontoo.runtime.runner import run_bundle

from ..errors import CLIBuildError, CLIFileNotFoundError, handle_cli_exception
from ..output import print_info, print_success


def _project_root(args: argparse.Namespace) -> Path:
    root = Path(getattr(args, "root", None) or ".").resolve()
    if not root.is_dir():
        raise CLIFileNotFoundError(
            f"Project directory not found: {root}",
            hint="Pass --root with the directory that holds tontoo.json",
        )
    return root


def _build_error(exc: TontooError) -> CLIBuildError:
    hint = "Check the braces and keywords on the reported line" if isinstance(exc, BuildSyntaxError) else None
    return CLIBuildError(exc.format(), hint=hint, context={"code": exc.code})


def cmd_build(args: argparse.Namespace) -> None:
    """
    Handle ``tontoo build``.

    Collects the project, checks every source file and writes
    ``<name>.tontoo``, ``<name>_no_comments.tontoo`` and
    ``<name>_source.zip`` into the output directory.
    """
    try:
        root = _project_root(args)
        print_info("Starting Default-Build-process...")
        try:
            result = build_project(root, getattr(args, "out", None), get_settings())
        except TontooError as exc:
            raise _build_error(exc) from exc
        print_success(f"Build successful: {result.bundle}")
        print_success(f"Distributable build: {result.distributable}")
        print_success(f"Source archive: {result.source_archive}")
    except Exception as exc:
        handle_cli_exception(exc, verbose=getattr(args, "verbose", False))


def cmd_dev(args: argparse.Namespace) -> None:
    """Handle ``tontoo dev``: build in memory and run with the project's main file."""
    try:
        root = _project_root(args)
        print_info("Starting Development-Build-process...")
        try:
            data, manifest = build_in_memory(root, get_settings())
        except TontooError as exc:
            raise _build_error(exc) from exc
        print_success("Build successfully started in Dev Mode...")
        exit_code = run_bundle(data, main_override=manifest.main)
    except Exception as exc:
        handle_cli_exception(exc, verbose=getattr(args, "verbose", False))
        return
    if exit_code:
        sys.exit(exit_code)
