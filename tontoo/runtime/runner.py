"""
Bundle execution lifecycle.

Decode the bundle, unpack it into a fresh temporary workspace, parse the
main file on an asyncio event loop, then either wait for a signal (while
a listener or schedule is active) or exit after a short grace delay.
Cleanup always runs and removes the workspace.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
import signal
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterator, Mapping, Optional

from tontoo.bundle import decode
from tontoo.config import Settings, get_settings, parse_manifest
from tontoo.errors import ConfigError, CorruptBundleError, DirectiveSyntaxError
from tontoo.runtime.context import RuntimeContext

if TYPE_CHECKING:  # pragma: no cover
    from tontoo.web.certs import CertificateGenerator

logger = logging.getLogger("tontoo.runtime")

WORKSPACE_PREFIX = "tontoo-run-"


def materialize(files: Mapping[str, str], workspace: Path) -> None:
    """Write every bundle entry below ``workspace``; entries escaping it are skipped."""
    root = Path(workspace).resolve()
    for relative, content in files.items():
        target = (root / relative).resolve()
        if root not in target.parents:
            logger.warning("Skipping bundle entry outside the workspace: %s", relative)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")


def select_main(files: Mapping[str, str], main_override: Optional[str], settings: Settings) -> str:
    """Pick the entry file: override, then the bundled manifest, then the default."""
    if main_override:
        return main_override
    manifest_text = files.get(settings.manifest_name)
    if manifest_text is None:
        logger.warning(
            "Warning: %s not found. Using %s as fallback.", settings.manifest_name, settings.default_main
        )
        return settings.default_main
    try:
        return parse_manifest(manifest_text, path=settings.manifest_name).main_file(settings)
    except ConfigError as exc:
        logger.error("Error: %s", exc.format())
        return settings.default_main


@contextlib.contextmanager
def _stop_on_signals(stop: asyncio.Event) -> Iterator[None]:
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError, ValueError):
            continue
        installed.append(sig)
    try:
        yield
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


async def run_files(
    files: Mapping[str, str],
    *,
    main_override: Optional[str] = None,
    settings: Optional[Settings] = None,
    cert_generator: Optional["CertificateGenerator"] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> int:
    """
    Run an already decoded file map and return the process exit code.

    ``stop_event`` replaces the signal wait, for embedding and tests.
    """
    settings = settings or get_settings()
    workspace = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX))
    sources: Dict[str, str] = {
        name: content for name, content in files.items() if name.endswith(settings.source_extension)
    }
    ctx = RuntimeContext(workspace, sources, settings=settings, cert_generator=cert_generator)
    try:
        materialize(files, workspace)
        main_file = select_main(files, main_override, settings)
        if main_file not in sources:
            logger.error("Error: Main file '%s' was not found in the archive.", main_file)
            return 1

        try:
            ctx.run_source(sources[main_file], main_file)
        except DirectiveSyntaxError as exc:
            logger.error("Error: %s", exc.format())
            return 1
        ctx.start_deferred()
        logger.info("All tasks scheduled. Waiting for completion...")

        if ctx.keeps_alive:
            logger.info(
                "The process is being kept alive as a web server or scheduler is running. "
                "Terminate with CTRL+C."
            )
            stop = stop_event or asyncio.Event()
            with _stop_on_signals(stop):
                await stop.wait()
        else:
            logger.info(
                "No long-running tasks found (e.g., web server). The process will terminate in %s second(s).",
                settings.idle_grace_seconds,
            )
            await asyncio.sleep(settings.idle_grace_seconds)
        return 0
    finally:
        await ctx.aclose()
        logger.info("Tontoo runtime ended. Cleaning up...")
        shutil.rmtree(workspace, ignore_errors=True)


def run_bundle(
    data: bytes,
    *,
    main_override: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> int:
    """Decode and run a bundle; a corrupt bundle exits 1 before anything runs."""
    settings = settings or get_settings()
    try:
        files = decode(data, secret=settings.secret_key)
    except CorruptBundleError as exc:
        logger.error("Error: %s", exc.format())
        return 1
    return asyncio.run(run_files(files, main_override=main_override, settings=settings))


def run_file(path: Path, *, settings: Optional[Settings] = None) -> int:
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        logger.error("Error: Could not read project file: %s", exc)
        return 1
    return run_bundle(data, settings=settings)


__all__ = ["materialize", "select_main", "run_files", "run_bundle", "run_file", "WORKSPACE_PREFIX"]
