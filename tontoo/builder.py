"""
Project build step.

Collects a project tree into a file map, syntax-checks every source file
and writes the bundle artefacts. Nothing is written when the check fails.
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

from tontoo.bundle import encode, encode_distributable
from tontoo.config import ProjectManifest, Settings, get_settings, load_manifest
from tontoo.errors import BuildError
from tontoo.lang.syntax import check_syntax

logger = logging.getLogger("tontoo.builder")

_SKIPPED_NAMES = {".git", "node_modules", "__pycache__"}


@dataclass
class BuildResult:
    name: str
    bundle: Path
    distributable: Path
    source_archive: Path
    file_count: int


def _walk(base: Path, skip_top: Tuple[str, ...] = ()) -> Iterator[Path]:
    for path in sorted(base.rglob("*")):
        relative = path.relative_to(base)
        if relative.parts and relative.parts[0] in skip_top:
            continue
        if _SKIPPED_NAMES.intersection(relative.parts):
            continue
        if path.is_file():
            yield path


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def collect_project_files(root: Path, settings: Optional[Settings] = None) -> Dict[str, str]:
    """
    Read every project file under ``root`` into a relative-path map.

    The build output directory and the packages directory are skipped in
    the first pass; installed packages are appended afterwards under their
    ``tont-packets/`` prefix.

    Raises:
        BuildError: if nothing was collected.
    """
    settings = settings or get_settings()
    root = Path(root)
    files: Dict[str, str] = {}
    for path in _walk(root, skip_top=(settings.build_dir, settings.packages_dir)):
        files[path.relative_to(root).as_posix()] = _read(path)

    packages = root / settings.packages_dir
    if packages.is_dir():
        logger.info("Adding installed packages...")
        for path in _walk(packages):
            files[f"{settings.packages_dir}/{path.relative_to(packages).as_posix()}"] = _read(path)

    if not files:
        raise BuildError("No data found to build", path=str(root))
    return files


def check_project(files: Dict[str, str], settings: Optional[Settings] = None) -> None:
    """Run the syntax check on every source entry; raises ``BuildSyntaxError``."""
    settings = settings or get_settings()
    logger.info("Checking syntax...")
    for name, content in files.items():
        if name.endswith(settings.source_extension):
            check_syntax(content, name)
    logger.info("Syntax check successful.")


def project_manifest(root: Path, settings: Optional[Settings] = None) -> ProjectManifest:
    settings = settings or get_settings()
    manifest = load_manifest(root, settings)
    if manifest is None:
        logger.warning("%s not found in %s; using defaults", settings.manifest_name, root)
        return ProjectManifest()
    return manifest


def build_in_memory(root: Path, settings: Optional[Settings] = None) -> Tuple[bytes, ProjectManifest]:
    """Collect, check and encode a project without writing anything."""
    settings = settings or get_settings()
    manifest = project_manifest(root, settings)
    files = collect_project_files(root, settings)
    check_project(files, settings)
    return encode(files, secret=settings.secret_key), manifest


def build_project(
    root: Path,
    out_dir: Optional[Path] = None,
    settings: Optional[Settings] = None,
) -> BuildResult:
    """
    Build ``root`` into ``<name>.tontoo``, ``<name>_no_comments.tontoo`` and
    ``<name>_source.zip``.

    Args:
        root: Project directory
        out_dir: Output directory, defaults to ``<root>/build``
        settings: Settings override

    Returns:
        Paths of the written artefacts

    Raises:
        BuildError: if the project is empty or fails the syntax check
    """
    settings = settings or get_settings()
    root = Path(root)
    manifest = project_manifest(root, settings)
    name = manifest.name or root.resolve().name
    files = collect_project_files(root, settings)
    check_project(files, settings)

    out_dir = Path(out_dir) if out_dir else root / settings.build_dir
    out_dir.mkdir(parents=True, exist_ok=True)

    logger.info("Creating default %s data...", settings.bundle_extension)
    bundle = out_dir / f"{name}{settings.bundle_extension}"
    bundle.write_bytes(encode(files, secret=settings.secret_key))

    distributable = out_dir / f"{name}_no_comments{settings.bundle_extension}"
    distributable.write_bytes(
        encode_distributable(files, secret=settings.secret_key, source_extension=settings.source_extension)
    )

    logger.info("Creating source code ZIP archive...")
    source_archive = out_dir / f"{name}_source.zip"
    with zipfile.ZipFile(source_archive, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for file_name, content in files.items():
            archive.writestr(file_name, content)

    logger.info("Build successful: %s", bundle)
    return BuildResult(
        name=name,
        bundle=bundle,
        distributable=distributable,
        source_archive=source_archive,
        file_count=len(files),
    )


__all__ = [
    "BuildResult",
    "collect_project_files",
    "check_project",
    "project_manifest",
    "build_in_memory",
    "build_project",
]
