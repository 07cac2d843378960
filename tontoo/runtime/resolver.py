"""Module resolution for ``load`` directives."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List

from tontoo.errors import ModuleResolutionError

if TYPE_CHECKING:  # pragma: no cover
    from tontoo.runtime.context import RuntimeContext

logger = logging.getLogger("tontoo.runtime.resolver")


class ModuleResolver:
    """Resolves a load name to package files or a single root-level file."""

    def __init__(self, ctx: "RuntimeContext") -> None:
        self.ctx = ctx

    def package_files(self, name: str) -> List[str]:
        settings = self.ctx.settings
        prefix = f"{settings.packages_dir}/{name}/"
        return [
            path
            for path in self.ctx.sources
            if path.startswith(prefix) and path.endswith(settings.source_extension)
        ]

    def resolve(self, name: str) -> List[str]:
        """
        Parse the files ``name`` refers to and return their paths.

        Files already in the loaded-file set are skipped by the parser, so
        repeated and cyclic loads are no-ops.

        Raises:
            ModuleResolutionError: if neither a package nor a root file exists.
        """
        files = self.package_files(name)
        if files:
            for path in files:
                if path not in self.ctx.loaded_files:
                    logger.info("Loading package file: %s", path)
                self.ctx.run_source(self.ctx.sources[path], path)
            return files

        root_file = f"{name}{self.ctx.settings.source_extension}"
        if root_file in self.ctx.sources:
            if root_file not in self.ctx.loaded_files:
                logger.info("Loading single file: %s", root_file)
            self.ctx.run_source(self.ctx.sources[root_file], root_file)
            return [root_file]

        raise ModuleResolutionError(f'Could not find file or package "{name}".')


__all__ = ["ModuleResolver"]
