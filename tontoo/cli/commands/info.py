"""Info command: version banner and effective settings."""

import argparse

from tontoo import __version__
from tontoo.config import get_settings

from ..output import print_table


def cmd_info(args: argparse.Namespace) -> None:
    settings = get_settings()
    print(f"Tontoo {__version__}")
    print_table(
        {
            "source extension": settings.source_extension,
            "bundle extension": settings.bundle_extension,
            "packages": settings.packages_dir,
            "manifest": settings.manifest_name,
            "default main": settings.default_main,
        }
    )
