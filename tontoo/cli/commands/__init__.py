"""
CLI command modules.

Each module implements one ``tontoo`` subcommand as ``cmd_<name>(args)``.
"""

from .build import cmd_build, cmd_dev
from .info import cmd_info
from .run import cmd_run

__all__ = ["cmd_build", "cmd_dev", "cmd_info", "cmd_run"]
