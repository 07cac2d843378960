"""Interpreter state, directive primitives and the bundle runner."""

from tontoo.runtime.context import RuntimeContext
from tontoo.runtime.runner import run_bundle, run_file, run_files

__all__ = ["RuntimeContext", "run_bundle", "run_file", "run_files"]
