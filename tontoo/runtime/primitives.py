"""File, command and console primitives behind the simple directives."""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import TYPE_CHECKING

from tontoo.errors import DirectiveRuntimeError

if TYPE_CHECKING:  # pragma: no cover
    from tontoo.runtime.context import RuntimeContext

console_logger = logging.getLogger("tontoo.runtime.console")


def log(ctx: "RuntimeContext", message: str) -> str:
    text = ctx.substitute(message)
    console_logger.info(text)
    return text


def copy_file(ctx: "RuntimeContext", source: str, target: str) -> None:
    from_path = ctx.workspace_path(ctx.substitute(source))
    to_path = ctx.workspace_path(ctx.substitute(target))
    try:
        to_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(from_path, to_path)
    except OSError as exc:
        raise DirectiveRuntimeError(f'Could not copy file from "{source}" to "{target}": {exc}') from exc


def move_file(ctx: "RuntimeContext", source: str, target: str) -> None:
    from_path = ctx.workspace_path(ctx.substitute(source))
    to_path = ctx.workspace_path(ctx.substitute(target))
    try:
        to_path.parent.mkdir(parents=True, exist_ok=True)
        from_path.replace(to_path)
    except OSError as exc:
        raise DirectiveRuntimeError(f'Could not move file from "{source}" to "{target}": {exc}') from exc


def delete_file(ctx: "RuntimeContext", path: str) -> None:
    try:
        ctx.workspace_path(ctx.substitute(path)).unlink()
    except OSError as exc:
        raise DirectiveRuntimeError(f'Could not delete file "{path}": {exc}') from exc


def delete_folder(ctx: "RuntimeContext", path: str) -> None:
    folder = ctx.workspace_path(ctx.substitute(path))
    if not folder.exists():
        return
    try:
        shutil.rmtree(folder)
    except OSError as exc:
        raise DirectiveRuntimeError(f'Could not delete folder "{path}": {exc}') from exc


def add_folder(ctx: "RuntimeContext", path: str) -> None:
    try:
        ctx.workspace_path(ctx.substitute(path)).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DirectiveRuntimeError(f'Could not create folder "{path}": {exc}') from exc


def add_file(ctx: "RuntimeContext", path: str) -> None:
    target = ctx.workspace_path(ctx.substitute(path))
    if target.exists():
        return
    try:
        target.write_text("", encoding="utf-8")
    except OSError as exc:
        raise DirectiveRuntimeError(f'Could not create file "{path}": {exc}') from exc


def edit_file(ctx: "RuntimeContext", path: str, content: str) -> None:
    try:
        ctx.workspace_path(ctx.substitute(path)).write_text(ctx.substitute(content), encoding="utf-8")
    except OSError as exc:
        raise DirectiveRuntimeError(f'Could not write file "{path}": {exc}') from exc


def run_command(ctx: "RuntimeContext", command: str, *, wait: bool = False) -> None:
    """Run a shell command in the workspace; ``wait`` blocks until it exits."""
    parsed = ctx.substitute(command)
    try:
        if wait:
            subprocess.run(parsed, shell=True, cwd=ctx.workspace, check=True)
        else:
            subprocess.Popen(parsed, shell=True, cwd=ctx.workspace)
    except (OSError, subprocess.CalledProcessError) as exc:
        raise DirectiveRuntimeError(f'Command failed "{parsed}": {exc}') from exc


__all__ = [
    "log",
    "copy_file",
    "move_file",
    "delete_file",
    "delete_folder",
    "add_folder",
    "add_file",
    "edit_file",
    "run_command",
]
