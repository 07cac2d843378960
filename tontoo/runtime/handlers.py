"""Action handlers, one per :mod:`tontoo.lang.actions` type."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Callable, Dict, Type

from tontoo.errors import DirectiveRuntimeError, ModuleResolutionError
from tontoo.lang import actions as a
from tontoo.runtime import connections, primitives, scheduler
from tontoo.runtime.resolver import ModuleResolver

if TYPE_CHECKING:  # pragma: no cover
    from tontoo.runtime.context import RuntimeContext

logger = logging.getLogger("tontoo.runtime")

Handler = Callable[["RuntimeContext", a.Action], None]


def _set_variable(ctx: "RuntimeContext", action: a.SetVariable) -> None:
    ctx.variables[action.key] = action.value


def _load_modules(ctx: "RuntimeContext", action: a.LoadModules) -> None:
    resolver = ModuleResolver(ctx)
    for name in action.names:
        try:
            resolver.resolve(name)
        except ModuleResolutionError as exc:
            logger.error("Error: %s", exc.format())


def _call_function(ctx: "RuntimeContext", action: a.CallFunction) -> None:
    ctx.call_function(action.name)


def _log(ctx: "RuntimeContext", action: a.Log) -> None:
    primitives.log(ctx, action.message)


def _run(ctx: "RuntimeContext", action: a.RunCommand) -> None:
    primitives.run_command(ctx, action.command, wait=action.wait)


def _copy(ctx: "RuntimeContext", action: a.CopyFile) -> None:
    primitives.copy_file(ctx, action.source, action.target)


def _move(ctx: "RuntimeContext", action: a.MoveFile) -> None:
    primitives.move_file(ctx, action.source, action.target)


def _edit(ctx: "RuntimeContext", action: a.EditFile) -> None:
    primitives.edit_file(ctx, action.path, action.content)


def _delete_file(ctx: "RuntimeContext", action: a.DeleteFile) -> None:
    primitives.delete_file(ctx, action.path)


def _delete_folder(ctx: "RuntimeContext", action: a.DeleteFolder) -> None:
    primitives.delete_folder(ctx, action.path)


def _add_folder(ctx: "RuntimeContext", action: a.AddFolder) -> None:
    primitives.add_folder(ctx, action.path)


def _add_file(ctx: "RuntimeContext", action: a.AddFile) -> None:
    primitives.add_file(ctx, action.path)


def _schedule(ctx: "RuntimeContext", action: a.Schedule) -> None:
    scheduler.schedule(ctx, action.interval, action.function)


def _connect(ctx: "RuntimeContext", action: a.Connect) -> None:
    connections.connect(ctx, action.connection_id, action.config)


def _query(ctx: "RuntimeContext", action: a.Query) -> None:
    connection = ctx.connections.get(action.connection_id)
    if connection is None:
        raise DirectiveRuntimeError(f'SQL connection "{action.connection_id}" is not defined.')
    rows = connection.query(ctx.substitute(action.sql))
    if action.into:
        ctx.variables[action.into] = json.dumps(rows, default=str)
    logger.debug("Query on '%s' returned %d rows", action.connection_id, len(rows))


def _declare_api(ctx: "RuntimeContext", action: a.DeclareApi) -> None:
    from tontoo.web.declarations import ApiDeclaration

    declaration = ApiDeclaration.from_block(action.name, action.config)
    if not declaration.server_id:
        raise DirectiveRuntimeError(f'webAPI "{action.name}" has no webserverid.')
    ctx.apis.setdefault(declaration.server_id, []).append(declaration)


def _start_web(ctx: "RuntimeContext", action: a.StartWeb) -> None:
    from tontoo.web.declarations import ServerDeclaration
    from tontoo.web.server import start_web

    declaration = ServerDeclaration.from_block(action.path, action.config, ctx.substitute)
    start_web(ctx, declaration)


HANDLERS: Dict[Type[a.Action], Handler] = {
    a.SetVariable: _set_variable,
    a.LoadModules: _load_modules,
    a.CallFunction: _call_function,
    a.Log: _log,
    a.RunCommand: _run,
    a.CopyFile: _copy,
    a.MoveFile: _move,
    a.EditFile: _edit,
    a.DeleteFile: _delete_file,
    a.DeleteFolder: _delete_folder,
    a.AddFolder: _add_folder,
    a.AddFile: _add_file,
    a.Schedule: _schedule,
    a.Connect: _connect,
    a.Query: _query,
    a.DeclareApi: _declare_api,
    a.StartWeb: _start_web,
}

__all__ = ["HANDLERS"]
