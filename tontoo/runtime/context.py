"""
Interpreter state for one bundle execution.

``RuntimeContext`` owns the variable and function tables, the loaded-file
set, API and server declarations, scheduled tasks and external
connections. It is passed explicitly to every action handler; nothing in
the runtime keeps process-wide interpreter state.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set

from tontoo.config import Settings, get_settings
from tontoo.errors import DirectiveRuntimeError
from tontoo.lang.actions import Action, FunctionEnd, FunctionStart
from tontoo.lang.parser import parse_actions

if TYPE_CHECKING:  # pragma: no cover
    from tontoo.runtime.connections import SQLConnection
    from tontoo.runtime.scheduler import ScheduledTask
    from tontoo.web.certs import CertificateGenerator
    from tontoo.web.declarations import ApiDeclaration
    from tontoo.web.server import Listener, WebServer

logger = logging.getLogger("tontoo.runtime")

_VARIABLE_PATTERN = re.compile(r"\$([A-Z0-9_]+)")


@dataclass
class _OpenFunction:
    name: str
    body: List[Action] = field(default_factory=list)


class RuntimeContext:
    """Mutable interpreter state plus the parse/execute reducer."""

    def __init__(
        self,
        workspace: Path,
        sources: Optional[Mapping[str, str]] = None,
        *,
        settings: Optional[Settings] = None,
        cert_generator: Optional["CertificateGenerator"] = None,
    ) -> None:
        self.workspace = Path(workspace)
        self.settings = settings or get_settings()
        self.sources: Dict[str, str] = dict(sources or {})
        self.variables: Dict[str, Any] = {}
        self.functions: Dict[str, List[Action]] = {}
        self.loaded_files: Set[str] = set()
        self.apis: Dict[str, List["ApiDeclaration"]] = {}
        self.servers: Dict[str, "WebServer"] = {}
        self.listeners: List["Listener"] = []
        self.schedules: List["ScheduledTask"] = []
        self.connections: Dict[str, "SQLConnection"] = {}
        self.cert_generator = cert_generator
        self._tasks: List[asyncio.Task] = []
        self._deferred: List[Callable[[], Awaitable[None]]] = []

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------
    def substitute(self, value: Any) -> Any:
        """Replace ``$NAME`` tokens in a single pass; unknown names become ''."""
        if not isinstance(value, str):
            return value

        def _replace(match: re.Match) -> str:
            found = self.variables.get(match.group(1))
            return found if isinstance(found, str) else ""

        return _VARIABLE_PATTERN.sub(_replace, value)

    def workspace_path(self, relative: str) -> Path:
        """Resolve a directive path against the workspace."""
        return self.workspace / relative.lstrip("/\\")

    # ------------------------------------------------------------------
    # Parsing and execution
    # ------------------------------------------------------------------
    def run_source(self, text: str, path: str) -> bool:
        """
        Parse ``text`` and execute or buffer each directive as it is read.

        Returns ``False`` without doing anything when ``path`` was already
        parsed. A malformed block raises :class:`DirectiveSyntaxError`
        after every directive before it has run.
        """
        if path in self.loaded_files:
            return False
        self.loaded_files.add(path)

        current: Optional[_OpenFunction] = None
        for action in parse_actions(text, path=path):
            if isinstance(action, FunctionStart):
                if current is not None:
                    logger.warning(
                        "Function '%s' in %s was not closed before '%s' started; discarding it",
                        current.name,
                        path,
                        action.name,
                    )
                current = _OpenFunction(action.name)
            elif isinstance(action, FunctionEnd):
                if current is not None and current.name:
                    self.functions[current.name] = current.body
                current = None
            elif current is None or action.immediate:
                self.execute(action)
            else:
                current.body.append(action)
        if current is not None:
            logger.warning("Function '%s' in %s has no ':end:'; discarding it", current.name, path)
        return True

    def execute(self, action: Action) -> None:
        """Run one action; directive runtime errors are logged, never raised."""
        from tontoo.runtime.handlers import HANDLERS

        handler = HANDLERS.get(type(action))
        if handler is None:  # pragma: no cover - every action type is registered
            logger.error("No handler for %s", type(action).__name__)
            return
        try:
            handler(self, action)
        except DirectiveRuntimeError as exc:
            logger.error("Error: %s", exc.format())

    def call_function(self, name: str) -> None:
        """Run a defined function's actions in declaration order."""
        body = self.functions.get(name)
        if body is None:
            raise DirectiveRuntimeError(f'Function "{name}" was not found for direct execution.')
        for action in list(body):
            self.execute(action)

    # ------------------------------------------------------------------
    # Background work
    # ------------------------------------------------------------------
    def spawn(self, factory: Callable[[], Awaitable[None]]) -> None:
        """Run a coroutine on the event loop, or hold it until :meth:`start_deferred`."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._deferred.append(factory)
            return
        self._tasks.append(loop.create_task(factory()))

    def start_deferred(self) -> None:
        pending, self._deferred = self._deferred, []
        for factory in pending:
            self.spawn(factory)

    @property
    def keeps_alive(self) -> bool:
        """True while at least one listener is bound or one schedule is active."""
        return bool(self.listeners) or any(task.active for task in self.schedules)

    async def aclose(self) -> None:
        """Stop listeners and schedules and dispose of external connections."""
        for listener in self.listeners:
            listener.stop()
        for task in self.schedules:
            task.cancel()
        for connection in self.connections.values():
            connection.close()
        if self._tasks:
            done, pending = await asyncio.wait(self._tasks, timeout=5)
            for task in pending:
                task.cancel()
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    logger.error("Background task failed: %s", task.exception())
        for listener in self.listeners:
            listener.close()
        self._tasks.clear()
        self._deferred.clear()


__all__ = ["RuntimeContext"]
