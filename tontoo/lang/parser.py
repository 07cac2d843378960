"""
Directive parser.

Turns ``.tont`` source text into a lazy stream of :mod:`tontoo.lang.actions`
values. The stream is consumed one action at a time by the runtime, so an
action is executed (or buffered) before the next line is read.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Iterator, Optional, Tuple

from tontoo.lang.actions import (
    Action,
    AddFile,
    AddFolder,
    CallFunction,
    Connect,
    CopyFile,
    DeclareApi,
    DeleteFile,
    DeleteFolder,
    EditFile,
    FunctionEnd,
    FunctionStart,
    LoadModules,
    Log,
    MoveFile,
    Query,
    RunCommand,
    Schedule,
    SetVariable,
    StartWeb,
)
from tontoo.lang.cursor import BLOCK_OPEN, COMMENT_MARKER, LineCursor, strip_quotes

logger = logging.getLogger(__name__)

_CALL_PATTERN = re.compile(r'^:start:\s*"([^"]+)"')

_Reader = Callable[["DirectiveParser", str], Optional[Action]]


def _block_header(rest: str) -> str:
    """Drop a trailing ``{`` from a block header."""
    rest = rest.strip()
    if rest.endswith(BLOCK_OPEN):
        return rest[:-1].strip()
    return rest


class DirectiveParser:
    """Recognises one directive per line and reads any block it owns."""

    def __init__(self, source: str, *, path: str = "") -> None:
        self.cursor = LineCursor(source, path=path)
        self.path = path

    def __iter__(self) -> Iterator[Action]:
        return self.parse()

    def parse(self) -> Iterator[Action]:
        cursor = self.cursor
        while not cursor.at_end():
            raw = cursor.advance()
            line = raw.strip() if raw is not None else ""
            if not line or line.startswith(COMMENT_MARKER):
                continue
            action = self._dispatch(line)
            if action is not None:
                yield action

    def _dispatch(self, line: str) -> Optional[Action]:
        call = _CALL_PATTERN.match(line)
        if call:
            return CallFunction(call.group(1), line=self.cursor.line_number)
        for prefix, reader in _READERS:
            if line.startswith(prefix):
                return reader(self, line[len(prefix):])
        logger.debug("Ignoring unrecognised line %s:%d: %s", self.path, self.cursor.line_number, line)
        return None

    # ------------------------------------------------------------------
    # Single-line directives
    # ------------------------------------------------------------------
    def _variable(self, rest: str) -> Optional[Action]:
        key, sep, value = rest.strip().partition(":")
        key = key.strip()
        if not sep or not key:
            logger.warning("Malformed variable assignment in %s line %d", self.path, self.cursor.line_number)
            return None
        return SetVariable(key, strip_quotes(value), line=self.cursor.line_number)

    def _function_start(self, rest: str) -> Action:
        name = rest.strip().split(" ")[0] if rest.strip() else ""
        return FunctionStart(name, line=self.cursor.line_number)

    def _function_end(self, rest: str) -> Action:
        return FunctionEnd(line=self.cursor.line_number)

    def _log(self, rest: str) -> Action:
        return Log(strip_quotes(rest), line=self.cursor.line_number)

    def _run(self, rest: str) -> Action:
        line = self.cursor.line_number
        wait = False
        upcoming = self.cursor.peek()
        if upcoming is not None and '"wait"' in upcoming:
            self.cursor.advance()
            wait = '"true"' in upcoming
        return RunCommand(strip_quotes(rest), wait=wait, line=line)

    def _schedule(self, rest: str) -> Optional[Action]:
        parts = rest.strip().split(None, 1)
        if len(parts) != 2:
            logger.error(
                "Error: 'schedule:' expects an interval and a function name in %s line %d",
                self.path,
                self.cursor.line_number,
            )
            return None
        return Schedule(parts[0], strip_quotes(parts[1]), line=self.cursor.line_number)

    # ------------------------------------------------------------------
    # Block directives
    # ------------------------------------------------------------------
    def _block(self, directive: str, rest: str) -> Tuple[str, Dict[str, str], int]:
        line = self.cursor.line_number
        header = _block_header(rest)
        return header, self.cursor.read_block(directive), line

    def _copy_file(self, rest: str) -> Action:
        _, config, line = self._block("copyFile", rest)
        return CopyFile(config.get("from", ""), config.get("to", ""), line=line)

    def _move_file(self, rest: str) -> Action:
        _, config, line = self._block("moveFile", rest)
        return MoveFile(config.get("from", ""), config.get("to", ""), line=line)

    def _edit_file(self, rest: str) -> Action:
        _, config, line = self._block("editFile", rest)
        return EditFile(config.get("file", ""), config.get("content", ""), line=line)

    def _connect(self, rest: str) -> Action:
        header, config, line = self._block("mysql", rest)
        return Connect(strip_quotes(header), config, line=line)

    def _query(self, rest: str) -> Action:
        header, config, line = self._block("query", rest)
        return Query(strip_quotes(header), config.get("sql", ""), config.get("into") or None, line=line)

    def _web_api(self, rest: str) -> Action:
        header, config, line = self._block("webAPI", rest)
        return DeclareApi(strip_quotes(header).replace('"', ""), config, line=line)

    def _start_web(self, rest: str) -> Action:
        header, config, line = self._block("startWEB", rest)
        return StartWeb(strip_quotes(header), config, line=line)

    def _load(self, rest: str) -> Optional[Action]:
        line = self.cursor.line_number
        rest = rest.strip()
        if rest == BLOCK_OPEN or (not rest and self.cursor.skip_block_open()):
            return LoadModules(self.cursor.read_names("load"), line=line)
        logger.error(
            "Error: 'load:' must be followed by a block { ... }. Error in '%s' line %d.",
            self.path,
            line,
        )
        return None


def _path_reader(kind: type) -> _Reader:
    def reader(parser: DirectiveParser, rest: str) -> Action:
        return kind(strip_quotes(rest), line=parser.cursor.line_number)

    return reader


# Prefixes are disjoint, so the order only matters for readability.
_READERS: Tuple[Tuple[str, _Reader], ...] = (
    ("VB:", DirectiveParser._variable),
    (":start:", DirectiveParser._function_start),
    (":end:", DirectiveParser._function_end),
    ("load:", DirectiveParser._load),
    ("copyFile", DirectiveParser._copy_file),
    ("moveFile", DirectiveParser._move_file),
    ("editFile", DirectiveParser._edit_file),
    ("deleteFile:", _path_reader(DeleteFile)),
    ("deleteFolder:", _path_reader(DeleteFolder)),
    ("addFolder:", _path_reader(AddFolder)),
    ("addFile:", _path_reader(AddFile)),
    ("console.log:", DirectiveParser._log),
    ("run:", DirectiveParser._run),
    ("schedule:", DirectiveParser._schedule),
    ("mysql:", DirectiveParser._connect),
    ("query:", DirectiveParser._query),
    ("webAPI:", DirectiveParser._web_api),
    ("startWEB:", DirectiveParser._start_web),
)


def parse_actions(source: str, *, path: str = "") -> Iterator[Action]:
    """Lazily parse ``source`` into actions."""
    return DirectiveParser(source, path=path).parse()


__all__ = ["DirectiveParser", "parse_actions"]
