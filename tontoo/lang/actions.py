"""Tagged action values produced by the directive parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Dict, List, Optional


@dataclass
class Action:
    """Base class for one parsed directive.

    ``immediate`` actions are executed as soon as they are parsed, even
    inside a function body.
    """

    line: int = field(default=0, kw_only=True)
    immediate: ClassVar[bool] = False


@dataclass
class SetVariable(Action):
    key: str
    value: str
    immediate: ClassVar[bool] = True


@dataclass
class LoadModules(Action):
    names: List[str]
    immediate: ClassVar[bool] = True


@dataclass
class FunctionStart(Action):
    name: str


@dataclass
class FunctionEnd(Action):
    pass


@dataclass
class CallFunction(Action):
    name: str


@dataclass
class Log(Action):
    message: str


@dataclass
class RunCommand(Action):
    command: str
    wait: bool = False


@dataclass
class CopyFile(Action):
    source: str
    target: str


@dataclass
class MoveFile(Action):
    source: str
    target: str


@dataclass
class EditFile(Action):
    path: str
    content: str


@dataclass
class DeleteFile(Action):
    path: str


@dataclass
class DeleteFolder(Action):
    path: str


@dataclass
class AddFolder(Action):
    path: str


@dataclass
class AddFile(Action):
    path: str


@dataclass
class Schedule(Action):
    interval: str
    function: str


@dataclass
class Connect(Action):
    connection_id: str
    config: Dict[str, str]


@dataclass
class Query(Action):
    connection_id: str
    sql: str
    into: Optional[str] = None


@dataclass
class DeclareApi(Action):
    name: str
    config: Dict[str, str]


@dataclass
class StartWeb(Action):
    path: str
    config: Dict[str, str]


__all__ = [
    "Action",
    "SetVariable",
    "LoadModules",
    "FunctionStart",
    "FunctionEnd",
    "CallFunction",
    "Log",
    "RunCommand",
    "CopyFile",
    "MoveFile",
    "EditFile",
    "DeleteFile",
    "DeleteFolder",
    "AddFolder",
    "AddFile",
    "Schedule",
    "Connect",
    "Query",
    "DeclareApi",
    "StartWeb",
]
