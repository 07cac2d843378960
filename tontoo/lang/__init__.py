"""Tontoo source language: cursor, directive actions, parser and syntax check."""

from .actions import Action
from .parser import DirectiveParser, parse_actions
from .syntax import check_syntax

__all__ = ["Action", "DirectiveParser", "parse_actions", "check_syntax"]
