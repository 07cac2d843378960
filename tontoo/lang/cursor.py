"""Line cursor shared by the directive parser and its block readers."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from tontoo.errors import DirectiveSyntaxError

COMMENT_MARKER = "#"
BLOCK_OPEN = "{"
BLOCK_CLOSE = "}"


def strip_quotes(value: str) -> str:
    """Remove one pair of surrounding double quotes."""
    value = value.strip()
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1]
    return value


def clean_value(raw: str) -> str:
    """Normalise a ``key: value`` right-hand side.

    Drops a trailing ``#`` comment outside double quotes, a trailing
    comma and the surrounding quotes.
    """
    in_quotes = False
    for index, char in enumerate(raw):
        if char == '"':
            in_quotes = not in_quotes
        elif char == COMMENT_MARKER and not in_quotes:
            raw = raw[:index]
            break
    value = raw.strip()
    if value.endswith(","):
        value = value[:-1].rstrip()
    return strip_quotes(value)


def split_entry(text: str) -> Tuple[str, str]:
    key, _, value = text.partition(":")
    key = key.replace('"', "").replace(",", "").strip()
    return key, clean_value(value)


class LineCursor:
    """Single-pass cursor over the lines of one source file."""

    def __init__(self, source: str, *, path: str = "") -> None:
        self.lines: List[str] = source.split("\n")
        self.pos: int = 0
        self.path = path

    @property
    def line_number(self) -> int:
        """1-based number of the line most recently consumed."""
        return self.pos

    def at_end(self) -> bool:
        return self.pos >= len(self.lines)

    def peek(self) -> Optional[str]:
        """Return the current line without consuming it."""
        if self.pos < len(self.lines):
            return self.lines[self.pos]
        return None

    def advance(self) -> Optional[str]:
        """Return the current line and move the cursor forward."""
        line = self.peek()
        self.pos += 1
        return line

    def skip_block_open(self) -> bool:
        """Consume a lone ``{`` line if it is next; report whether one was found."""
        upcoming = self.peek()
        if upcoming is not None and upcoming.strip() == BLOCK_OPEN:
            self.pos += 1
            return True
        return False

    def _read_body(self, directive: str) -> List[Tuple[int, str]]:
        start = self.line_number
        body: List[Tuple[int, str]] = []
        while True:
            raw = self.advance()
            if raw is None:
                raise DirectiveSyntaxError(
                    f"Block for '{directive}' reached end of file before '{BLOCK_CLOSE}'",
                    path=self.path,
                    line=start,
                )
            text = raw.strip()
            if text.startswith(BLOCK_CLOSE):
                return body
            if not text or text == BLOCK_OPEN or text.startswith(COMMENT_MARKER):
                continue
            body.append((self.line_number, text))

    def read_block(self, directive: str) -> Dict[str, str]:
        """Consume a ``{ "key": "value" ... }`` body up to its closing brace."""
        entries: Dict[str, str] = {}
        for _, text in self._read_body(directive):
            if ":" not in text:
                continue
            key, value = split_entry(text)
            if key:
                entries[key] = value
        return entries

    def read_names(self, directive: str) -> List[str]:
        """Consume a body of bare names (one per line, quotes optional)."""
        names = []
        for _, text in self._read_body(directive):
            name = strip_quotes(text.rstrip(",").strip())
            if name:
                names.append(name)
        return names


__all__ = ["LineCursor", "clean_value", "split_entry", "strip_quotes"]
