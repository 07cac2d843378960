"""Pre-build syntax check for ``.tont`` sources."""

from __future__ import annotations

import re

from tontoo.errors import BuildSyntaxError
from tontoo.lang.cursor import BLOCK_CLOSE, BLOCK_OPEN, COMMENT_MARKER

_KEYWORD_PATTERN = re.compile(r"^(\w+):")


def check_syntax(code: str, filename: str) -> bool:
    """
    Validate brace balance and dangling keywords.

    Every line containing ``{`` opens one block and every line containing
    ``}`` closes one. A bare ``keyword:`` must be followed by a line that
    opens a block.

    Raises:
        BuildSyntaxError: naming the file and the 1-based line.
    """
    lines = code.split("\n")
    brace_count = 0
    for index, raw in enumerate(lines):
        line = raw.strip()
        if line.startswith(COMMENT_MARKER):
            continue
        if BLOCK_OPEN in line:
            brace_count += 1
        if BLOCK_CLOSE in line:
            brace_count -= 1

        match = _KEYWORD_PATTERN.match(line)
        if match:
            keyword = match.group(1)
            value = line[len(keyword) + 1:].strip()
            following = lines[index + 1].strip() if index + 1 < len(lines) else ""
            if not value and not following.startswith(BLOCK_OPEN):
                raise BuildSyntaxError(
                    f"Syntax Error in {filename} on line {index + 1}: "
                    f"Keyword '{keyword}' is not followed by a value or a block.",
                    path=filename,
                    line=index + 1,
                )
    if brace_count != 0:
        raise BuildSyntaxError(f"Syntax Error in {filename}: Mismatched curly braces {{}}.", path=filename)
    return True


__all__ = ["check_syntax"]
