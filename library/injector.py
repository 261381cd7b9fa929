"""
Insert or replace the ``file`` field of a single BibTeX record.

The record text is edited in place: comments, field order and whitespace of
everything except the ``file`` assignment are kept as they are.  The field is
always written in the shape the parser reads back::

             file = {:<filename>:PDF}

Running the injector twice with the same filename gives the same text as
running it once.
"""

from __future__ import annotations

import re
from typing import Optional

FILE_FIELD_INDENT = " " * 9

# Start of a ``file = `` assignment whose value opens with { ( or ",
# at the beginning of a line or right after the previous field's comma
_FILE_FIELD_START = re.compile(
    r"(?:^|(?<=,))[ \t]*file[ \t]*=[ \t]*(?=[{(\"])", re.IGNORECASE | re.MULTILINE
)
_RECORD_OPENER = re.compile(r"^\s*@\s*[\w\-]+\s*([{(])")
_TRAILING_COMMA = re.compile(r"[ \t]*(,?)[ \t]*")


def file_field_line(filename: str) -> str:
    return f"{FILE_FIELD_INDENT}file = {{:{filename}:PDF}}"


def _value_end(text: str, open_at: int) -> Optional[int]:
    """Index just past the value opened at *open_at*, None if never closed."""
    opener = text[open_at]
    if opener == '"':
        close_at = text.find('"', open_at + 1)
        return close_at + 1 if close_at != -1 else None

    closer = "}" if opener == "{" else ")"
    depth = 0
    for i, char in enumerate(text[open_at:], open_at):
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def _replace_file_fields(text: str, filename: str) -> Optional[str]:
    """Replace every ``file`` assignment; None when the record has none."""
    matches = list(_FILE_FIELD_START.finditer(text))
    if not matches:
        return None

    pieces = []
    pos = 0
    for match in matches:
        if match.start() < pos:
            # Inside the value of a previous file field
            continue
        value_end = _value_end(text, match.end())
        if value_end is None:
            line_end = text.find("\n", match.end())
            value_end = len(text) if line_end == -1 else line_end

        comma = _TRAILING_COMMA.match(text, value_end)
        end = comma.end()
        replacement = file_field_line(filename) + comma.group(1)

        # The field always ends up on a line of its own
        if match.start() > 0 and text[match.start() - 1] == ",":
            replacement = "\n" + replacement
        if end < len(text) and text[end] != "\n":
            replacement += "\n"

        pieces.append(text[pos : match.start()])
        pieces.append(replacement)
        pos = end

    pieces.append(text[pos:])
    return "".join(pieces)


def _closing_delimiter(text: str) -> str:
    opener = _RECORD_OPENER.match(text)
    if opener and opener.group(1) == "(":
        return ")"
    return "}"


def inject_file_field(record_text: str, filename: str) -> str:
    """Return *record_text* with its ``file`` field pointing at *filename*.

    Never raises.  A record without a closing delimiter gets the field
    appended on a new line at the end.
    """
    replaced = _replace_file_fields(record_text, filename)
    if replaced is not None:
        return replaced

    line = file_field_line(filename)
    trimmed = record_text.rstrip()
    last_close = trimmed.rfind(_closing_delimiter(trimmed))
    if last_close == -1:
        return f"{trimmed}\n{line}\n"

    head = trimmed[:last_close].rstrip()
    tail = trimmed[last_close:]
    if not head.endswith(","):
        head += ","
    return f"{head}\n{line}\n{tail}"
