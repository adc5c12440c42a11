"""
prompt_toolkit host adapters - exposes a Buffer as the engine's text surface.
"""

import re
from typing import Dict, Tuple

from prompt_toolkit.buffer import Buffer
from prompt_toolkit.document import Document

from compl.completion.errors import ApplyEditFailure
from compl.completion.host import NORMAL_BUFFER, SnippetExpander, TextSurface
from compl.completion.protocol import Position, Range

# $1, ${1}, ${1:default}, ${TM_FILENAME:default}
_PLACEHOLDER = re.compile(r"\$(?:(\d+)|\{(\d+|[A-Z_]+)(?::([^{}]*))?\})")


class BufferSurface(TextSurface):
    """TextSurface over a prompt_toolkit Buffer."""

    def __init__(self, buffer: Buffer, buffer_id: str = "repl"):
        self.buffer = buffer
        self._buffer_id = buffer_id

    def buffer_id(self) -> str:
        return self._buffer_id

    def current_line(self) -> str:
        return self.buffer.document.current_line

    def cursor_position(self) -> Position:
        document = self.buffer.document
        return Position(document.cursor_position_row, document.cursor_position_col)

    def set_cursor_position(self, position: Position) -> None:
        self.buffer.cursor_position = self._index(self.buffer.document, position)

    def replace_range(self, range: Range, text: str) -> None:
        document = self.buffer.document
        start = self._index(document, range.start)
        end = self._index(document, range.end)
        if end < start:
            raise ApplyEditFailure(f"Range end precedes start: {range.to_dict()}")

        cursor = document.cursor_position
        if cursor >= end:
            cursor += len(text) - (end - start)
        elif cursor > start:
            cursor = start + len(text)

        new_text = document.text[:start] + text + document.text[end:]
        self.buffer.set_document(Document(new_text, cursor), bypass_readonly=True)

    def buffer_kind(self) -> str:
        return "readonly" if self.buffer.read_only() else NORMAL_BUFFER

    @staticmethod
    def _index(document: Document, position: Position) -> int:
        lines = document.lines
        if not 0 <= position.line < len(lines):
            raise ApplyEditFailure(f"Line {position.line} out of range")
        if not 0 <= position.character <= len(lines[position.line]):
            raise ApplyEditFailure(
                f"Column {position.character} out of range on line {position.line}"
            )
        return document.translate_row_col_to_index(position.line, position.character)


def expand_placeholders(body: str) -> Tuple[str, int]:
    """
    Flatten a snippet body to plain text.

    Placeholders are replaced by their default text, variables by their
    default (or nothing).

    Returns:
        (text, cursor offset) with the offset at the first tab stop, else $0,
        else the end of the text
    """
    parts = []
    stops: Dict[int, int] = {}
    length = 0
    last = 0

    for match in _PLACEHOLDER.finditer(body):
        literal = body[last : match.start()]
        parts.append(literal)
        length += len(literal)

        name = match.group(1) or match.group(2)
        if name.isdigit():
            stops.setdefault(int(name), length)

        default = match.group(3) or ""
        parts.append(default)
        length += len(default)
        last = match.end()

    parts.append(body[last:])
    text = "".join(parts)

    numbered = [n for n in stops if n > 0]
    if numbered:
        offset = stops[min(numbered)]
    elif 0 in stops:
        offset = stops[0]
    else:
        offset = len(text)
    return text, offset


class PlaceholderExpander(SnippetExpander):
    """Inserts snippet bodies as plain text, leaving the cursor on the first tab stop."""

    def __init__(self, buffer: Buffer):
        self.buffer = buffer

    def expand(self, body: str) -> None:
        text, offset = expand_placeholders(body)
        start = self.buffer.cursor_position
        self.buffer.insert_text(text, fire_event=False)
        self.buffer.cursor_position = start + offset
