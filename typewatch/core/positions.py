"""Position arithmetic between diagnostics and test definitions.

Three pieces:

- build_index_map: "line:column" -> linear offset for a file's text
- PositionTranslator: generated (checked) -> original (authored) position
  through an optional source map
- DefinitionLocator: innermost definition span containing a position

Lines and columns are 1-based throughout; the sourcemap library works in
0-based coordinates and the translator converts at its boundary.
"""

import json
import logging
from collections.abc import Iterable
from typing import Any

import sourcemap

from .models import DefinitionSpan, SourcePosition

logger = logging.getLogger(__name__)


def build_index_map(text: str) -> dict[str, int]:
    """Map every line:column position of text to its character offset.

    Recognizes "\\n", "\\r\\n" and "\\r" line breaks. The position just past
    the last character is included so that end-of-file diagnostics resolve.
    """
    index_map: dict[str, int] = {}
    line = 1
    column = 1
    offset = 0
    length = len(text)
    while offset < length:
        index_map[f"{line}:{column}"] = offset
        char = text[offset]
        if char == "\r" and offset + 1 < length and text[offset + 1] == "\n":
            # the "\n" of a CRLF pair shares the position after the "\r"
            offset += 1
            index_map.setdefault(f"{line}:{column + 1}", offset)
        if char in "\r\n":
            line += 1
            column = 1
        else:
            column += 1
        offset += 1
    index_map[f"{line}:{column}"] = offset
    return index_map


class PositionTranslator:
    """Translates checker positions back to the authored source.

    With no source map, positions are returned unchanged.
    """

    def __init__(self, source_map: dict[str, Any] | str | None = None):
        """Initialize translator.

        Args:
            source_map: Source map as a JSON object or JSON text, or None.
                A map that cannot be decoded is treated as absent.
        """
        self._index = None
        if source_map is not None:
            text = source_map if isinstance(source_map, str) else json.dumps(source_map)
            try:
                self._index = sourcemap.loads(text)
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Ignoring undecodable source map: {e}")

    @property
    def has_map(self) -> bool:
        return self._index is not None

    def translate(self, position: SourcePosition | None) -> SourcePosition | None:
        """Return the authored position for a generated one.

        Uses the nearest mapping at or before the generated position on the
        same generated line. Falls back to the given position when the map
        yields nothing usable.
        """
        if position is None or self._index is None:
            return position

        line0 = position.line - 1
        column0 = position.column - 1
        try:
            token = self._index.lookup(line0, column0)
        except (IndexError, KeyError):
            logger.debug(f"No source mapping for {position.key}, using it as is")
            return position

        if (
            token is None
            or token.src_line is None
            or token.src_col is None
            or token.dst_line != line0
            or token.dst_col > column0
        ):
            logger.debug(f"Unusable source mapping for {position.key}, using it as is")
            return position

        return SourcePosition(token.src_line + 1, token.src_col + 1)


class DefinitionLocator:
    """Finds the definition a position falls inside.

    Spans are ordered by descending start offset so that, among spans
    containing the same offset, the most deeply nested one wins. The
    sort is stable: spans with equal starts keep document order.
    """

    def __init__(self, definitions: Iterable[DefinitionSpan], index_map: dict[str, int]):
        self.index_map = index_map
        self.definitions = sorted(definitions, key=lambda span: span.start, reverse=True)

    def offset_of(self, position: SourcePosition | None) -> int | None:
        if position is None:
            return None
        return self.index_map.get(position.key)

    def locate(self, position: SourcePosition | None) -> DefinitionSpan | None:
        """Return the innermost span containing position, or None."""
        offset = self.offset_of(position)
        if offset is None:
            return None
        for span in self.definitions:
            if span.contains(offset):
                return span
        return None
