"""Parsing of tsc-like diagnostic output.

Turns the raw text printed by `tsc --pretty false` (or vue-tsc) into
RawDiagnostic records grouped by file path, then resolves those paths
against the project root and wraps each diagnostic into a TypeCheckError.

Accepted line shapes:

    src/a.test-d.ts(3,7): error TS2322: Type 'string' is not assignable...
    src/a.test-d.ts: error TS1208: 'a.test-d.ts' cannot be compiled...
    error TS5083: Cannot read file '/project/tsconfig.json'.

Lines starting with whitespace continue the previous diagnostic's message.
Anything else (watch banners, timestamps, garbage) is skipped.
"""

import logging
import os
import re

from .errors import ParsedStackFrame, TypeCheckError
from .models import ParsedDiagnostic, RawDiagnostic

logger = logging.getLogger(__name__)

_NEWLINE_RE = re.compile(r"\r?\n")

_POSITIONED_RE = re.compile(
    r"^(?P<path>.+?)\((?P<line>\d+),(?P<column>\d+)\): "
    r"(?P<category>error|warning|message)(?: TS(?P<code>\d+))?: ?(?P<message>.*)$"
)
_FILE_ONLY_RE = re.compile(
    r"^(?P<path>(?:[A-Za-z]:)?[^\s:][^:]*?)(?<!\)): "
    r"(?P<category>error|warning|message) TS(?P<code>\d+): ?(?P<message>.*)$"
)
_GLOBAL_RE = re.compile(
    r"^(?P<category>error|warning|message) TS(?P<code>\d+): ?(?P<message>.*)$"
)


def _split_entries(output: str) -> list[str]:
    """Join continuation lines onto the entry they belong to."""
    entries: list[str] = []
    for line in _NEWLINE_RE.split(output):
        if not line.strip():
            continue
        if line[0] in " \t" and entries:
            entries[-1] += "\n" + line
        else:
            entries.append(line)
    return entries


def parse_diagnostic_line(entry: str) -> RawDiagnostic | None:
    """Parse one diagnostic entry (first line plus continuations).

    Returns None if the entry is not a diagnostic.
    """
    head, _, rest = entry.partition("\n")
    head = head.strip()

    match = _POSITIONED_RE.match(head)
    if match:
        path: str | None = match.group("path").strip()
        line: int | None = int(match.group("line"))
        column: int | None = int(match.group("column"))
    else:
        match = _FILE_ONLY_RE.match(head) or _GLOBAL_RE.match(head)
        if match is None:
            return None
        path = match.groupdict().get("path")
        line = column = None

    message = match.group("message").strip()
    if rest:
        message = "\n".join([message, *(part.strip() for part in rest.split("\n"))])
    if not message.strip():
        return None

    code = match.group("code")
    return RawDiagnostic(
        file_path=path or None,
        line=line,
        column=column,
        message=message.strip(),
        code=int(code) if code else None,
        category=match.group("category"),
    )


def parse_diagnostics(output: str) -> dict[str | None, list[RawDiagnostic]]:
    """Group every parseable diagnostic of a checker's output by file path.

    Paths are kept as written by the tool. Diagnostics keep emission order
    within a path; duplicates are kept. Unparseable lines are skipped.
    """
    grouped: dict[str | None, list[RawDiagnostic]] = {}
    for entry in _split_entries(output):
        try:
            diagnostic = parse_diagnostic_line(entry)
        except ValueError as e:
            logger.debug(f"Skipping malformed diagnostic {entry[:200]!r}: {e}")
            continue
        if diagnostic is None:
            logger.debug(f"Skipping non-diagnostic output line: {entry[:200]!r}")
            continue
        grouped.setdefault(diagnostic.file_path, []).append(diagnostic)
    return grouped


def resolve_path(root: str, path: str) -> str:
    """Absolute, normalized form of a path relative to the project root."""
    return os.path.normpath(os.path.join(os.path.abspath(root), path))


def build_type_error(diagnostic: RawDiagnostic, filepath: str | None) -> TypeCheckError:
    """Wrap a diagnostic into a TypeCheckError located at its reported position."""
    stacks: tuple[ParsedStackFrame, ...] = ()
    if filepath is not None:
        stacks = (
            ParsedStackFrame(
                file=filepath,
                line=diagnostic.line,
                column=diagnostic.column,
            ),
        )
    message = diagnostic.message
    if diagnostic.code is not None:
        message = f"TS{diagnostic.code}: {message}"
    return TypeCheckError(message, stacks)


def resolve_diagnostics(
    raw: dict[str | None, list[RawDiagnostic]], root: str
) -> dict[str | None, list[ParsedDiagnostic]]:
    """Resolve tool paths against root and attach a TypeCheckError to each diagnostic.

    Paths that resolve to the same file are merged, keeping emission order.
    Global diagnostics stay under the None key.
    """
    resolved: dict[str | None, list[ParsedDiagnostic]] = {}
    for path, diagnostics in raw.items():
        filepath = resolve_path(root, path) if path is not None else None
        bucket = resolved.setdefault(filepath, [])
        bucket.extend(
            ParsedDiagnostic(raw=d, error=build_type_error(d, filepath))
            for d in diagnostics
        )
    return resolved
