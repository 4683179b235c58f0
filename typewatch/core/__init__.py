"""Core correlation logic for typewatch.

This package holds the domain models, diagnostic parsing, position
arithmetic, result building and the session controller. External
collaborators are reached only through the ports in ports.py.
"""

from .errors import (
    CheckerConfigError,
    CheckerNotFoundError,
    CheckerProcessError,
    ParsedStackFrame,
    TypeCheckError,
    TypecheckerError,
)
from .models import (
    CollectedFile,
    DefinitionSpan,
    ErrorsCache,
    FileDefinitions,
    FileRecord,
    RawDiagnostic,
    SourcePosition,
    Suite,
    Task,
    TaskMode,
    TaskResult,
    TaskState,
    TypecheckTask,
)

__all__ = [
    "CheckerConfigError",
    "CheckerNotFoundError",
    "CheckerProcessError",
    "CollectedFile",
    "DefinitionSpan",
    "ErrorsCache",
    "FileDefinitions",
    "FileRecord",
    "ParsedStackFrame",
    "RawDiagnostic",
    "SourcePosition",
    "Suite",
    "Task",
    "TaskMode",
    "TaskResult",
    "TaskState",
    "TypeCheckError",
    "TypecheckerError",
    "TypecheckTask",
]
