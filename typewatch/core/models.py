"""Domain models for the typewatch type-check correlation core.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.

The task tree (Task, Suite, FileRecord) is intentionally mutable: the
definition collector builds it and the result builder appends synthetic
typecheck tasks and marks results on a copy of it. Snapshots
(ErrorsCache) are frozen.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import TypeCheckError
from .markers import TSC_WATCH_MARKERS, WatchMarkers

# vitest's default type test globs
DEFAULT_INCLUDE = ("**/*.{test,spec}-d.?(c|m)[jt]s?(x)",)


@dataclass(frozen=True)
class SessionOptions:
    """Options of one type-check session.

    Built by the configuration layer; the core never reads the
    environment itself.
    """

    root: str = "."
    checker: str = "tsc"
    tsconfig: str | None = None
    include: tuple[str, ...] = DEFAULT_INCLUDE
    allow_js: bool = False
    watch: bool = False
    markers: WatchMarkers = TSC_WATCH_MARKERS


class TaskMode(Enum):
    """How a test or suite is scheduled to run."""

    RUN = "run"
    ONLY = "only"
    SKIP = "skip"
    TODO = "todo"

    @property
    def is_running(self) -> bool:
        """True for modes that actually execute (run, only)."""
        return self in (TaskMode.RUN, TaskMode.ONLY)


class TaskState(Enum):
    """Outcome recorded on a task result."""

    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"
    TODO = "todo"

    @classmethod
    def for_mode(cls, mode: TaskMode) -> "TaskState":
        """State of a task carrying a diagnostic, given its mode.

        Running modes fail; skipped and todo tasks keep their own mode.
        """
        if mode.is_running:
            return cls.FAIL
        return cls(mode.value)


@dataclass
class TaskResult:
    """Result attached to a task after a type-check pass."""

    state: TaskState
    error: TypeCheckError | None = None


@dataclass(eq=False)
class Task:
    """A single node of the test tree.

    `suite` is the one-way back-reference to the owning suite; it is
    None only for file records. Identity comparison is used (eq=False)
    because the tree holds back-references.
    """

    id: str
    name: str
    mode: TaskMode = TaskMode.RUN
    suite: "Suite | None" = field(default=None, repr=False)
    file: "FileRecord | None" = field(default=None, repr=False)
    result: TaskResult | None = None

    @property
    def type(self) -> str:
        return "test"


@dataclass(eq=False)
class Suite(Task):
    """A group of tasks (describe block)."""

    tasks: list[Task] = field(default_factory=list, repr=False)

    @property
    def type(self) -> str:
        return "suite"

    def add(self, task: Task) -> Task:
        """Attach a child task, wiring its back-references."""
        task.suite = self
        task.file = self.file
        self.tasks.append(task)
        return task


@dataclass(eq=False)
class FileRecord(Suite):
    """The root suite of a test file."""

    filepath: str = ""

    def __post_init__(self) -> None:
        """A file record is its own file."""
        if not self.filepath:
            raise ValueError("filepath must be a non-empty string")
        if self.file is None:
            self.file = self

    @property
    def type(self) -> str:
        return "file"


@dataclass(eq=False)
class TypecheckTask(Task):
    """Synthetic task representing one diagnostic."""

    @property
    def type(self) -> str:
        return "typecheck"


@dataclass(frozen=True)
class SourcePosition:
    """A 1-based line/column position."""

    line: int
    column: int

    @property
    def key(self) -> str:
        """Index map key for this position."""
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class RawDiagnostic:
    """A single diagnostic as reported by the checker.

    file_path is the path as written by the tool (not yet resolved);
    it is None for global diagnostics. line and column are 1-based and
    None when the tool gave no position.
    """

    file_path: str | None
    line: int | None
    column: int | None
    message: str
    code: int | None = None
    category: str = "error"

    @property
    def position(self) -> SourcePosition | None:
        if self.line is None or self.column is None:
            return None
        return SourcePosition(self.line, self.column)


@dataclass(frozen=True)
class ParsedDiagnostic:
    """A raw diagnostic paired with the error object built from it."""

    raw: RawDiagnostic
    error: TypeCheckError


@dataclass(frozen=True)
class DefinitionSpan:
    """Offset interval occupied by a test or suite declaration.

    Tests are represented as suites so that typecheck tasks can be
    attached under them.
    """

    start: int
    end: int
    task: Suite

    def __post_init__(self) -> None:
        """Validate span bounds."""
        if self.start < 0 or self.end < self.start:
            raise ValueError(
                f"invalid definition span [{self.start}, {self.end}]"
            )

    def contains(self, offset: int) -> bool:
        return self.start <= offset <= self.end


@dataclass(frozen=True)
class CollectedFile:
    """What the definition collector knows about one test file.

    source_map is a decoded source map JSON object (or its text) mapping
    the checked file to parsed_text; None when both are the same text.
    """

    file: FileRecord
    definitions: tuple[DefinitionSpan, ...]
    parsed_text: str
    source_map: dict[str, Any] | str | None = None


@dataclass(frozen=True)
class FileDefinitions:
    """Cached per-file definition data, including the built index map."""

    file: FileRecord
    definitions: tuple[DefinitionSpan, ...]
    source_map: dict[str, Any] | str | None
    index_map: dict[str, int]

    @property
    def filepath(self) -> str:
        return self.file.filepath


@dataclass(frozen=True)
class ErrorsCache:
    """A published type-check snapshot.

    files holds one record per requested file, in request order;
    source_errors holds diagnostics of files that are not under test.
    """

    files: tuple[FileRecord, ...] = ()
    source_errors: tuple[TypeCheckError, ...] = ()

    @property
    def has_failures(self) -> bool:
        """True if any file failed or any source error was reported."""
        if self.source_errors:
            return True
        return any(
            f.result is not None and f.result.state == TaskState.FAIL
            for f in self.files
        )
