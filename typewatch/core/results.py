"""Building type-check snapshots from parsed diagnostics.

For every requested test file, each diagnostic becomes a synthetic
TypecheckTask attached to the innermost enclosing test or suite (or to
the file itself), and failures are propagated up the suite hierarchy.
Diagnostics for files that are not under test become source errors.
"""

import copy
import logging
from collections.abc import Mapping, Sequence

from .errors import TypeCheckError
from .models import (
    ErrorsCache,
    FileDefinitions,
    FileRecord,
    ParsedDiagnostic,
    Suite,
    Task,
    TaskResult,
    TaskState,
    TypecheckTask,
)
from .positions import DefinitionLocator, PositionTranslator

logger = logging.getLogger(__name__)


def mark_failed(task: Task) -> None:
    """Mark a task and every ancestor suite as failed.

    Walks the one-way suite back-reference; a task whose mode does not run
    keeps its own mode as state. Marking twice leaves the tree unchanged.
    """
    current: Task | None = task
    while current is not None:
        current.result = TaskResult(state=TaskState.for_mode(current.mode))
        current = current.suite


def fresh_definitions(data: FileDefinitions) -> FileDefinitions:
    """Copy of data whose task tree can be annotated without touching the original.

    The tree and the spans pointing into it are copied together, so spans
    keep pointing at the copied suites. The index map and source map are
    shared.
    """
    file, definitions = copy.deepcopy((data.file, data.definitions))
    return FileDefinitions(
        file=file,
        definitions=definitions,
        source_map=data.source_map,
        index_map=data.index_map,
    )


def owned_typecheck_count(suite: Suite) -> int:
    return sum(1 for t in suite.tasks if isinstance(t, TypecheckTask))


def build_typecheck_task(
    owner: Suite, file: FileRecord, diagnostic: ParsedDiagnostic
) -> TypecheckTask:
    """Create the synthetic task for one diagnostic owned by owner.

    Tasks are named by their 1-based ordinal among the owner's typecheck
    tasks, prefixed with the diagnostic code when there is one.
    """
    ordinal = owned_typecheck_count(owner) + 1
    label = f"type error #{ordinal}"
    if diagnostic.raw.code is not None:
        label = f"TS{diagnostic.raw.code}: {label}"

    state = TaskState.for_mode(owner.mode)
    return TypecheckTask(
        id=f"{owner.id}_typecheck_{ordinal}",
        name=label,
        mode=owner.mode,
        suite=owner,
        file=file,
        result=TaskResult(
            state=state,
            error=diagnostic.error if state == TaskState.FAIL else None,
        ),
    )


class ResultBuilder:
    """Correlates diagnostics with test definitions into an ErrorsCache."""

    def build(
        self,
        diagnostics: Mapping[str | None, Sequence[ParsedDiagnostic]],
        files: Sequence[str],
        definitions: Mapping[str, FileDefinitions],
    ) -> ErrorsCache:
        """Build a snapshot for one completed pass.

        Args:
            diagnostics: Parsed diagnostics keyed by resolved absolute path
                (None for global diagnostics).
            files: Absolute paths of the files under test, in request order.
            definitions: Collected definition data per file under test.

        Returns:
            The snapshot: one file record per requested file, and source
            errors for every diagnostic outside the requested files.
        """
        requested = list(dict.fromkeys(files))
        requested_set = set(requested)
        records: list[FileRecord] = []

        for path in requested:
            data = definitions.get(path)
            if data is None:
                logger.debug(f"No definitions collected for {path}, using a bare file record")
                data = FileDefinitions(
                    file=FileRecord(id=path, name=path, filepath=path),
                    definitions=(),
                    source_map=None,
                    index_map={},
                )
            data = fresh_definitions(data)
            records.append(data.file)

            file_diagnostics = diagnostics.get(path)
            if not file_diagnostics:
                continue
            self._attach(data, file_diagnostics)

        source_errors: list[TypeCheckError] = []
        for path, path_diagnostics in diagnostics.items():
            if path in requested_set:
                continue
            source_errors.extend(d.error for d in path_diagnostics)

        logger.debug(
            f"Built snapshot: {len(records)} files, {len(source_errors)} source errors"
        )
        return ErrorsCache(files=tuple(records), source_errors=tuple(source_errors))

    def _attach(
        self, data: FileDefinitions, diagnostics: Sequence[ParsedDiagnostic]
    ) -> None:
        translator = PositionTranslator(data.source_map)
        locator = DefinitionLocator(data.definitions, data.index_map)
        file = data.file

        for diagnostic in diagnostics:
            position = translator.translate(diagnostic.raw.position)
            span = locator.locate(position)
            owner: Suite = span.task if span is not None else file

            task = build_typecheck_task(owner, file, diagnostic)
            if task.result is not None and task.result.state == TaskState.FAIL:
                mark_failed(owner)
            owner.tasks.append(task)
