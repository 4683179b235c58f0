"""Stdout result reporter.

Prints a published type-check snapshot to the terminal with
human-readable formatting.
"""

import asyncio
import logging

from typewatch.core.errors import TypeCheckError
from typewatch.core.models import ErrorsCache, Suite, Task, TaskState

logger = logging.getLogger(__name__)

_STATE_MARKS = {
    TaskState.FAIL: "x",
    TaskState.PASS: "v",
    TaskState.SKIP: "-",
    TaskState.TODO: "~",
}


class StdoutResultReporter:
    """Prints snapshots to stdout."""

    def __init__(self, verbose: bool = False):
        """Initialize stdout result reporter.

        Args:
            verbose: If True, also list files and suites without failures.
        """
        self.verbose = verbose

    async def report(self, result: ErrorsCache) -> None:
        """Report a published snapshot to stdout."""
        await asyncio.to_thread(print, self.format_report(result))

    async def report_rerun(self) -> None:
        await asyncio.to_thread(print, "Change detected, type checking again...")

    def format_report(self, result: ErrorsCache) -> str:
        lines = ["=" * 80, "TYPE CHECK RESULTS", "=" * 80]

        for file in result.files:
            if not self.verbose and not self._has_failure(file):
                continue
            lines.extend(self._format_task(file, depth=0))

        if result.source_errors:
            lines.extend(["", "-" * 80, "SOURCE ERRORS", "-" * 80])
            for error in result.source_errors:
                lines.append(self._format_error(error))

        lines.extend(["", self._format_summary(result), "=" * 80])
        return "\n".join(lines)

    @staticmethod
    def _has_failure(task: Task) -> bool:
        return task.result is not None and task.result.state == TaskState.FAIL

    def _format_task(self, task: Task, depth: int) -> list[str]:
        indent = "  " * depth
        if task.result is not None:
            state = task.result.state
        elif task.mode.is_running:
            state = TaskState.PASS
        else:
            state = TaskState(task.mode.value)
        lines = [f"{indent}{_STATE_MARKS[state]} {task.name}"]

        if task.result is not None and task.result.error is not None:
            lines.append(f"{indent}    {self._format_error(task.result.error)}")

        if isinstance(task, Suite):
            for child in task.tasks:
                if self.verbose or self._has_failure(child):
                    lines.extend(self._format_task(child, depth + 1))
        return lines

    @staticmethod
    def _format_error(error: TypeCheckError) -> str:
        frame = error.location
        if frame is None:
            return error.message
        if frame.line is None:
            return f"{frame.file}: {error.message}"
        return f"{frame.file}:{frame.line}:{frame.column}: {error.message}"

    def _format_summary(self, result: ErrorsCache) -> str:
        failed = sum(1 for f in result.files if self._has_failure(f))
        return (
            f"Files: {len(result.files)} ({failed} failed), "
            f"source errors: {len(result.source_errors)}"
        )
