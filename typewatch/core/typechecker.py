"""Type-check session controller.

Owns the checker process lifecycle, accumulates its streamed output,
detects watch-mode pass boundaries and publishes immutable snapshots
built by the ResultBuilder.

State transitions:
    IDLE -> STARTING -> RUNNING -> DONE     (one-shot)
    IDLE -> STARTING -> RUNNING             (watch, until torn down)
    any  -> CLOSED                          (stop() or fatal error)
"""

import asyncio
import dataclasses
import inspect
import logging
import os
from collections.abc import Awaitable, Callable, Sequence
from enum import Enum
from typing import Any

from .diagnostics import parse_diagnostics, resolve_diagnostics, resolve_path
from .errors import CheckerProcessError
from .markers import WatchMarkers
from .models import (
    ErrorsCache,
    FileDefinitions,
    FileRecord,
    ParsedDiagnostic,
    SessionOptions,
)
from .ports import (
    CheckerConfigPort,
    CheckerProcess,
    CheckerProcessPort,
    DefinitionCollectorPort,
)
from .positions import build_index_map
from .results import ResultBuilder

logger = logging.getLogger(__name__)

Callback = Callable[..., Awaitable[None] | None]

# tsc exits with 1 or 2 when it reported diagnostics
CHECKER_EXIT_CODES = frozenset({0, 1, 2})


class SessionState(Enum):
    """Lifecycle of a type-check session."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    DONE = "done"
    CLOSED = "closed"


async def _notify(callback: Callback | None, *args: Any) -> None:
    """Invoke an optional sync or async callback and wait for it."""
    if callback is None:
        return
    outcome = callback(*args)
    if inspect.isawaitable(outcome):
        await outcome


class Typechecker:
    """Runs the type checker and reports its diagnostics as test results."""

    def __init__(
        self,
        options: SessionOptions,
        files: Sequence[str],
        process_port: CheckerProcessPort,
        config_port: CheckerConfigPort,
        collector: DefinitionCollectorPort,
        markers: WatchMarkers | None = None,
        builder: ResultBuilder | None = None,
    ):
        """Initialize a session.

        Args:
            options: Session options.
            files: Test files to report on, absolute or relative to root.
            process_port: Spawns the checker process.
            config_port: Creates and removes the temporary checker config.
            collector: Collects test definitions per file.
            markers: Watch-mode pass boundary policy (defaults to the
                patterns in options).
            builder: Snapshot builder.
        """
        self.options = options
        self.root = os.path.abspath(options.root)
        self.files = list(dict.fromkeys(resolve_path(self.root, f) for f in files))
        self.process_port = process_port
        self.config_port = config_port
        self.collector = collector
        self.markers = markers or options.markers
        self.builder = builder or ResultBuilder()

        self.state = SessionState.IDLE
        self._on_parse_start: Callback | None = None
        self._on_parse_end: Callback | None = None
        self._on_watcher_rerun: Callback | None = None

        self._result = ErrorsCache()
        self._tests: dict[str, FileDefinitions] | None = None
        self._tmp_config_path: str | None = None
        self._process: CheckerProcess | None = None
        self._output = ""
        self._rerun_triggered = False

    def on_parse_start(self, fn: Callback) -> None:
        self._on_parse_start = fn

    def on_parse_end(self, fn: Callback) -> None:
        self._on_parse_end = fn

    def on_watcher_rerun(self, fn: Callback) -> None:
        self._on_watcher_rerun = fn

    async def collect_file_tests(self, filepath: str) -> FileDefinitions | None:
        collected = await self.collector.collect(self.root, filepath)
        if collected is None:
            return None
        return FileDefinitions(
            file=collected.file,
            definitions=tuple(collected.definitions),
            source_map=collected.source_map,
            index_map=build_index_map(collected.parsed_text),
        )

    async def collect_tests(self) -> dict[str, FileDefinitions]:
        """Collect definitions of every requested file concurrently.

        The cache is replaced only once all files have been collected.
        """
        collected = await asyncio.gather(
            *(self.collect_file_tests(filepath) for filepath in self.files)
        )
        tests = {
            filepath: data
            for filepath, data in zip(self.files, collected)
            if data is not None
        }
        self._tests = tests
        logger.debug(f"Collected definitions for {len(tests)}/{len(self.files)} files")
        return tests

    def parse_output(self, output: str) -> dict[str | None, list[ParsedDiagnostic]]:
        return resolve_diagnostics(parse_diagnostics(output), self.root)

    async def prepare_results(self, output: str) -> ErrorsCache:
        """Run the parse-and-build pipeline over one pass of output."""
        return await self._build(self.parse_output(output))

    async def _build(
        self, diagnostics: dict[str | None, list[ParsedDiagnostic]]
    ) -> ErrorsCache:
        tests = self._tests
        if tests is None:
            tests = await self.collect_tests()
        return self.builder.build(diagnostics, self.files, tests)

    def build_command(self, executable: str, config_path: str) -> list[str]:
        command = [executable, "--noEmit", "--pretty", "false", "-p", config_path]
        # the checker's own watcher is faster than restarting it
        if self.options.watch:
            command.append("--watch")
        if self.options.allow_js:
            command.extend(["--allowJs", "--checkJs"])
        return command

    async def clean(self) -> None:
        """Remove the temporary checker configuration, if one was created."""
        path, self._tmp_config_path = self._tmp_config_path, None
        if path:
            await self.config_port.remove(path)

    async def stop(self) -> None:
        """Tear the session down.

        Terminates the checker process and removes the temporary
        configuration. Nothing is published afterwards.
        """
        if self.state is SessionState.CLOSED:
            await self.clean()
            return

        logger.info("Stopping type-check session...")
        self.state = SessionState.CLOSED
        process, self._process = self._process, None
        try:
            if process is not None:
                await process.terminate()
        finally:
            await self.clean()

    async def start(self) -> None:
        """Start the checker and report its results.

        In one-shot mode, returns once the snapshot is published. In watch
        mode, returns only when the checker's output ends.

        Raises:
            CheckerNotFoundError: If the checker is not installed.
            CheckerConfigError: If the checker configuration is unusable.
            CheckerProcessError: If the checker failed without diagnostics.
            RuntimeError: If the session was already started.
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"Cannot start a session in {self.state.value} state")

        self.state = SessionState.STARTING
        checker = self.options.checker
        try:
            executable = self.process_port.resolve_executable(self.root, checker)
            self._tmp_config_path = await self.config_port.locate_or_create(
                self.root, self.options.tsconfig, self.options.include
            )
            command = self.build_command(executable, self._tmp_config_path)
            logger.info(f"Starting {checker}: {' '.join(command)}")
            self._process = await self.process_port.spawn(command, cwd=self.root)
        except Exception as e:
            logger.error(f"Failed to start {checker}: {e}", exc_info=True)
            await self.stop()
            raise

        self.state = SessionState.RUNNING
        process = self._process
        try:
            await _notify(self._on_parse_start)
            if self.options.watch:
                await self._run_watch(process)
            else:
                await self._run_once(process)
        except asyncio.CancelledError:
            await self.stop()
            raise
        except Exception as e:
            logger.error(f"Type-check session failed: {e}", exc_info=True)
            await self.stop()
            raise

    async def _run_once(self, process: CheckerProcess) -> None:
        chunks = [chunk async for chunk in process.read_chunks()]
        exit_code = await process.wait()
        self._process = None
        if self.state is SessionState.CLOSED:
            return

        output = "".join(chunks)
        diagnostics = self.parse_output(output)
        if exit_code not in CHECKER_EXIT_CODES and not diagnostics:
            raise CheckerProcessError(
                f"{self.options.checker} exited with status {exit_code}: "
                f"{output.strip()[:500]}"
            )

        result = await self._build(diagnostics)
        if self.state is SessionState.CLOSED:
            return
        self._publish(result)
        self.state = SessionState.DONE
        await _notify(self._on_parse_end, result)

    async def _run_watch(self, process: CheckerProcess) -> None:
        async for chunk in process.read_chunks():
            if self.state is SessionState.CLOSED:
                break
            await self.handle_watch_output(chunk)

        if self.state is not SessionState.CLOSED:
            exit_code = await process.wait()
            self._process = None
            logger.warning(f"{self.options.checker} watcher exited with status {exit_code}")
            self.state = SessionState.DONE

    async def handle_watch_output(self, chunk: str) -> None:
        """Feed one chunk of watch-mode output.

        Markers are handled in the order they appear in the buffer. A
        rerun marker clears the published snapshot and the cached
        definitions once per pass. A pass-complete marker builds and
        publishes a snapshot from the buffer up to the next rerun marker
        (or its end); the rest stays buffered for the next pass.
        """
        self._output += chunk

        while self.state is not SessionState.CLOSED:
            rerun = None
            if not self._rerun_triggered:
                rerun = self.markers.find_rerun(self._output)
            done = self.markers.find_pass_complete(self._output)

            if rerun is not None and (done is None or rerun.start() < done.start()):
                await self._handle_rerun()
                continue
            if done is None:
                return

            next_rerun = self.markers.find_rerun(self._output, done.end())
            cut = next_rerun.start() if next_rerun is not None else len(self._output)
            output, self._output = self._output[:cut], self._output[cut:]
            self._rerun_triggered = False
            await self._complete_pass(output)

    async def _handle_rerun(self) -> None:
        self._rerun_triggered = True
        logger.info("Checker rerun detected, dropping collected tests")
        self._result = ErrorsCache()
        # test structure might have changed
        self._tests = None
        await _notify(self._on_watcher_rerun)

    async def _complete_pass(self, output: str) -> None:
        result = await self.prepare_results(output)
        if self.state is SessionState.CLOSED:
            return
        self._publish(result)
        await _notify(self._on_parse_end, result)

    def _publish(self, result: ErrorsCache) -> None:
        self._result = result
        logger.info(
            f"Type-check pass complete: {len(result.files)} files, "
            f"{len(result.source_errors)} source errors"
        )

    def get_result(self) -> ErrorsCache:
        return self._result

    def get_test_files(self) -> list[FileRecord]:
        """Collected file records with their results stripped."""
        return [
            dataclasses.replace(
                data.file, result=None, file=None, tasks=list(data.file.tasks)
            )
            for data in (self._tests or {}).values()
        ]
