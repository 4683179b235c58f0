"""Unit tests for the Typechecker session controller.

The checker process, its configuration and definition collection are
replaced by the in-memory fakes, so these tests drive the session purely
through scripted output chunks.
"""

import pytest

from typewatch.core.errors import (
    CheckerConfigError,
    CheckerNotFoundError,
    CheckerProcessError,
)
from typewatch.core.markers import WatchMarkers
from typewatch.core.models import (
    ErrorsCache,
    SessionOptions,
    Suite,
    TaskState,
    TypecheckTask,
)
from typewatch.core.typechecker import SessionState, Typechecker
from typewatch.tests.fakes import (
    FakeCheckerConfigPort,
    FakeCheckerProcessPort,
    FakeDefinitionCollector,
    build_sample_file,
)

ROOT = "/project"
SAMPLE = "/project/src/sample.test-d.ts"

ADDS_ERROR = (
    "src/sample.test-d.ts(5,5): error TS2344: "
    "Type 'number' does not satisfy the constraint 'string'.\n"
)
FILE_ERROR = "src/sample.test-d.ts(11,1): error TS2344: Type 'string' is not 'number'.\n"
SOURCE_ERROR = "src/utils.ts(2,10): error TS2322: Type 'string' is not assignable to type 'number'.\n"


# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def process_port() -> FakeCheckerProcessPort:
    return FakeCheckerProcessPort()


@pytest.fixture
def config_port() -> FakeCheckerConfigPort:
    return FakeCheckerConfigPort()


@pytest.fixture
def collector() -> FakeDefinitionCollector:
    """Collector knowing only the sample file."""
    fake = FakeDefinitionCollector()
    fake.register(SAMPLE, lambda: build_sample_file(SAMPLE))
    return fake


@pytest.fixture
def make_checker(process_port, config_port, collector):
    """Factory building a Typechecker over the fakes."""

    def _make(files=("src/sample.test-d.ts",), **options) -> Typechecker:
        return Typechecker(
            options=SessionOptions(root=ROOT, **options),
            files=files,
            process_port=process_port,
            config_port=config_port,
            collector=collector,
        )

    return _make


def _typecheck_tasks(suite: Suite) -> list[TypecheckTask]:
    found = []
    for task in suite.tasks:
        if isinstance(task, TypecheckTask):
            found.append(task)
        elif isinstance(task, Suite):
            found.extend(_typecheck_tasks(task))
    return found


# ============================================================================
# One-shot mode
# ============================================================================


@pytest.mark.asyncio
async def test_one_shot_publishes_single_snapshot(make_checker, process_port, config_port) -> None:
    process_port.chunks = [ADDS_ERROR, SOURCE_ERROR]
    process_port.exit_code = 2
    checker = make_checker()
    published: list[ErrorsCache] = []
    checker.on_parse_end(published.append)

    await checker.start()

    assert len(published) == 1
    result = published[0]
    assert checker.get_result() is result
    assert checker.state == SessionState.DONE
    assert [f.filepath for f in result.files] == [SAMPLE]
    assert [t.suite.name for t in _typecheck_tasks(result.files[0])] == ["adds"]
    assert result.files[0].result.state == TaskState.FAIL
    assert [e.message for e in result.source_errors] == [
        "TS2322: Type 'string' is not assignable to type 'number'."
    ]
    assert config_port.live == [config_port.path]


@pytest.mark.asyncio
async def test_one_shot_output_split_across_chunks(make_checker, process_port) -> None:
    """A diagnostic line split between two reads is still parsed."""
    process_port.chunks = [ADDS_ERROR[:20], ADDS_ERROR[20:]]
    checker = make_checker()

    await checker.start()

    assert len(_typecheck_tasks(checker.get_result().files[0])) == 1


@pytest.mark.asyncio
async def test_clean_output_reports_passing_files(make_checker, process_port) -> None:
    process_port.exit_code = 0
    checker = make_checker()

    await checker.start()

    result = checker.get_result()
    assert [f.filepath for f in result.files] == [SAMPLE]
    assert result.files[0].result is None
    assert result.has_failures is False


@pytest.mark.asyncio
async def test_parse_start_fires_before_parse_end(make_checker, process_port) -> None:
    process_port.chunks = [ADDS_ERROR]
    checker = make_checker()
    events: list[str] = []

    async def on_start() -> None:
        events.append("start")

    def on_end(result: ErrorsCache) -> None:
        events.append("end")

    checker.on_parse_start(on_start)
    checker.on_parse_end(on_end)

    await checker.start()

    assert events == ["start", "end"]


@pytest.mark.asyncio
async def test_builds_checker_command(make_checker, process_port, config_port) -> None:
    checker = make_checker(watch=True, allow_js=True, include=["**/*.test-d.ts"])

    await checker.start()

    assert process_port.last_command == [
        "tsc",
        "--noEmit",
        "--pretty",
        "false",
        "-p",
        config_port.path,
        "--watch",
        "--allowJs",
        "--checkJs",
    ]
    assert process_port.spawn_calls[0][1] == ROOT
    assert config_port.include_calls == [["**/*.test-d.ts"]]


@pytest.mark.asyncio
async def test_one_shot_command_has_no_watch_flag(make_checker, process_port, config_port) -> None:
    checker = make_checker(checker="vue-tsc")

    await checker.start()

    assert process_port.last_command == [
        "vue-tsc",
        "--noEmit",
        "--pretty",
        "false",
        "-p",
        config_port.path,
    ]


@pytest.mark.asyncio
async def test_cannot_start_twice(make_checker) -> None:
    checker = make_checker()
    await checker.start()

    with pytest.raises(RuntimeError, match="done"):
        await checker.start()


@pytest.mark.asyncio
async def test_duplicate_requested_files_are_reported_once(make_checker, collector) -> None:
    checker = make_checker(files=("src/sample.test-d.ts", SAMPLE, "./src/sample.test-d.ts"))

    await checker.start()

    assert [f.filepath for f in checker.get_result().files] == [SAMPLE]
    assert collector.collect_calls == [SAMPLE]


# ============================================================================
# Failure paths
# ============================================================================


@pytest.mark.asyncio
async def test_missing_checker_fails_before_config(make_checker, process_port, config_port) -> None:
    process_port.installed = False
    checker = make_checker()
    published: list[ErrorsCache] = []
    checker.on_parse_end(published.append)

    with pytest.raises(CheckerNotFoundError):
        await checker.start()

    assert config_port.created == []
    assert process_port.spawn_calls == []
    assert published == []
    assert checker.state == SessionState.CLOSED


@pytest.mark.asyncio
async def test_config_failure_does_not_spawn(make_checker, process_port, config_port) -> None:
    config_port.should_fail = True
    checker = make_checker()

    with pytest.raises(CheckerConfigError):
        await checker.start()

    assert process_port.spawn_calls == []
    assert checker.get_result() == ErrorsCache()


@pytest.mark.asyncio
async def test_spawn_failure_removes_config(make_checker, process_port, config_port) -> None:
    process_port.should_fail_spawn = True
    checker = make_checker()

    with pytest.raises(CheckerNotFoundError):
        await checker.start()

    assert config_port.created == [config_port.path]
    assert config_port.live == []


@pytest.mark.asyncio
async def test_unexpected_exit_without_diagnostics_raises(make_checker, process_port, config_port) -> None:
    process_port.chunks = ["sh: 1: tsc: not found\n"]
    process_port.exit_code = 127
    checker = make_checker()
    published: list[ErrorsCache] = []
    checker.on_parse_end(published.append)

    with pytest.raises(CheckerProcessError, match="status 127"):
        await checker.start()

    assert published == []
    assert checker.get_result() == ErrorsCache()
    assert config_port.live == []


@pytest.mark.asyncio
async def test_unexpected_exit_with_diagnostics_still_publishes(make_checker, process_port) -> None:
    process_port.chunks = [ADDS_ERROR]
    process_port.exit_code = 134
    checker = make_checker()

    await checker.start()

    assert checker.get_result().has_failures is True


@pytest.mark.asyncio
async def test_failing_callback_tears_session_down(make_checker, process_port, config_port) -> None:
    checker = make_checker()

    def on_end(result: ErrorsCache) -> None:
        raise ValueError("reporter broke")

    checker.on_parse_end(on_end)

    with pytest.raises(ValueError, match="reporter broke"):
        await checker.start()

    assert checker.state == SessionState.CLOSED
    assert config_port.live == []


# ============================================================================
# Watch mode
# ============================================================================


@pytest.mark.asyncio
async def test_watch_rerun_then_pass_complete(make_checker, process_port, collector) -> None:
    """A rerun pass split over two chunks publishes exactly one snapshot."""
    process_port.chunks = [
        "12:00:00 AM - File change detected. Starting incremental compilation...\n"
        + ADDS_ERROR
        + FILE_ERROR,
        "12:00:01 AM - Found 2 errors. Watching for file changes.\n",
    ]
    checker = make_checker(watch=True)
    reruns: list[bool] = []
    published: list[ErrorsCache] = []
    checker.on_watcher_rerun(lambda: reruns.append(True))
    checker.on_parse_end(published.append)

    await checker.start()

    assert reruns == [True]
    assert len(published) == 1
    assert len(_typecheck_tasks(published[0].files[0])) == 2
    assert checker.get_result() is published[0]


@pytest.mark.asyncio
async def test_watch_publishes_every_pass(make_checker, process_port, collector) -> None:
    process_port.chunks = [
        "12:00:00 AM - Starting compilation in watch mode...\n\n",
        ADDS_ERROR,
        "12:00:02 AM - Found 1 error. Watching for file changes.\n",
        "12:00:05 AM - File change detected. Starting incremental compilation...\n",
        "12:00:06 AM - Found 0 errors. Watching for file changes.\n",
        "12:00:09 AM - File change detected. Starting incremental compilation...\n",
        FILE_ERROR + SOURCE_ERROR,
        "12:00:10 AM - Found 2 errors. Watching for file changes.\n",
    ]
    checker = make_checker(watch=True)
    reruns: list[bool] = []
    published: list[ErrorsCache] = []

    async def on_rerun() -> None:
        reruns.append(True)

    checker.on_watcher_rerun(on_rerun)
    checker.on_parse_end(published.append)

    await checker.start()

    assert len(reruns) == 2
    assert [r.has_failures for r in published] == [True, False, True]
    assert len(published[2].source_errors) == 1
    # definitions are collected again after every rerun
    assert collector.collect_calls == [SAMPLE, SAMPLE, SAMPLE]
    assert checker.state == SessionState.DONE


@pytest.mark.asyncio
async def test_watch_rerun_clears_published_snapshot(make_checker, process_port) -> None:
    process_port.chunks = [
        ADDS_ERROR,
        "12:00:01 AM - Found 1 error. Watching for file changes.\n",
        "12:00:05 AM - File change detected. Starting incremental compilation...\n",
    ]
    checker = make_checker(watch=True)
    seen_at_rerun: list[ErrorsCache] = []
    checker.on_watcher_rerun(lambda: seen_at_rerun.append(checker.get_result()))

    await checker.start()

    assert seen_at_rerun == [ErrorsCache()]
    assert checker.get_result() == ErrorsCache()


@pytest.mark.asyncio
async def test_watch_custom_markers(make_checker, process_port) -> None:
    process_port.chunks = [
        "== restarting ==\n" + ADDS_ERROR,
        "== pass done ==\n",
    ]
    checker = make_checker(
        watch=True,
        markers=WatchMarkers.from_patterns(r"== restarting ==", r"== pass done =="),
    )
    reruns: list[bool] = []
    published: list[ErrorsCache] = []
    checker.on_watcher_rerun(lambda: reruns.append(True))
    checker.on_parse_end(published.append)

    await checker.start()

    assert reruns == [True]
    assert len(published) == 1


@pytest.mark.asyncio
async def test_watch_pass_keeps_earlier_snapshot_intact(make_checker, process_port, collector) -> None:
    """Consecutive passes without a rerun reuse definitions but not results."""
    process_port.chunks = [
        ADDS_ERROR + "12:00:01 AM - Found 1 error. Watching for file changes.\n",
        ADDS_ERROR + "12:00:03 AM - Found 1 error. Watching for file changes.\n",
    ]
    checker = make_checker(watch=True)
    published: list[ErrorsCache] = []
    checker.on_parse_end(published.append)

    await checker.start()

    assert len(published) == 2
    assert collector.collect_calls == [SAMPLE]
    assert published[0].files[0] is not published[1].files[0]
    for result in published:
        tasks = _typecheck_tasks(result.files[0])
        assert [t.name for t in tasks] == ["TS2344: type error #1"]


@pytest.mark.asyncio
async def test_watch_pass_then_rerun_in_one_chunk(make_checker, process_port, collector) -> None:
    process_port.chunks = [
        ADDS_ERROR
        + "12:00:01 AM - Found 1 error. Watching for file changes.\n"
        + "12:00:05 AM - File change detected. Starting incremental compilation...\n",
        ADDS_ERROR + "12:00:06 AM - Found 1 error. Watching for file changes.\n",
    ]
    checker = make_checker(watch=True)
    events: list[str] = []
    published: list[ErrorsCache] = []

    def on_end(result: ErrorsCache) -> None:
        events.append("end")
        published.append(result)

    checker.on_watcher_rerun(lambda: events.append("rerun"))
    checker.on_parse_end(on_end)

    await checker.start()

    assert events == ["end", "rerun", "end"]
    assert [len(_typecheck_tasks(r.files[0])) for r in published] == [1, 1]
    assert collector.collect_calls == [SAMPLE, SAMPLE]
    assert checker.get_result() is published[1]


@pytest.mark.asyncio
async def test_watch_diagnostics_after_pass_marker(make_checker, process_port) -> None:
    """Diagnostics trailing the pass marker belong to that pass."""
    process_port.chunks = [
        "12:00:00 AM - File change detected. Starting incremental compilation...\n",
        "12:00:01 AM - Found 2 errors. Watching for file changes.\n" + ADDS_ERROR + FILE_ERROR,
        "12:00:05 AM - File change detected. Starting incremental compilation...\n",
    ]
    checker = make_checker(watch=True)
    reruns: list[bool] = []
    published: list[ErrorsCache] = []
    checker.on_watcher_rerun(lambda: reruns.append(True))
    checker.on_parse_end(published.append)

    await checker.start()

    assert len(reruns) == 2
    assert len(published) == 1
    assert len(_typecheck_tasks(published[0].files[0])) == 2
    assert checker.get_result() == ErrorsCache()


@pytest.mark.asyncio
async def test_stop_during_watch_publishes_nothing_more(make_checker, process_port, config_port) -> None:
    process_port.chunks = [
        ADDS_ERROR,
        "12:00:01 AM - Found 1 error. Watching for file changes.\n",
        "12:00:05 AM - File change detected. Starting incremental compilation...\n",
        "12:00:06 AM - Found 0 errors. Watching for file changes.\n",
    ]
    checker = make_checker(watch=True)
    published: list[ErrorsCache] = []

    async def on_end(result: ErrorsCache) -> None:
        published.append(result)
        await checker.stop()

    checker.on_parse_end(on_end)

    await checker.start()

    assert len(published) == 1
    assert checker.state == SessionState.CLOSED
    assert process_port.processes[0].terminated is True
    assert process_port.processes[0].chunks_read == 2
    assert config_port.live == []


# ============================================================================
# Teardown and accessors
# ============================================================================


@pytest.mark.asyncio
async def test_clean_without_config_is_safe(make_checker, config_port) -> None:
    checker = make_checker()

    await checker.clean()
    await checker.stop()
    await checker.stop()

    assert config_port.removed == []
    assert checker.state == SessionState.CLOSED


@pytest.mark.asyncio
async def test_clean_removes_config_once(make_checker, config_port) -> None:
    checker = make_checker()
    await checker.start()

    await checker.clean()
    await checker.clean()

    assert config_port.removed == [config_port.path]


@pytest.mark.asyncio
async def test_get_test_files_strips_results(make_checker, process_port) -> None:
    process_port.chunks = [ADDS_ERROR]
    checker = make_checker()
    await checker.start()

    records = checker.get_test_files()

    assert [r.filepath for r in records] == [SAMPLE]
    assert records[0].result is None
    assert records[0] is not checker.get_result().files[0]
    assert checker.get_result().files[0].result.state == TaskState.FAIL


@pytest.mark.asyncio
async def test_prepare_results_collects_lazily(make_checker, collector) -> None:
    checker = make_checker()

    result = await checker.prepare_results(FILE_ERROR)

    assert collector.collect_calls == [SAMPLE]
    assert len(_typecheck_tasks(result.files[0])) == 1
    assert checker.get_test_files()[0].filepath == SAMPLE
