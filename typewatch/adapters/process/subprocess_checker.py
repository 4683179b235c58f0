"""Asyncio subprocess checker adapter.

Implements CheckerProcessPort by running the checker as an asyncio
subprocess and streaming its stdout as decoded text chunks.

The executable is looked up in the project's node_modules/.bin first,
then on PATH.
"""

import asyncio
import codecs
import logging
import os
import shutil
import sys
from collections.abc import AsyncIterator, Sequence
from pathlib import Path

from typewatch.core.errors import CheckerNotFoundError
from typewatch.core.ports import CheckerProcess, CheckerProcessPort

logger = logging.getLogger(__name__)

# npm package providing each checker executable
CHECKER_PACKAGES = {
    "tsc": "typescript",
    "vue-tsc": "vue-tsc",
}


class SubprocessChecker(CheckerProcess):
    """A running checker subprocess."""

    def __init__(self, process: asyncio.subprocess.Process, chunk_size: int = 65536):
        self.process = process
        self.chunk_size = chunk_size

    async def read_chunks(self) -> AsyncIterator[str]:
        stream = self.process.stdout
        if stream is None:
            return
        # incremental decoding keeps multi-byte characters split across reads intact
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            data = await stream.read(self.chunk_size)
            if not data:
                tail = decoder.decode(b"", final=True)
                if tail:
                    yield tail
                break
            text = decoder.decode(data)
            if text:
                yield text

    async def wait(self) -> int:
        return await self.process.wait()

    async def terminate(self) -> None:
        if self.process.returncode is not None:
            return
        try:
            self.process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(self.process.wait(), timeout=5)
        except asyncio.TimeoutError:
            logger.warning(f"Checker process {self.process.pid} did not exit, killing it")
            self.process.kill()
            await self.process.wait()


class SubprocessCheckerAdapter(CheckerProcessPort):
    """Spawns the checker with asyncio.create_subprocess_exec."""

    def __init__(self, merge_stderr: bool = True):
        """Initialize subprocess checker adapter.

        Args:
            merge_stderr: If True, stderr is streamed along with stdout;
                lines that are not diagnostics are skipped by the parser.
        """
        self.merge_stderr = merge_stderr

    def resolve_executable(self, root: str, checker: str) -> str:
        bin_dir = Path(root) / "node_modules" / ".bin"
        names = [f"{checker}.cmd", checker] if sys.platform == "win32" else [checker]
        for name in names:
            candidate = bin_dir / name
            if candidate.is_file():
                return str(candidate)

        found = shutil.which(checker)
        if found:
            return found

        package = CHECKER_PACKAGES.get(checker, checker)
        raise CheckerNotFoundError(
            f"Cannot find '{checker}'. Install the '{package}' package in {root}."
        )

    async def spawn(self, command: Sequence[str], cwd: str) -> SubprocessChecker:
        if not command:
            raise ValueError("command must not be empty")
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=(
                    asyncio.subprocess.STDOUT
                    if self.merge_stderr
                    else asyncio.subprocess.DEVNULL
                ),
                env={**os.environ, "NO_COLOR": "1"},
            )
        except (FileNotFoundError, PermissionError) as e:
            raise CheckerNotFoundError(f"Cannot start '{command[0]}': {e}") from e

        logger.debug(f"Started checker process {process.pid}")
        return SubprocessChecker(process)
