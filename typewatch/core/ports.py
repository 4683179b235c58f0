"""Port interfaces for the typewatch core.

These abstract base classes define the boundaries between the core
correlation logic and external collaborators. Implementations live in
the adapters/ package; in-memory fakes live in tests/fakes/.

Driven Ports (core calls out to adapters):
   - CheckerProcessPort: Locate and spawn the type checker process
   - CheckerConfigPort: Create and remove the temporary checker config
   - DefinitionCollectorPort: Static test/suite definitions of a file
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence

from .models import CollectedFile


class CheckerProcess(ABC):
    """Handle on a running checker process."""

    @abstractmethod
    def read_chunks(self) -> AsyncIterator[str]:
        """Yield decoded stdout text in the order it is received.

        The iterator ends when the process closes its output.
        """

    @abstractmethod
    async def wait(self) -> int:
        """Wait for the process to exit and return its exit status."""

    @abstractmethod
    async def terminate(self) -> None:
        """Stop the process. Safe to call on an exited process."""


class CheckerProcessPort(ABC):
    """Port for starting the external type checker.

    Implementations must handle:
    - Locating the checker executable (project-local install first)
    - Streaming stdout incrementally, without waiting for exit
    """

    @abstractmethod
    def resolve_executable(self, root: str, checker: str) -> str:
        """Return the path of the checker executable.

        Args:
            root: Project root directory.
            checker: Checker name (e.g. "tsc", "vue-tsc").

        Raises:
            CheckerNotFoundError: If the checker is not installed.
        """

    @abstractmethod
    async def spawn(self, command: Sequence[str], cwd: str) -> CheckerProcess:
        """Start the checker.

        Args:
            command: Executable followed by its arguments.
            cwd: Working directory for the process.

        Raises:
            CheckerNotFoundError: If the executable cannot be started.
        """


class CheckerConfigPort(ABC):
    """Port for the temporary checker configuration.

    The session that creates a configuration is responsible for removing it.
    """

    @abstractmethod
    async def locate_or_create(
        self, root: str, tsconfig: str | None, include: Sequence[str]
    ) -> str:
        """Create a temporary configuration for one checker session.

        Args:
            root: Project root directory.
            tsconfig: Explicit base configuration path, or None to look it
                up under root.
            include: Globs of files the checker should check.

        Returns:
            Path of the created configuration file.

        Raises:
            CheckerConfigError: If no base configuration exists or the
                temporary one cannot be written.
        """

    @abstractmethod
    async def remove(self, path: str) -> None:
        """Delete a configuration created by locate_or_create.

        Missing files are ignored.
        """


class DefinitionCollectorPort(ABC):
    """Port for static test definition extraction."""

    @abstractmethod
    async def collect(self, root: str, filepath: str) -> CollectedFile | None:
        """Collect the test and suite definitions of one file.

        Args:
            root: Project root directory.
            filepath: Absolute path of the test file.

        Returns:
            The file record, its definition spans, the text the spans refer
            to and an optional source map; None if the file yielded no
            collectible definitions.
        """
