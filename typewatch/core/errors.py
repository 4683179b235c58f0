"""Error types for the typewatch core.

TypeCheckError is the user-visible payload of a failed typecheck task.
It is built, never raised, so it carries no traceback: its only
meaningful location is the diagnostic's own position, attached
explicitly as a single ParsedStackFrame.

TypecheckerError and its subclasses are fatal session failures that
propagate out of Typechecker.start().
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ParsedStackFrame:
    """A single source location attached to a type error."""

    file: str
    line: int | None
    column: int | None
    method: str = ""


class TypeCheckError(Exception):
    """A diagnostic reported by the type checker."""

    def __init__(self, message: str, stacks: tuple[ParsedStackFrame, ...] = ()):
        super().__init__(message)
        self.message = message
        self.stacks = tuple(stacks)

    @property
    def name(self) -> str:
        return "TypeCheckError"

    @property
    def location(self) -> ParsedStackFrame | None:
        """The diagnostic's frame, if it has one."""
        return self.stacks[0] if self.stacks else None

    def __repr__(self) -> str:
        return f"TypeCheckError({self.message!r}, stacks={self.stacks!r})"


class TypecheckerError(Exception):
    """Base class for fatal session errors."""


class CheckerNotFoundError(TypecheckerError):
    """The checker executable could not be found or started."""


class CheckerConfigError(TypecheckerError):
    """The checker configuration could not be located or written."""


class CheckerProcessError(TypecheckerError):
    """The checker process failed without reporting diagnostics."""
