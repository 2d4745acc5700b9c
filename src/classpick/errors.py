"""Error taxonomy for classpick runs."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from classpick.resolve.resolver import Unresolved


class ClasspickError(Exception):
    """Base class for all classpick failures."""


class ClasspickConfigError(ClasspickError, ValueError):
    """Raised before any work starts when input/output paths are unusable."""


class ClasspickIOError(ClasspickError, OSError):
    """Raised when a directory or file cannot be read or written."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class UnresolvedSourcesError(ClasspickError):
    """Raised when one or more source files have no matching class file."""

    def __init__(self, unresolved: Sequence["Unresolved"]) -> None:
        self.unresolved = tuple(unresolved)
        listed = ", ".join(item.source.relative_path.as_posix() for item in self.unresolved)
        super().__init__(f"{len(self.unresolved)} source file(s) have no matching class file: {listed}")


class MalformedHeaderError(ClasspickError):
    """Raised when class files fail the header check under the abort policy."""

    def __init__(self, malformed: Sequence[tuple[Path, str]]) -> None:
        self.malformed = tuple(malformed)
        listed = "; ".join(f"{path.as_posix()} ({reason})" for path, reason in self.malformed)
        super().__init__(f"{len(self.malformed)} class file(s) have a malformed header: {listed}")
