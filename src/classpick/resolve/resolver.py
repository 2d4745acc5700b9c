"""Resolve source files to the class files compiled from them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Literal, Sequence

from classpick.errors import ClasspickIOError
from classpick.ingest.discover import SourceFile

LOGGER = logging.getLogger(__name__)

DEFAULT_ARTIFACT_SUFFIX = ".class"
DEFAULT_NESTED_SEPARATOR = "$"

UnresolvedReason = Literal["missing_directory", "no_match", "primary_missing"]
DirectoryListing = Callable[[Path], Sequence[str]]


@dataclass(frozen=True, slots=True)
class ArtifactCandidate:
    """One class file matched to a source file."""

    relative_path: Path
    path: Path
    size_bytes: int
    is_primary: bool


@dataclass(frozen=True, slots=True)
class ArtifactSet:
    """Class files resolved for one source file, primary first."""

    source: SourceFile
    artifacts: tuple[ArtifactCandidate, ...]

    def __post_init__(self) -> None:
        if not self.artifacts:
            raise ValueError(f"ArtifactSet for {self.source.relative_path} must not be empty")

    @property
    def primary(self) -> ArtifactCandidate | None:
        first = self.artifacts[0]
        return first if first.is_primary else None

    def __len__(self) -> int:
        return len(self.artifacts)


@dataclass(frozen=True, slots=True)
class Unresolved:
    """A source file for which no acceptable class file was found."""

    source: SourceFile
    reason: UnresolvedReason


def match_artifact_names(
    names: Iterable[str],
    stem: str,
    *,
    artifact_suffix: str = DEFAULT_ARTIFACT_SUFFIX,
    nested_separator: str = DEFAULT_NESTED_SEPARATOR,
) -> list[str]:
    """Return names matching stem, primary first and nested names in listing order.

    The primary name is ``<stem><suffix>``. Nested names are
    ``<stem><sep><x><suffix>`` for any non-empty ``x``; ``x`` may contain the
    separator again (``Outer$Inner$Deep.class``). Matching is exact and
    case-sensitive.
    """

    primary_name = f"{stem}{artifact_suffix}"
    nested_prefix = f"{stem}{nested_separator}"
    primary: list[str] = []
    nested: list[str] = []
    for name in names:
        if name == primary_name:
            primary.append(name)
            continue
        if not name.endswith(artifact_suffix) or not name.startswith(nested_prefix):
            continue
        inner = name[len(nested_prefix) : len(name) - len(artifact_suffix)]
        if inner:
            nested.append(name)
    return primary + nested


def list_directory_names(directory: Path) -> list[str]:
    """List regular-file names directly inside directory, sorted by name."""

    if not directory.is_dir():
        return []
    try:
        return sorted(child.name for child in directory.iterdir() if child.is_file())
    except OSError as exc:
        raise ClasspickIOError(f"Cannot read class directory {directory}: {exc}", path=directory) from exc


def resolve_source(
    source: SourceFile,
    artifact_root: Path,
    *,
    artifact_suffix: str = DEFAULT_ARTIFACT_SUFFIX,
    nested_separator: str = DEFAULT_NESTED_SEPARATOR,
    require_primary: bool = True,
    listing: DirectoryListing = list_directory_names,
    logger: logging.Logger | None = None,
) -> ArtifactSet | Unresolved:
    """Find the primary and nested class files for one source file."""

    effective_logger = logger or LOGGER
    expected_dir = artifact_root / source.package_dir
    names = listing(expected_dir)
    if not names and not expected_dir.exists():
        effective_logger.debug("resolve.missing_directory source=%s dir=%s", source.relative_path, expected_dir)
        return Unresolved(source=source, reason="missing_directory")

    matched = match_artifact_names(
        names,
        source.stem,
        artifact_suffix=artifact_suffix,
        nested_separator=nested_separator,
    )
    if not matched:
        return Unresolved(source=source, reason="no_match")

    primary_name = f"{source.stem}{artifact_suffix}"
    has_primary = matched[0] == primary_name
    if require_primary and not has_primary:
        effective_logger.debug(
            "resolve.primary_missing source=%s nested=%s",
            source.relative_path,
            len(matched),
        )
        return Unresolved(source=source, reason="primary_missing")

    candidates: list[ArtifactCandidate] = []
    for name in matched:
        path = expected_dir / name
        try:
            size_bytes = path.stat().st_size
        except OSError as exc:
            raise ClasspickIOError(f"Cannot stat class file {path}: {exc}", path=path) from exc
        candidates.append(
            ArtifactCandidate(
                relative_path=source.package_dir / name,
                path=path,
                size_bytes=size_bytes,
                is_primary=name == primary_name,
            )
        )
    return ArtifactSet(source=source, artifacts=tuple(candidates))
