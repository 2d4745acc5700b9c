"""Discover source and auxiliary files under a source tree."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterator

from classpick.errors import ClasspickIOError

LOGGER = logging.getLogger(__name__)

DEFAULT_SOURCE_SUFFIX = ".java"


@dataclass(frozen=True, slots=True)
class SourceFile:
    """A source file that must be backed by at least one class file."""

    relative_path: Path
    path: Path

    @property
    def package_dir(self) -> Path:
        return self.relative_path.parent

    @property
    def stem(self) -> str:
        return self.relative_path.stem


@dataclass(frozen=True, slots=True)
class AuxiliaryFile:
    """A non-source file that is copied verbatim."""

    relative_path: Path
    path: Path
    size_bytes: int


@dataclass(frozen=True, slots=True)
class DiscoveredTree:
    """Source tree split into source and auxiliary files, in enumeration order."""

    root: Path
    sources: tuple[SourceFile, ...]
    auxiliaries: tuple[AuxiliaryFile, ...]


def is_source_file(path: Path, source_suffix: str = DEFAULT_SOURCE_SUFFIX) -> bool:
    """Return True when the file name carries the source-language suffix (case-sensitive)."""

    return path.suffix == source_suffix


def _sorted_entries(directory: Path) -> list[os.DirEntry[str]]:
    try:
        with os.scandir(directory) as entries:
            return sorted(entries, key=lambda entry: entry.name)
    except OSError as exc:
        raise ClasspickIOError(f"Cannot read directory {directory}: {exc}", path=directory) from exc


def iter_tree_files(
    root: Path,
    logger: logging.Logger | None = None,
) -> Iterator[tuple[Path, Path]]:
    """Yield (relative_path, absolute_path) for every regular file under root.

    Entries are visited depth-first in name order, so two walks over the same
    filesystem snapshot produce the same sequence. Each call starts a fresh walk.
    Directory symlinks are not followed. An entry that cannot be stat-ed is
    logged and skipped; a directory that cannot be listed raises ClasspickIOError.
    """

    effective_logger = logger or LOGGER
    yield from _walk(root.resolve(), PurePosixPath(), effective_logger)


def _walk(
    directory: Path,
    relative_dir: PurePosixPath,
    logger: logging.Logger,
) -> Iterator[tuple[Path, Path]]:
    for entry in _sorted_entries(directory):
        relative = relative_dir / entry.name
        try:
            is_directory = entry.is_dir(follow_symlinks=False)
            is_regular = not is_directory and entry.is_file()
        except OSError as exc:
            logger.warning("discover.entry_unreadable path=%s error=%s", entry.path, exc)
            continue
        if is_directory:
            yield from _walk(Path(entry.path), relative, logger)
        elif is_regular:
            yield Path(relative), Path(entry.path)
        else:
            logger.debug("discover.skip_non_regular path=%s", entry.path)


def discover_tree(
    root: Path,
    source_suffix: str = DEFAULT_SOURCE_SUFFIX,
    logger: logging.Logger | None = None,
) -> DiscoveredTree:
    """Enumerate root and classify each file as source or auxiliary."""

    effective_logger = logger or LOGGER
    sources: list[SourceFile] = []
    auxiliaries: list[AuxiliaryFile] = []
    for relative_path, path in iter_tree_files(root, logger=effective_logger):
        if is_source_file(relative_path, source_suffix):
            sources.append(SourceFile(relative_path=relative_path, path=path))
            continue
        try:
            size_bytes = path.stat().st_size
        except OSError as exc:
            raise ClasspickIOError(f"Cannot stat auxiliary file {path}: {exc}", path=path) from exc
        auxiliaries.append(AuxiliaryFile(relative_path=relative_path, path=path, size_bytes=size_bytes))

    effective_logger.info(
        "discover.summary root=%s sources=%s auxiliaries=%s",
        root,
        len(sources),
        len(auxiliaries),
    )
    return DiscoveredTree(root=root.resolve(), sources=tuple(sources), auxiliaries=tuple(auxiliaries))
