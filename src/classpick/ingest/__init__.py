"""Ingestion package for source-tree enumeration."""

from classpick.ingest.discover import (
    DEFAULT_SOURCE_SUFFIX,
    AuxiliaryFile,
    DiscoveredTree,
    SourceFile,
    discover_tree,
    is_source_file,
    iter_tree_files,
)

__all__ = [
    "DEFAULT_SOURCE_SUFFIX",
    "AuxiliaryFile",
    "DiscoveredTree",
    "SourceFile",
    "discover_tree",
    "is_source_file",
    "iter_tree_files",
]
