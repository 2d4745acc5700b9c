"""Source-to-class-file resolution."""

from classpick.resolve.resolver import (
    DEFAULT_ARTIFACT_SUFFIX,
    DEFAULT_NESTED_SEPARATOR,
    ArtifactCandidate,
    ArtifactSet,
    Unresolved,
    list_directory_names,
    match_artifact_names,
    resolve_source,
)

__all__ = [
    "DEFAULT_ARTIFACT_SUFFIX",
    "DEFAULT_NESTED_SEPARATOR",
    "ArtifactCandidate",
    "ArtifactSet",
    "Unresolved",
    "list_directory_names",
    "match_artifact_names",
    "resolve_source",
]
