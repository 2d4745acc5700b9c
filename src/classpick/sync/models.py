"""Typed records for sync runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal, Mapping

from classpick.classfile.header import has_multiple_versions
from classpick.config import MalformedHeaderPolicy
from classpick.errors import UnresolvedSourcesError
from classpick.resolve.resolver import Unresolved

SyncStatus = Literal["SUCCESS", "ABORTED"]


@dataclass(frozen=True, slots=True)
class SyncRequest:
    """The three directories a sync run works against."""

    source_dir: Path
    class_dir: Path
    output_dir: Path


@dataclass(frozen=True, slots=True)
class SyncRunOptions:
    """Runtime options for one sync run."""

    dry_run: bool = False
    require_primary: bool = True
    malformed_header_policy: MalformedHeaderPolicy = "abort"
    progress_every: int = 100


@dataclass(frozen=True, slots=True)
class AuxiliaryCopyRecord:
    """One auxiliary file copied in the first phase."""

    relative_path: Path
    size_bytes: int


@dataclass(frozen=True, slots=True)
class ArtifactCopyRecord:
    """One class file copied in the second phase."""

    source_path: Path
    artifact_path: Path
    size_bytes: int
    version: str
    major: int | None
    minor: int | None
    is_primary: bool


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Final counters of a sync run."""

    source_count: int
    artifact_count: int
    auxiliary_count: int
    version_counts: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "version_counts", MappingProxyType(dict(self.version_counts)))

    @property
    def copied_total(self) -> int:
        return self.artifact_count + self.auxiliary_count

    @property
    def multiple_versions(self) -> bool:
        return has_multiple_versions(self.version_counts)

    def as_dict(self) -> dict[str, Any]:
        return {
            "source_count": self.source_count,
            "artifact_count": self.artifact_count,
            "auxiliary_count": self.auxiliary_count,
            "copied_total": self.copied_total,
            "version_counts": dict(self.version_counts),
            "multiple_versions": self.multiple_versions,
        }


@dataclass(frozen=True, slots=True)
class SyncRunResult:
    """Return object for sync run outcomes."""

    run_id: str
    status: SyncStatus
    request: SyncRequest
    dry_run: bool
    summary: RunSummary
    auxiliary_log: tuple[AuxiliaryCopyRecord, ...]
    artifact_log: tuple[ArtifactCopyRecord, ...]
    unresolved: tuple[Unresolved, ...] = ()
    summary_path: Path | None = None
    artifact_log_path: Path | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "SUCCESS"

    def raise_for_status(self) -> "SyncRunResult":
        """Raise UnresolvedSourcesError when the artifact phase was aborted."""

        if self.status == "ABORTED":
            raise UnresolvedSourcesError(self.unresolved)
        return self
