"""Sync engine: auxiliary copy, class-file resolution, classification and copy."""

from classpick.sync.models import (
    ArtifactCopyRecord,
    AuxiliaryCopyRecord,
    RunSummary,
    SyncRequest,
    SyncRunOptions,
    SyncRunResult,
    SyncStatus,
)
from classpick.sync.pipeline import (
    ClassifiedArtifact,
    VersionScanResult,
    classify_artifacts,
    copy_artifacts,
    copy_auxiliary_files,
    resolve_all,
    run_sync,
    run_version_scan,
    validate_request,
)
from classpick.sync.report import (
    RunReportPaths,
    artifact_log_frame,
    auxiliary_log_frame,
    count_versions,
    version_counts_frame,
    version_histogram,
    write_run_report,
)

__all__ = [
    "ArtifactCopyRecord",
    "AuxiliaryCopyRecord",
    "RunSummary",
    "SyncRequest",
    "SyncRunOptions",
    "SyncRunResult",
    "SyncStatus",
    "ClassifiedArtifact",
    "VersionScanResult",
    "classify_artifacts",
    "copy_artifacts",
    "copy_auxiliary_files",
    "resolve_all",
    "run_sync",
    "run_version_scan",
    "validate_request",
    "RunReportPaths",
    "artifact_log_frame",
    "auxiliary_log_frame",
    "count_versions",
    "version_counts_frame",
    "version_histogram",
    "write_run_report",
]
