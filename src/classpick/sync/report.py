"""Run-report tables and persisted summary artifacts."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

import polars as pl

from classpick.classfile.header import MALFORMED_HEADER_LABEL
from classpick.sync.models import ArtifactCopyRecord, AuxiliaryCopyRecord, SyncRunResult
from classpick.utils.fs import atomic_temp_path, write_json_atomically

RUN_SUMMARIES_DIR = "run_summaries"


@dataclass(frozen=True, slots=True)
class RunReportPaths:
    """Locations of the persisted report for one run."""

    summary_path: Path
    artifact_log_path: Path


def _auxiliary_log_schema() -> dict[str, pl.DataType]:
    return {
        "relative_path": pl.String,
        "size_bytes": pl.Int64,
    }


def _artifact_log_schema() -> dict[str, pl.DataType]:
    return {
        "source_path": pl.String,
        "artifact_path": pl.String,
        "size_bytes": pl.Int64,
        "version": pl.String,
        "major": pl.Int64,
        "minor": pl.Int64,
        "is_primary": pl.Boolean,
    }


def auxiliary_log_frame(records: Sequence[AuxiliaryCopyRecord]) -> pl.DataFrame:
    """Return the auxiliary copy log as a DataFrame with stable schema."""

    rows = [
        {"relative_path": record.relative_path.as_posix(), "size_bytes": record.size_bytes}
        for record in records
    ]
    if not rows:
        return pl.DataFrame(schema=_auxiliary_log_schema())
    return pl.DataFrame(rows, schema=_auxiliary_log_schema())


def artifact_log_frame(records: Sequence[ArtifactCopyRecord]) -> pl.DataFrame:
    """Return the class-file copy log as a DataFrame with stable schema."""

    rows = [
        {
            "source_path": record.source_path.as_posix(),
            "artifact_path": record.artifact_path.as_posix(),
            "size_bytes": record.size_bytes,
            "version": record.version,
            "major": record.major,
            "minor": record.minor,
            "is_primary": record.is_primary,
        }
        for record in records
    ]
    if not rows:
        return pl.DataFrame(schema=_artifact_log_schema())
    return pl.DataFrame(rows, schema=_artifact_log_schema())


def count_versions(keys: Iterable[tuple[str, int | None]]) -> dict[str, int]:
    """Count (label, major) pairs per label, ordered by major version.

    Malformed headers (no major) sort last.
    """

    counts: dict[str, int] = {}
    order: dict[str, tuple[int, int]] = {}
    for version, major in keys:
        counts[version] = counts.get(version, 0) + 1
        if version == MALFORMED_HEADER_LABEL or major is None:
            order[version] = (1, 0)
        else:
            order[version] = (0, major)
    return {version: counts[version] for version in sorted(counts, key=lambda key: (order[key], key))}


def version_histogram(records: Iterable[ArtifactCopyRecord]) -> dict[str, int]:
    """Count copied class files per version label."""

    return count_versions((record.version, record.major) for record in records)


def version_counts_frame(records: Sequence[ArtifactCopyRecord]) -> pl.DataFrame:
    """Return per-version counts as a DataFrame."""

    histogram = version_histogram(records)
    return pl.DataFrame(
        {"version": list(histogram.keys()), "count": list(histogram.values())},
        schema={"version": pl.String, "count": pl.Int64},
    )


def _write_parquet_atomically(df: pl.DataFrame, output_path: Path) -> Path:
    """Write parquet atomically to output path."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = atomic_temp_path(output_path)
    try:
        df.write_parquet(temp_path)
        os.replace(temp_path, output_path)
    finally:
        if temp_path.exists():
            temp_path.unlink()
    return output_path


def build_summary_payload(result: SyncRunResult, *, started_ts: str, finished_ts: str, duration_sec: float) -> dict[str, Any]:
    """Build the JSON payload persisted for one run."""

    return {
        "run_id": result.run_id,
        "status": result.status,
        "dry_run": result.dry_run,
        "started_ts": started_ts,
        "finished_ts": finished_ts,
        "duration_sec": round(duration_sec, 3),
        "source_dir": str(result.request.source_dir),
        "class_dir": str(result.request.class_dir),
        "output_dir": str(result.request.output_dir),
        "summary": result.summary.as_dict(),
        "unresolved": [
            {"source_path": item.source.relative_path.as_posix(), "reason": item.reason}
            for item in result.unresolved
        ],
        "auxiliary_files": [
            {"relative_path": record.relative_path.as_posix(), "size_bytes": record.size_bytes}
            for record in result.auxiliary_log
        ],
    }


def write_run_report(
    result: SyncRunResult,
    artifacts_root: Path,
    *,
    started_ts: str,
    finished_ts: str,
    duration_sec: float,
) -> RunReportPaths:
    """Persist summary JSON and the class-file copy log for one run."""

    report_dir = artifacts_root / RUN_SUMMARIES_DIR
    summary_path = report_dir / f"{result.run_id}_sync_summary.json"
    artifact_log_path = report_dir / f"{result.run_id}_copied_artifacts.parquet"

    payload = build_summary_payload(
        result,
        started_ts=started_ts,
        finished_ts=finished_ts,
        duration_sec=duration_sec,
    )
    payload["outputs"] = {
        "summary_path": str(summary_path),
        "artifact_log_path": str(artifact_log_path),
    }
    _write_parquet_atomically(artifact_log_frame(result.artifact_log), artifact_log_path)
    write_json_atomically(payload, summary_path)
    return RunReportPaths(summary_path=summary_path, artifact_log_path=artifact_log_path)
