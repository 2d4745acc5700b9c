"""Two-phase sync orchestration: auxiliary copy, then all-or-nothing class copy."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Sequence

from classpick.classfile.header import (
    HeaderResult,
    Malformed,
    has_multiple_versions,
    header_display,
    read_class_header,
)
from classpick.config import AppSettings
from classpick.errors import ClasspickConfigError, ClasspickIOError, MalformedHeaderError
from classpick.ingest.discover import AuxiliaryFile, SourceFile, discover_tree, iter_tree_files
from classpick.resolve.resolver import ArtifactCandidate, ArtifactSet, Unresolved, resolve_source
from classpick.sync.models import (
    ArtifactCopyRecord,
    AuxiliaryCopyRecord,
    RunSummary,
    SyncRequest,
    SyncRunOptions,
    SyncRunResult,
)
from classpick.sync.report import count_versions, version_histogram, write_run_report
from classpick.utils.fs import copy_file_atomically, ensure_directories
from classpick.utils.time_utils import new_run_id, now_utc

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClassifiedArtifact:
    """A resolved class file together with its header classification."""

    source_path: Path
    candidate: ArtifactCandidate
    header: HeaderResult


@dataclass(frozen=True, slots=True)
class VersionScanResult:
    """Header classification of every class file under one directory."""

    class_dir: Path
    entries: tuple[tuple[Path, HeaderResult], ...]
    version_counts: Mapping[str, int]

    def __post_init__(self) -> None:
        object.__setattr__(self, "version_counts", MappingProxyType(dict(self.version_counts)))

    @property
    def multiple_versions(self) -> bool:
        return has_multiple_versions(self.version_counts)


def _is_within(path: Path, parent: Path) -> bool:
    return path == parent or parent in path.parents


def validate_request(request: SyncRequest) -> SyncRequest:
    """Check input/output directories and return a request with absolute paths."""

    source_dir = request.source_dir.expanduser()
    class_dir = request.class_dir.expanduser()
    output_dir = request.output_dir.expanduser()

    if not source_dir.is_dir():
        raise ClasspickConfigError(f"Source directory does not exist or is not a directory: {source_dir}")
    if not class_dir.is_dir():
        raise ClasspickConfigError(f"Class directory does not exist or is not a directory: {class_dir}")
    if output_dir.exists() and not output_dir.is_dir():
        raise ClasspickConfigError(f"Output path exists and is not a directory: {output_dir}")

    resolved = SyncRequest(
        source_dir=source_dir.resolve(),
        class_dir=class_dir.resolve(),
        output_dir=output_dir.resolve(),
    )
    if _is_within(resolved.output_dir, resolved.source_dir):
        raise ClasspickConfigError(
            f"Output directory must not be inside the source directory: {resolved.output_dir}"
        )
    return resolved


def check_run_paths(settings: AppSettings, request: SyncRequest) -> None:
    """Reject report and log roots that sit inside the source or output tree.

    Files written there would be enumerated as auxiliaries on the next run.
    """

    run_paths = {
        "paths.artifacts_root": settings.paths.artifacts_root,
        "paths.logs_root": settings.paths.logs_root,
    }
    trees = {"source": request.source_dir, "output": request.output_dir}
    for setting_name, raw_path in run_paths.items():
        run_path = raw_path.expanduser().resolve()
        for tree_name, tree_dir in trees.items():
            if _is_within(run_path, tree_dir.expanduser().resolve()):
                raise ClasspickConfigError(
                    f"{setting_name} must not be inside the {tree_name} directory: {run_path}"
                )


def copy_auxiliary_files(
    auxiliaries: Sequence[AuxiliaryFile],
    output_dir: Path,
    *,
    dry_run: bool = False,
    logger: logging.Logger | None = None,
) -> tuple[AuxiliaryCopyRecord, ...]:
    """Copy every auxiliary file to its mirrored output path; the first failure is fatal."""

    effective_logger = logger or LOGGER
    records: list[AuxiliaryCopyRecord] = []
    for auxiliary in auxiliaries:
        target_path = output_dir / auxiliary.relative_path
        effective_logger.info(
            "sync.auxiliary path=%s size_bytes=%s",
            auxiliary.relative_path.as_posix(),
            auxiliary.size_bytes,
        )
        if not dry_run:
            try:
                copy_file_atomically(auxiliary.path, target_path)
            except OSError as exc:
                raise ClasspickIOError(
                    f"Failed to copy {auxiliary.path} -> {target_path}: {exc}",
                    path=auxiliary.path,
                ) from exc
        records.append(AuxiliaryCopyRecord(relative_path=auxiliary.relative_path, size_bytes=auxiliary.size_bytes))
    return tuple(records)


def resolve_all(
    settings: AppSettings,
    request: SyncRequest,
    sources: Sequence[SourceFile],
    *,
    require_primary: bool,
    logger: logging.Logger | None = None,
) -> tuple[tuple[ArtifactSet, ...], tuple[Unresolved, ...]]:
    """Resolve every source file, collecting all failures instead of stopping at the first."""

    effective_logger = logger or LOGGER
    resolved: list[ArtifactSet] = []
    unresolved: list[Unresolved] = []
    for source in sources:
        outcome = resolve_source(
            source,
            request.class_dir,
            artifact_suffix=settings.matching.artifact_suffix,
            nested_separator=settings.matching.nested_separator,
            require_primary=require_primary,
            logger=effective_logger,
        )
        if isinstance(outcome, Unresolved):
            effective_logger.error(
                "sync.unresolved source=%s reason=%s",
                source.relative_path.as_posix(),
                outcome.reason,
            )
            unresolved.append(outcome)
        else:
            resolved.append(outcome)
    return tuple(resolved), tuple(unresolved)


def classify_artifacts(
    artifact_sets: Sequence[ArtifactSet],
    *,
    malformed_policy: str,
    logger: logging.Logger | None = None,
) -> tuple[ClassifiedArtifact, ...]:
    """Read every class header before anything is copied.

    Under the ``abort`` policy all malformed headers are reported together
    through MalformedHeaderError. A class file matched by several sources
    (``Foo.java`` and ``Foo$Bar.java`` both match ``Foo$Bar.class``) belongs
    to the first source in enumeration order and is classified once.
    """

    effective_logger = logger or LOGGER
    classified: list[ClassifiedArtifact] = []
    malformed: list[tuple[Path, str]] = []
    claimed: dict[Path, Path] = {}
    for artifact_set in artifact_sets:
        for candidate in artifact_set.artifacts:
            owner = claimed.get(candidate.relative_path)
            if owner is not None:
                effective_logger.debug(
                    "sync.artifact_already_claimed artifact=%s source=%s claimed_by=%s",
                    candidate.relative_path.as_posix(),
                    artifact_set.source.relative_path.as_posix(),
                    owner.as_posix(),
                )
                continue
            claimed[candidate.relative_path] = artifact_set.source.relative_path
            header = read_class_header(candidate.path)
            if isinstance(header, Malformed):
                effective_logger.warning(
                    "sync.malformed_header artifact=%s reason=%s policy=%s",
                    candidate.relative_path.as_posix(),
                    header.reason,
                    malformed_policy,
                )
                malformed.append((candidate.relative_path, header.reason))
            classified.append(
                ClassifiedArtifact(
                    source_path=artifact_set.source.relative_path,
                    candidate=candidate,
                    header=header,
                )
            )
    if malformed and malformed_policy == "abort":
        raise MalformedHeaderError(malformed)
    return tuple(classified)


def copy_artifacts(
    classified: Sequence[ClassifiedArtifact],
    output_dir: Path,
    *,
    dry_run: bool = False,
    progress_every: int = 100,
    logger: logging.Logger | None = None,
) -> tuple[ArtifactCopyRecord, ...]:
    """Copy classified class files to their mirrored output paths."""

    effective_logger = logger or LOGGER
    total = len(classified)
    every = max(1, progress_every)
    records: list[ArtifactCopyRecord] = []
    for copied_idx, item in enumerate(classified, start=1):
        candidate = item.candidate
        target_path = output_dir / candidate.relative_path
        version = header_display(item.header)
        if not dry_run:
            try:
                copy_file_atomically(candidate.path, target_path)
            except OSError as exc:
                raise ClasspickIOError(
                    f"Failed to copy {candidate.path} -> {target_path}: {exc}",
                    path=candidate.path,
                ) from exc
        major = None if isinstance(item.header, Malformed) else item.header.major
        minor = None if isinstance(item.header, Malformed) else item.header.minor
        records.append(
            ArtifactCopyRecord(
                source_path=item.source_path,
                artifact_path=candidate.relative_path,
                size_bytes=candidate.size_bytes,
                version=version,
                major=major,
                minor=minor,
                is_primary=candidate.is_primary,
            )
        )
        effective_logger.debug(
            "sync.artifact source=%s artifact=%s size_bytes=%s version=%s",
            item.source_path.as_posix(),
            candidate.relative_path.as_posix(),
            candidate.size_bytes,
            version,
        )
        if copied_idx % every == 0 or copied_idx == total:
            effective_logger.info("sync.progress copied=%s/%s dry_run=%s", copied_idx, total, dry_run)
    return tuple(records)


def run_sync(
    settings: AppSettings,
    request: SyncRequest,
    *,
    options: SyncRunOptions | None = None,
    logger: logging.Logger | None = None,
) -> SyncRunResult:
    """Run auxiliary copy then transactional class copy for one source tree.

    Returns an ``ABORTED`` result, with every unresolved source listed, when any
    source file has no acceptable class file; in that case no class file is
    copied. Configuration problems, I/O failures and malformed headers under
    the abort policy raise.
    """

    effective_logger = logger or LOGGER
    run_options = options or SyncRunOptions(
        require_primary=settings.matching.require_primary,
        malformed_header_policy=settings.headers.malformed_policy,
        progress_every=settings.report.progress_every,
    )
    run_id = new_run_id()
    started_ts = now_utc()
    started_mono = time.monotonic()

    checked = validate_request(request)
    check_run_paths(settings, checked)
    effective_logger.info(
        "sync.start run_id=%s source_dir=%s class_dir=%s output_dir=%s dry_run=%s require_primary=%s malformed_policy=%s",
        run_id,
        checked.source_dir,
        checked.class_dir,
        checked.output_dir,
        run_options.dry_run,
        run_options.require_primary,
        run_options.malformed_header_policy,
    )

    tree = discover_tree(checked.source_dir, source_suffix=settings.matching.source_suffix, logger=effective_logger)
    if not run_options.dry_run:
        ensure_directories([checked.output_dir])

    auxiliary_log = copy_auxiliary_files(
        tree.auxiliaries,
        checked.output_dir,
        dry_run=run_options.dry_run,
        logger=effective_logger,
    )
    effective_logger.info("sync.phase_auxiliary_done copied=%s", len(auxiliary_log))

    artifact_sets, unresolved = resolve_all(
        settings,
        checked,
        tree.sources,
        require_primary=run_options.require_primary,
        logger=effective_logger,
    )

    if unresolved:
        effective_logger.error(
            "sync.aborted run_id=%s unresolved=%s sources=%s; no class files copied",
            run_id,
            len(unresolved),
            len(tree.sources),
        )
        result = SyncRunResult(
            run_id=run_id,
            status="ABORTED",
            request=checked,
            dry_run=run_options.dry_run,
            summary=RunSummary(
                source_count=len(tree.sources),
                artifact_count=0,
                auxiliary_count=len(auxiliary_log),
            ),
            auxiliary_log=auxiliary_log,
            artifact_log=(),
            unresolved=unresolved,
        )
        return _finish(settings, result, started_ts=started_ts, started_mono=started_mono, logger=effective_logger)

    classified = classify_artifacts(
        artifact_sets,
        malformed_policy=run_options.malformed_header_policy,
        logger=effective_logger,
    )
    artifact_log = copy_artifacts(
        classified,
        checked.output_dir,
        dry_run=run_options.dry_run,
        progress_every=run_options.progress_every,
        logger=effective_logger,
    )

    summary = RunSummary(
        source_count=len(tree.sources),
        artifact_count=len(artifact_log),
        auxiliary_count=len(auxiliary_log),
        version_counts=version_histogram(artifact_log),
    )
    if summary.multiple_versions:
        effective_logger.warning(
            "sync.multiple_versions run_id=%s version_counts=%s",
            run_id,
            dict(summary.version_counts),
        )

    result = SyncRunResult(
        run_id=run_id,
        status="SUCCESS",
        request=checked,
        dry_run=run_options.dry_run,
        summary=summary,
        auxiliary_log=auxiliary_log,
        artifact_log=artifact_log,
    )
    return _finish(settings, result, started_ts=started_ts, started_mono=started_mono, logger=effective_logger)


def _finish(
    settings: AppSettings,
    result: SyncRunResult,
    *,
    started_ts: datetime,
    started_mono: float,
    logger: logging.Logger,
) -> SyncRunResult:
    duration_sec = time.monotonic() - started_mono
    logger.info(
        "sync.finish run_id=%s status=%s sources=%s artifacts=%s auxiliaries=%s duration_sec=%.2f",
        result.run_id,
        result.status,
        result.summary.source_count,
        result.summary.artifact_count,
        result.summary.auxiliary_count,
        duration_sec,
    )
    if not settings.report.write_run_summary:
        return result

    paths = write_run_report(
        result,
        settings.paths.artifacts_root,
        started_ts=started_ts.isoformat(),
        finished_ts=now_utc().isoformat(),
        duration_sec=duration_sec,
    )
    logger.info("sync.report_written summary_path=%s", paths.summary_path)
    return replace(result, summary_path=paths.summary_path, artifact_log_path=paths.artifact_log_path)


def run_version_scan(
    class_dir: Path,
    *,
    artifact_suffix: str = ".class",
    logger: logging.Logger | None = None,
) -> VersionScanResult:
    """Classify the header of every class file under class_dir without copying."""

    effective_logger = logger or LOGGER
    if not class_dir.is_dir():
        raise ClasspickConfigError(f"Class directory does not exist or is not a directory: {class_dir}")

    entries: list[tuple[Path, HeaderResult]] = []
    for relative_path, path in iter_tree_files(class_dir, logger=effective_logger):
        if relative_path.suffix != artifact_suffix:
            continue
        entries.append((relative_path, read_class_header(path)))

    version_counts = count_versions(
        (header_display(header), None if isinstance(header, Malformed) else header.major)
        for _, header in entries
    )
    effective_logger.info(
        "scan_versions.summary class_dir=%s class_files=%s version_counts=%s",
        class_dir,
        len(entries),
        version_counts,
    )
    return VersionScanResult(class_dir=class_dir, entries=tuple(entries), version_counts=version_counts)
