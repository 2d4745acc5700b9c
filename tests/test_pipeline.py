"""End-to-end tests for the two-phase sync engine."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import polars as pl
import pytest

from classpick.config import AppSettings
from classpick.errors import (
    ClasspickConfigError,
    ClasspickIOError,
    MalformedHeaderError,
    UnresolvedSourcesError,
)
from classpick.sync.models import SyncRequest, SyncRunOptions
from classpick.sync.pipeline import run_sync, run_version_scan

from helpers import class_bytes, tree_snapshot, write_file


def _request(trees: tuple[Path, Path, Path]) -> SyncRequest:
    source_dir, class_dir, output_dir = trees
    return SyncRequest(source_dir=source_dir, class_dir=class_dir, output_dir=output_dir)


def test_success_copies_classes_and_auxiliaries(
    settings: AppSettings,
    trees: tuple[Path, Path, Path],
    caplog: pytest.LogCaptureFixture,
) -> None:
    _, class_dir, output_dir = trees

    with caplog.at_level(logging.WARNING):
        result = run_sync(settings, _request(trees))

    assert result.status == "SUCCESS"
    assert result.summary.source_count == 2
    assert result.summary.artifact_count == 3
    assert result.summary.auxiliary_count == 2
    assert result.summary.copied_total == 5
    assert result.summary.version_counts == {"JDK 8": 2, "JDK 11": 1}
    assert result.summary.multiple_versions
    assert sum(result.summary.version_counts.values()) == result.summary.artifact_count
    assert any("sync.multiple_versions" in record.getMessage() for record in caplog.records)

    assert tree_snapshot(output_dir) == {
        "META-INF/MANIFEST.MF": b"Manifest-Version: 1.0\n",
        "com/example/Test$Inner.class": class_bytes(52),
        "com/example/Test.class": class_bytes(52),
        "com/example/messages.properties": b"greeting=hi\n",
        "org/sample/Main.class": class_bytes(55),
    }
    assert [(record.source_path.as_posix(), record.artifact_path.as_posix()) for record in result.artifact_log] == [
        ("com/example/Test.java", "com/example/Test.class"),
        ("com/example/Test.java", "com/example/Test$Inner.class"),
        ("org/sample/Main.java", "org/sample/Main.class"),
    ]
    assert [record.version for record in result.artifact_log] == ["JDK 8", "JDK 8", "JDK 11"]


def test_single_version_has_no_warning(settings: AppSettings, tmp_path: Path) -> None:
    write_file(tmp_path / "src", "a/A.java")
    write_file(tmp_path / "classes", "a/A.class", class_bytes(61))
    request = SyncRequest(tmp_path / "src", tmp_path / "classes", tmp_path / "out")

    result = run_sync(settings, request)

    assert result.summary.version_counts == {"JDK 17": 1}
    assert not result.summary.multiple_versions


def test_unresolved_source_aborts_class_phase(settings: AppSettings, trees: tuple[Path, Path, Path]) -> None:
    _, class_dir, output_dir = trees
    (class_dir / "org/sample/Main.class").unlink()

    result = run_sync(settings, _request(trees))

    assert result.status == "ABORTED"
    assert [item.source.relative_path.as_posix() for item in result.unresolved] == ["org/sample/Main.java"]
    assert result.artifact_log == ()
    assert result.summary.artifact_count == 0
    assert tree_snapshot(output_dir) == {
        "META-INF/MANIFEST.MF": b"Manifest-Version: 1.0\n",
        "com/example/messages.properties": b"greeting=hi\n",
    }
    with pytest.raises(UnresolvedSourcesError, match="org/sample/Main.java"):
        result.raise_for_status()


def test_every_unresolved_source_is_listed(settings: AppSettings, tmp_path: Path) -> None:
    for name in ("a/One.java", "b/Two.java", "c/Three.java"):
        write_file(tmp_path / "src", name)
    write_file(tmp_path / "classes", "b/Two.class", class_bytes(52))
    request = SyncRequest(tmp_path / "src", tmp_path / "classes", tmp_path / "out")

    result = run_sync(settings, request)

    assert result.status == "ABORTED"
    assert [item.source.relative_path.as_posix() for item in result.unresolved] == ["a/One.java", "c/Three.java"]
    assert not (tmp_path / "out" / "b" / "Two.class").exists()


def test_nested_only_policy(settings: AppSettings, tmp_path: Path) -> None:
    write_file(tmp_path / "src", "p/Holder.java")
    write_file(tmp_path / "classes", "p/Holder$Inner.class", class_bytes(52))
    request = SyncRequest(tmp_path / "src", tmp_path / "classes", tmp_path / "out")

    strict = run_sync(settings, request)
    lenient = run_sync(settings, request, options=SyncRunOptions(require_primary=False))

    assert strict.status == "ABORTED"
    assert strict.unresolved[0].reason == "primary_missing"
    assert lenient.status == "SUCCESS"
    assert (tmp_path / "out" / "p" / "Holder$Inner.class").exists()


def test_malformed_header_abort_copies_no_classes(settings: AppSettings, trees: tuple[Path, Path, Path]) -> None:
    _, class_dir, output_dir = trees
    (class_dir / "org/sample/Main.class").write_bytes(b"not a class file")

    with pytest.raises(MalformedHeaderError, match="org/sample/Main.class"):
        run_sync(settings, _request(trees))

    assert not any(name.endswith(".class") for name in tree_snapshot(output_dir))


def test_malformed_header_warn_policy_copies_and_counts(
    settings: AppSettings,
    trees: tuple[Path, Path, Path],
) -> None:
    _, class_dir, output_dir = trees
    (class_dir / "org/sample/Main.class").write_bytes(b"\x00\x01")

    result = run_sync(settings, _request(trees), options=SyncRunOptions(malformed_header_policy="warn"))

    assert result.status == "SUCCESS"
    assert result.summary.version_counts == {"JDK 8": 2, "Malformed header": 1}
    assert not result.summary.multiple_versions
    assert (output_dir / "org/sample/Main.class").read_bytes() == b"\x00\x01"
    malformed = [record for record in result.artifact_log if record.version == "Malformed header"]
    assert malformed[0].major is None


def test_malformed_header_is_not_a_second_version(
    settings: AppSettings,
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    write_file(tmp_path / "src", "a/A.java")
    write_file(tmp_path / "src", "a/B.java")
    write_file(tmp_path / "classes", "a/A.class", class_bytes(52))
    write_file(tmp_path / "classes", "a/B.class", b"garbage!")
    request = SyncRequest(tmp_path / "src", tmp_path / "classes", tmp_path / "out")

    with caplog.at_level(logging.WARNING):
        result = run_sync(settings, request, options=SyncRunOptions(malformed_header_policy="warn"))

    assert result.summary.version_counts == {"JDK 8": 1, "Malformed header": 1}
    assert not result.summary.multiple_versions
    assert not any("sync.multiple_versions" in record.getMessage() for record in caplog.records)
    assert result.summary.as_dict()["multiple_versions"] is False


def test_summary_version_counts_are_read_only(settings: AppSettings, trees: tuple[Path, Path, Path]) -> None:
    result = run_sync(settings, _request(trees))

    with pytest.raises(TypeError):
        result.summary.version_counts["JDK 8"] = 99  # type: ignore[index]
    assert result.summary.version_counts["JDK 8"] == 2
    assert result.summary.multiple_versions


def test_class_file_shared_by_two_sources_is_copied_once(settings: AppSettings, tmp_path: Path) -> None:
    write_file(tmp_path / "src", "p/Foo.java")
    write_file(tmp_path / "src", "p/Foo$Bar.java")
    write_file(tmp_path / "classes", "p/Foo.class", class_bytes(52))
    write_file(tmp_path / "classes", "p/Foo$Bar.class", class_bytes(52))
    request = SyncRequest(tmp_path / "src", tmp_path / "classes", tmp_path / "out")

    result = run_sync(settings, request)

    assert result.status == "SUCCESS"
    assert result.summary.source_count == 2
    assert result.summary.artifact_count == 2
    assert result.summary.version_counts == {"JDK 8": 2}
    assert [(record.source_path.as_posix(), record.artifact_path.as_posix()) for record in result.artifact_log] == [
        ("p/Foo$Bar.java", "p/Foo$Bar.class"),
        ("p/Foo.java", "p/Foo.class"),
    ]
    assert sorted(tree_snapshot(tmp_path / "out")) == ["p/Foo$Bar.class", "p/Foo.class"]



def test_unrecognized_version_is_reported_not_fatal(settings: AppSettings, tmp_path: Path) -> None:
    write_file(tmp_path / "src", "A.java")
    write_file(tmp_path / "classes", "A.class", class_bytes(69))
    request = SyncRequest(tmp_path / "src", tmp_path / "classes", tmp_path / "out")

    result = run_sync(settings, request)

    assert result.status == "SUCCESS"
    assert result.summary.version_counts == {"Unrecognized (major: 69)": 1}


def test_dry_run_writes_nothing(settings: AppSettings, trees: tuple[Path, Path, Path]) -> None:
    _, _, output_dir = trees

    result = run_sync(settings, _request(trees), options=SyncRunOptions(dry_run=True))

    assert result.status == "SUCCESS"
    assert result.dry_run
    assert result.summary.artifact_count == 3
    assert not output_dir.exists()


def test_rerun_is_idempotent(settings: AppSettings, trees: tuple[Path, Path, Path]) -> None:
    _, _, output_dir = trees

    first = run_sync(settings, _request(trees))
    first_snapshot = tree_snapshot(output_dir)
    second = run_sync(settings, _request(trees))

    assert tree_snapshot(output_dir) == first_snapshot
    assert first.summary == second.summary


def test_run_report_is_written(settings: AppSettings, trees: tuple[Path, Path, Path]) -> None:
    result = run_sync(settings, _request(trees))

    assert result.summary_path is not None
    assert result.summary_path.parent == settings.paths.artifacts_root / "run_summaries"
    payload = json.loads(result.summary_path.read_text(encoding="utf-8"))
    assert payload["status"] == "SUCCESS"
    assert payload["summary"]["version_counts"] == {"JDK 8": 2, "JDK 11": 1}
    assert payload["summary"]["copied_total"] == 5

    assert result.artifact_log_path is not None
    frame = pl.read_parquet(result.artifact_log_path)
    assert frame.height == 3
    assert frame["version"].to_list() == ["JDK 8", "JDK 8", "JDK 11"]


def test_report_can_be_disabled(settings: AppSettings, trees: tuple[Path, Path, Path]) -> None:
    quiet = settings.model_copy(
        update={"report": settings.report.model_copy(update={"write_run_summary": False})}
    )
    result = run_sync(quiet, _request(trees))
    assert result.summary_path is None
    assert not (settings.paths.artifacts_root / "run_summaries").exists()


def test_missing_source_dir_is_config_error(settings: AppSettings, tmp_path: Path) -> None:
    (tmp_path / "classes").mkdir()
    request = SyncRequest(tmp_path / "missing", tmp_path / "classes", tmp_path / "out")
    with pytest.raises(ClasspickConfigError):
        run_sync(settings, request)
    assert not (tmp_path / "out").exists()


def test_output_inside_source_is_config_error(settings: AppSettings, trees: tuple[Path, Path, Path]) -> None:
    source_dir, class_dir, _ = trees
    request = SyncRequest(source_dir, class_dir, source_dir / "out")
    with pytest.raises(ClasspickConfigError):
        run_sync(settings, request)


def test_version_scan(tmp_path: Path) -> None:
    write_file(tmp_path, "a/A.class", class_bytes(52))
    write_file(tmp_path, "a/A$1.class", class_bytes(52))
    write_file(tmp_path, "b/B.class", class_bytes(65))
    write_file(tmp_path, "b/readme.txt", b"ignored")

    result = run_version_scan(tmp_path)

    assert len(result.entries) == 3
    assert result.version_counts == {"JDK 8": 2, "JDK 21": 1}
    assert result.multiple_versions


def test_auxiliary_copy_failure_stops_before_class_phase(
    settings: AppSettings,
    trees: tuple[Path, Path, Path],
) -> None:
    _, _, output_dir = trees
    (output_dir / "com/example/messages.properties").mkdir(parents=True)

    with pytest.raises(ClasspickIOError) as excinfo:
        run_sync(settings, _request(trees))

    assert excinfo.value.path is not None
    assert excinfo.value.path.name == "messages.properties"
    assert not any(name.endswith(".class") for name in tree_snapshot(output_dir))
    assert not (settings.paths.artifacts_root / "run_summaries").exists()


@pytest.mark.parametrize("field_name", ["artifacts_root", "logs_root"])
@pytest.mark.parametrize("tree_index", [0, 2])
def test_run_paths_inside_scanned_trees_are_config_errors(
    settings: AppSettings,
    trees: tuple[Path, Path, Path],
    field_name: str,
    tree_index: int,
) -> None:
    _, _, output_dir = trees
    nested = settings.paths.model_copy(update={field_name: trees[tree_index] / "run"})
    misplaced = settings.model_copy(update={"paths": nested})

    with pytest.raises(ClasspickConfigError, match=f"paths.{field_name}"):
        run_sync(misplaced, _request(trees))

    assert not output_dir.exists()
    assert not (trees[tree_index] / "run").exists()
