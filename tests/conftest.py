"""Shared fixtures: tiny source/class trees built under tmp_path."""

from __future__ import annotations

from pathlib import Path

import pytest

from classpick.config import AppSettings, PathsConfig, load_settings

from helpers import class_bytes, write_file


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    loaded = load_settings()
    paths = PathsConfig(artifacts_root=tmp_path / "artifacts", logs_root=tmp_path / "logs")
    return loaded.model_copy(update={"paths": paths})


@pytest.fixture
def trees(tmp_path: Path) -> tuple[Path, Path, Path]:
    """Source tree and class tree for the two-class scenario, plus an output path."""

    source_dir = tmp_path / "src"
    class_dir = tmp_path / "classes"
    output_dir = tmp_path / "out"

    write_file(source_dir, "com/example/Test.java", b"class Test {}")
    write_file(source_dir, "org/sample/Main.java", b"class Main {}")
    write_file(source_dir, "com/example/messages.properties", b"greeting=hi\n")
    write_file(source_dir, "META-INF/MANIFEST.MF", b"Manifest-Version: 1.0\n")

    write_file(class_dir, "com/example/Test.class", class_bytes(52))
    write_file(class_dir, "com/example/Test$Inner.class", class_bytes(52))
    write_file(class_dir, "org/sample/Main.class", class_bytes(55))
    return source_dir, class_dir, output_dir
