"""Builders for fake source and class trees."""

from __future__ import annotations

from pathlib import Path


def class_bytes(major: int, minor: int = 0, body: bytes = b"\x00\x10body") -> bytes:
    """Return bytes of a fake class file with a valid header."""

    return b"\xca\xfe\xba\xbe" + minor.to_bytes(2, "big") + major.to_bytes(2, "big") + body


def write_file(root: Path, relative: str, content: bytes = b"") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def tree_snapshot(root: Path) -> dict[str, bytes]:
    """Map every file under root (posix relative path) to its bytes."""

    if not root.exists():
        return {}
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }
