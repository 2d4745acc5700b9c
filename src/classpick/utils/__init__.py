"""Shared utility helpers."""

from classpick.utils.fs import (
    atomic_temp_path,
    copy_file_atomically,
    ensure_directories,
    write_json_atomically,
)
from classpick.utils.time_utils import new_run_id, now_utc

__all__ = [
    "atomic_temp_path",
    "copy_file_atomically",
    "ensure_directories",
    "write_json_atomically",
    "new_run_id",
    "now_utc",
]
