"""Class-file header parsing and JDK release labelling."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from classpick.errors import ClasspickIOError

CLASS_MAGIC = b"\xca\xfe\xba\xbe"
HEADER_SIZE = 8

# Major version -> release name. Kept literal: the pre-5 releases do not follow
# the "major - 44" rule used from JDK 5 onwards.
JDK_RELEASE_LABELS: Mapping[int, str] = MappingProxyType(
    {
        45: "JDK 1.1",
        46: "JDK 1.2",
        47: "JDK 1.3",
        48: "JDK 1.4",
        49: "JDK 5",
        50: "JDK 6",
        51: "JDK 7",
        52: "JDK 8",
        53: "JDK 9",
        54: "JDK 10",
        55: "JDK 11",
        56: "JDK 12",
        57: "JDK 13",
        58: "JDK 14",
        59: "JDK 15",
        60: "JDK 16",
        61: "JDK 17",
        62: "JDK 18",
        63: "JDK 19",
        64: "JDK 20",
        65: "JDK 21",
    }
)

MALFORMED_HEADER_LABEL = "Malformed header"


@dataclass(frozen=True, slots=True, order=True)
class VersionLabel:
    """Release classification of a class-file major version."""

    major: int
    label: str | None = None

    @property
    def recognized(self) -> bool:
        return self.label is not None

    @property
    def display(self) -> str:
        if self.label is None:
            return f"Unrecognized (major: {self.major})"
        return self.label

    def __str__(self) -> str:
        return self.display


def version_label_for_major(major: int) -> VersionLabel:
    """Map a major version to its label; majors outside the table stay unrecognized."""

    return VersionLabel(major=major, label=JDK_RELEASE_LABELS.get(major))


@dataclass(frozen=True, slots=True)
class Recognized:
    """Header with valid magic and a tabulated major version."""

    major: int
    minor: int
    label: str

    @property
    def version(self) -> VersionLabel:
        return version_label_for_major(self.major)


@dataclass(frozen=True, slots=True)
class Unrecognized:
    """Header with valid magic but a major version outside the table."""

    major: int
    minor: int

    @property
    def version(self) -> VersionLabel:
        return version_label_for_major(self.major)


@dataclass(frozen=True, slots=True)
class Malformed:
    """Header that is too short or does not start with the class-file magic."""

    reason: str


HeaderResult = Recognized | Unrecognized | Malformed


def parse_class_header(data: bytes) -> HeaderResult:
    """Classify the leading bytes of a class file."""

    if len(data) < HEADER_SIZE:
        return Malformed(reason=f"truncated header: {len(data)} of {HEADER_SIZE} bytes")
    if data[:4] != CLASS_MAGIC:
        return Malformed(reason=f"bad magic 0x{data[:4].hex().upper()}")

    minor = int.from_bytes(data[4:6], "big")
    major = int.from_bytes(data[6:8], "big")
    label = JDK_RELEASE_LABELS.get(major)
    if label is None:
        return Unrecognized(major=major, minor=minor)
    return Recognized(major=major, minor=minor, label=label)


def read_class_header(path: Path) -> HeaderResult:
    """Read and classify the header of the class file at path."""

    try:
        with path.open("rb") as handle:
            data = handle.read(HEADER_SIZE)
    except OSError as exc:
        raise ClasspickIOError(f"Cannot read class file header {path}: {exc}", path=path) from exc
    return parse_class_header(data)


def has_multiple_versions(version_counts: Mapping[str, int]) -> bool:
    """Return True when more than one release label appears; malformed headers are not a release."""

    return len([key for key in version_counts if key != MALFORMED_HEADER_LABEL]) > 1


def header_display(result: HeaderResult) -> str:
    """Return the histogram key used for a header result."""

    if isinstance(result, Malformed):
        return MALFORMED_HEADER_LABEL
    return result.version.display
