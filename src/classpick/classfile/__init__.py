"""Class-file header inspection."""

from classpick.classfile.header import (
    CLASS_MAGIC,
    HEADER_SIZE,
    JDK_RELEASE_LABELS,
    MALFORMED_HEADER_LABEL,
    HeaderResult,
    Malformed,
    Recognized,
    Unrecognized,
    VersionLabel,
    has_multiple_versions,
    header_display,
    parse_class_header,
    read_class_header,
    version_label_for_major,
)

__all__ = [
    "CLASS_MAGIC",
    "HEADER_SIZE",
    "JDK_RELEASE_LABELS",
    "MALFORMED_HEADER_LABEL",
    "HeaderResult",
    "Malformed",
    "Recognized",
    "Unrecognized",
    "VersionLabel",
    "has_multiple_versions",
    "header_display",
    "parse_class_header",
    "read_class_header",
    "version_label_for_major",
]
