"""
File kind and file-type tag mapping.

Content type -> attachment kind -> short tag used in outgoing message
references. Both steps are total functions over enumerated values.
"""

from __future__ import annotations

from enum import Enum

from core.models import AttachmentKind


class FileTypeTag(str, Enum):
    """Short file-type tag understood by the agent backend."""

    IMG = "img"
    MP3 = "mp3"
    PDF = "pdf"
    DOCX = "docx"
    XLSX = "xlsx"
    XLS = "xls"
    OTHER = "other"


_KIND_PREFIXES: tuple[tuple[str, AttachmentKind], ...] = (
    ("image/", AttachmentKind.IMAGE),
    ("audio/", AttachmentKind.AUDIO),
    ("video/", AttachmentKind.VIDEO),
    ("application/", AttachmentKind.DOCUMENT),
    ("text/", AttachmentKind.DOCUMENT),
)

_KIND_TAGS: dict[AttachmentKind, FileTypeTag] = {
    AttachmentKind.IMAGE: FileTypeTag.IMG,
    AttachmentKind.AUDIO: FileTypeTag.MP3,
}

# Checked in order; ".xlsx" must win over ".xls"
_EXTENSION_TAGS: tuple[tuple[str, FileTypeTag], ...] = (
    (".pdf", FileTypeTag.PDF),
    (".docx", FileTypeTag.DOCX),
    (".xlsx", FileTypeTag.XLSX),
    (".xls", FileTypeTag.XLS),
)


def classify_kind(content_type: str | None) -> AttachmentKind:
    """Derive the attachment kind from a MIME content type."""
    normalized = (content_type or "").strip().lower()
    for prefix, kind in _KIND_PREFIXES:
        if normalized.startswith(prefix):
            return kind
    return AttachmentKind.OTHER


def tag_for(kind: AttachmentKind, file_name: str) -> FileTypeTag:
    """Map an attachment's kind and file name onto its file-type tag."""
    if kind in _KIND_TAGS:
        return _KIND_TAGS[kind]
    lowered = file_name.lower()
    for extension, tag in _EXTENSION_TAGS:
        if lowered.endswith(extension):
            return tag
    return FileTypeTag.OTHER


def extension_of(file_name: str) -> str:
    """Lowercase extension of a file name, or ``file`` when it has none."""
    if "." not in file_name:
        return "file"
    return file_name.rsplit(".", 1)[-1].lower() or "file"
