"""Utilities package for Agent Desk."""

from core.utils.file_types import FileTypeTag, classify_kind, extension_of, tag_for
from core.utils.urls import (
    annotate_for_sending,
    file_name_from_url,
    file_reference_line,
    format_for_display,
    relative_file_path,
)

__all__ = [
    "FileTypeTag",
    "classify_kind",
    "extension_of",
    "tag_for",
    "annotate_for_sending",
    "file_name_from_url",
    "file_reference_line",
    "format_for_display",
    "relative_file_path",
]
