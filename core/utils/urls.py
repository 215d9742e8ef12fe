"""
URL annotation rules for uploaded-file references.

Outgoing text gets every uploaded-file URL annotated with its file type so
the agent knows what it is looking at. Text shown to the user goes the other
way: annotated file URLs collapse to ``<file name> (File Type: <tag>)``.
"""

from __future__ import annotations

import re
from typing import Optional

from core.constants import FILES_PATH_SEGMENT
from core.utils.file_types import extension_of

URL_PATTERN = re.compile(r"(https?://[^\s)]+)")
ANNOTATED_URL_PATTERN = re.compile(
    r"(https?://[^\s)]+)\s*\(File Type:\s*(\w+)\)",
    re.IGNORECASE,
)
FILE_NAME_PATTERN = re.compile(r"/([^/?]+\.\w+)(?:\?|$)")


def file_name_from_url(url: str) -> Optional[str]:
    """Return the file name of an uploaded-file URL, or None for other URLs."""
    if FILES_PATH_SEGMENT not in url:
        return None
    match = FILE_NAME_PATTERN.search(url)
    return match.group(1) if match else None


def file_type_label(file_type: str) -> str:
    return f"(File Type: {file_type})"


def annotate_for_sending(text: str) -> str:
    """Append a file-type annotation to every uploaded-file URL in ``text``."""

    def _annotate(match: re.Match) -> str:
        url = match.group(1)
        file_name = file_name_from_url(url)
        if file_name is None:
            return url
        return f"{url} {file_type_label(extension_of(file_name))}"

    return URL_PATTERN.sub(_annotate, text)


def format_for_display(text: str) -> str:
    """Collapse uploaded-file URLs to their file names for display.

    Annotated file URLs keep their annotation; annotated website URLs lose
    it. Plain file URLs gain an annotation derived from their extension and
    plain website URLs are left untouched.
    """

    def _collapse_annotated(match: re.Match) -> str:
        url, file_type = match.group(1), match.group(2)
        if FILES_PATH_SEGMENT not in url:
            return url
        file_name = file_name_from_url(url)
        if file_name is None:
            return match.group(0)
        return f"{file_name} {file_type_label(file_type)}"

    def _collapse_plain(match: re.Match) -> str:
        url = match.group(1)
        file_name = file_name_from_url(url)
        if file_name is None:
            return url
        return f"{file_name} {file_type_label(extension_of(file_name))}"

    text = ANNOTATED_URL_PATTERN.sub(_collapse_annotated, text)
    return URL_PATTERN.sub(_collapse_plain, text)


def file_reference_line(url: str, file_type: str) -> str:
    """Structured reference line for one attachment in an outgoing message."""
    return f"- {url} {file_type_label(file_type)}"


def relative_file_path(remote_path: str) -> Optional[str]:
    """Part of a stored upload path after ``/files/``, or None if malformed."""
    match = re.search(r"/files/(.+)", remote_path)
    return match.group(1) if match else None
