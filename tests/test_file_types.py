"""Tests for content type, kind and file-type tag mapping."""

import pytest

from core.models import AttachmentKind
from core.utils.file_types import FileTypeTag, classify_kind, extension_of, tag_for


@pytest.mark.parametrize(
    "content_type, expected",
    [
        ("image/png", AttachmentKind.IMAGE),
        ("IMAGE/JPEG", AttachmentKind.IMAGE),
        ("audio/mpeg", AttachmentKind.AUDIO),
        ("video/mp4", AttachmentKind.VIDEO),
        ("application/pdf", AttachmentKind.DOCUMENT),
        ("text/plain", AttachmentKind.DOCUMENT),
        ("font/woff2", AttachmentKind.OTHER),
        ("", AttachmentKind.OTHER),
        (None, AttachmentKind.OTHER),
    ],
)
def test_classify_kind(content_type, expected):
    assert classify_kind(content_type) == expected


def test_media_kinds_ignore_file_name():
    assert tag_for(AttachmentKind.IMAGE, "scan.pdf") == FileTypeTag.IMG
    assert tag_for(AttachmentKind.AUDIO, "voice.ogg") == FileTypeTag.MP3


def test_documents_tagged_by_extension():
    assert tag_for(AttachmentKind.DOCUMENT, "Report.PDF") == FileTypeTag.PDF
    assert tag_for(AttachmentKind.DOCUMENT, "letter.docx") == FileTypeTag.DOCX
    assert tag_for(AttachmentKind.DOCUMENT, "budget.xlsx") == FileTypeTag.XLSX
    assert tag_for(AttachmentKind.DOCUMENT, "legacy.xls") == FileTypeTag.XLS


def test_unknown_files_fall_back_to_other():
    assert tag_for(AttachmentKind.VIDEO, "clip.mp4") == FileTypeTag.OTHER
    assert tag_for(AttachmentKind.DOCUMENT, "notes.txt") == FileTypeTag.OTHER
    assert tag_for(AttachmentKind.OTHER, "README") == FileTypeTag.OTHER


def test_every_kind_maps_to_a_tag():
    for kind in AttachmentKind:
        assert isinstance(tag_for(kind, "anything"), FileTypeTag)


def test_extension_of():
    assert extension_of("report.PDF") == "pdf"
    assert extension_of("archive.tar.gz") == "gz"
    assert extension_of("Makefile") == "file"
