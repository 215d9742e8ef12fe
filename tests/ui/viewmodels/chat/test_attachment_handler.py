"""Tests for AttachmentHandler."""

import asyncio
from pathlib import Path

import pytest

from core.constants import SESSION_RECOVERY_FAILED_MESSAGE, UPLOAD_FAILED_MESSAGE
from core.errors import NetworkError
from core.models import AttachmentKind, AttachmentStatus, BatchResult, LocalFile, Session
from ui.viewmodels.chat.attachment_handler import AttachmentHandler

SESSION = Session(owner_id="owner-1", thread_id="thread-1")


@pytest.fixture
def attachment_handler(api, session_manager, tmp_path):
    """Create AttachmentHandler instance with an active session."""
    session_manager.adopt(SESSION)
    return AttachmentHandler(
        api_client=api,
        session_manager=session_manager,
        preview_dir=tmp_path,
    )


@pytest.fixture
def files():
    return [
        LocalFile("photo.png", b"png-bytes", "image/png"),
        LocalFile("report.pdf", b"pdf-bytes", "application/pdf"),
        LocalFile("song.mp3", b"mp3-bytes", "audio/mpeg"),
    ]


def remote(name: str) -> str:
    return f"/files/owner-1/thread-1/{name}"


def test_initial_state(attachment_handler):
    assert attachment_handler.attachments == []
    assert attachment_handler.ready_attachments == []
    assert not attachment_handler.has_attachments()
    assert attachment_handler.is_uploading is False


class TestAdd:
    """Test add method."""

    @pytest.mark.asyncio
    async def test_uploads_one_at_a_time(self, attachment_handler, api, files):
        transitions: dict[str, list[str]] = {}
        attachment_handler.attachment_status_changed.connect(
            lambda attachment_id, status: transitions.setdefault(attachment_id, []).append(status)
        )
        first_snapshot = []
        attachment_handler.attachments_changed.connect(
            lambda attachments: first_snapshot or first_snapshot.append(attachments)
        )
        uploading_counts = []

        async def upload_file(attachment, session):
            uploading_counts.append(
                sum(a.status == AttachmentStatus.UPLOADING for a in attachment_handler.attachments)
            )
            await asyncio.sleep(0)
            return remote(attachment.name)

        api.upload_file.side_effect = upload_file

        result = await attachment_handler.add(files)

        assert result == BatchResult(succeeded=3, failed=0)
        assert all(a.status == AttachmentStatus.PENDING for a in first_snapshot[0])
        assert uploading_counts == [1, 1, 1]
        assert list(transitions.values()) == [["uploading", "uploaded"]] * 3
        assert [a.remote_path for a in attachment_handler.ready_attachments] == [
            remote("photo.png"),
            remote("report.pdf"),
            remote("song.mp3"),
        ]
        uploaded_into = {call.args[1] for call in api.upload_file.await_args_list}
        assert uploaded_into == {SESSION}

    @pytest.mark.asyncio
    async def test_overlapping_batches_upload_in_turn(self, attachment_handler, api, files):
        gates = {file.name: asyncio.Event() for file in files[:2]}
        uploading_counts = []
        uploading_flags = []
        attachment_handler.is_uploading_changed.connect(uploading_flags.append)

        async def upload_file(attachment, session):
            uploading_counts.append(
                sum(a.status == AttachmentStatus.UPLOADING for a in attachment_handler.attachments)
            )
            await gates[attachment.name].wait()
            return remote(attachment.name)

        api.upload_file.side_effect = upload_file

        first = asyncio.create_task(attachment_handler.add(files[:1]))
        second = asyncio.create_task(attachment_handler.add(files[1:2]))
        await asyncio.sleep(0)

        assert api.upload_file.await_count == 1
        assert [a.status for a in attachment_handler.attachments] == [
            AttachmentStatus.UPLOADING,
            AttachmentStatus.PENDING,
        ]

        gates["photo.png"].set()
        assert await first == BatchResult(succeeded=1, failed=0)
        assert attachment_handler.is_uploading is True

        gates["report.pdf"].set()
        assert await second == BatchResult(succeeded=1, failed=0)

        assert attachment_handler.is_uploading is False
        assert uploading_flags == [True, False]
        assert uploading_counts == [1, 1]
        assert len(attachment_handler.ready_attachments) == 2

    @pytest.mark.asyncio
    async def test_kinds_and_previews(self, attachment_handler, api, files, tmp_path: Path):
        api.upload_file.side_effect = lambda attachment, session: remote(attachment.name)

        await attachment_handler.add(files)

        photo, report, song = attachment_handler.attachments
        assert (photo.kind, report.kind, song.kind) == (
            AttachmentKind.IMAGE,
            AttachmentKind.DOCUMENT,
            AttachmentKind.AUDIO,
        )
        assert Path(photo.preview_ref).read_bytes() == b"png-bytes"
        assert Path(photo.preview_ref).parent == tmp_path
        assert report.preview_ref is None
        assert photo.size_bytes == len(b"png-bytes")

    @pytest.mark.asyncio
    async def test_network_error_aborts_rest_of_batch(self, attachment_handler, api, files):
        api.upload_file.side_effect = [remote("photo.png"), NetworkError("too large", status_code=413)]
        notices = []
        attachment_handler.notice.connect(notices.append)

        result = await attachment_handler.add(files)

        assert result == BatchResult(succeeded=1, failed=2)
        assert [a.status for a in attachment_handler.attachments] == [
            AttachmentStatus.UPLOADED,
            AttachmentStatus.ERROR,
            AttachmentStatus.ERROR,
        ]
        assert api.upload_file.await_count == 2
        assert len(attachment_handler.ready_attachments) == 1
        assert notices == [UPLOAD_FAILED_MESSAGE]
        assert attachment_handler.is_uploading is False

    @pytest.mark.asyncio
    async def test_missing_token_reported_as_notice(self, attachment_handler, api, files, qtbot):
        api.has_token = False

        with qtbot.waitSignal(attachment_handler.notice, timeout=1000) as blocker:
            result = await attachment_handler.add(files)

        assert result == BatchResult(succeeded=0, failed=3)
        assert "authentication token" in blocker.args[0]
        assert attachment_handler.attachments == []
        api.upload_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_restores_stored_session(self, api, session_manager, session_store, files):
        session_store.save(Session(owner_id="owner-1", thread_id="stored"))
        handler = AttachmentHandler(api_client=api, session_manager=session_manager)
        api.upload_file.return_value = "/files/owner-1/stored/x"

        await handler.add(files[1:2])

        assert api.upload_file.await_args.args[1].thread_id == "stored"
        api.start_session.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_establishes_session_when_none_exists(self, api, session_manager, files):
        api.start_session.return_value = Session(owner_id="owner-1", thread_id="lazy")
        api.upload_file.return_value = "/files/owner-1/lazy/report.pdf"
        handler = AttachmentHandler(api_client=api, session_manager=session_manager)

        result = await handler.add(files[1:2])

        assert result == BatchResult(succeeded=1, failed=0)
        api.start_session.assert_awaited_once()
        assert api.upload_file.await_args.args[1].thread_id == "lazy"

    @pytest.mark.asyncio
    async def test_session_failure_aborts_batch(self, api, session_manager, files):
        api.start_session.side_effect = NetworkError("down")
        handler = AttachmentHandler(api_client=api, session_manager=session_manager)
        notices = []
        handler.notice.connect(notices.append)

        result = await handler.add(files)

        assert result.failed == 3
        assert len(notices) == 1
        assert notices[0].startswith("Error initializing the session")
        api.upload_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_session_after_reentry(self, api, session_manager, files):
        handler = AttachmentHandler(api_client=api, session_manager=session_manager)
        notices = []
        handler.notice.connect(notices.append)

        result = await handler.add(files, _reentered=True)

        assert result.failed == 3
        assert notices == [SESSION_RECOVERY_FAILED_MESSAGE]
        api.start_session.assert_not_awaited()


class TestRemove:
    """Test remove method."""

    @pytest.mark.asyncio
    async def test_remove_uploaded_deletes_remotely(self, attachment_handler, api, files):
        api.upload_file.return_value = remote("report.pdf")
        await attachment_handler.add(files[1:2])
        attachment = attachment_handler.attachments[0]

        assert await attachment_handler.remove(attachment.id) is True

        api.delete_file.assert_awaited_once_with(remote("report.pdf"))
        assert attachment_handler.attachments == []
        assert attachment_handler.ready_attachments == []

    @pytest.mark.asyncio
    async def test_failed_delete_leaves_error_state(self, attachment_handler, api, files):
        api.upload_file.return_value = remote("report.pdf")
        api.delete_file.side_effect = NetworkError("locked")
        await attachment_handler.add(files[1:2])
        attachment_id = attachment_handler.attachments[0].id
        statuses = []
        attachment_handler.attachment_status_changed.connect(lambda _, status: statuses.append(status))

        assert await attachment_handler.remove(attachment_id) is False

        assert statuses == ["deleting", "error"]
        assert attachment_handler.get(attachment_id).status == AttachmentStatus.ERROR
        assert len(attachment_handler.ready_attachments) == 1

        api.delete_file.side_effect = None
        assert await attachment_handler.remove(attachment_id) is True
        assert api.delete_file.await_count == 2

    @pytest.mark.asyncio
    async def test_remove_pending_is_local_only(self, attachment_handler, api, files):
        release = asyncio.Event()

        async def upload_file(attachment, session):
            await release.wait()
            return remote(attachment.name)

        api.upload_file.side_effect = upload_file

        add = asyncio.create_task(attachment_handler.add(files[:2]))
        await asyncio.sleep(0)
        pending = attachment_handler.attachments[1]
        assert pending.status == AttachmentStatus.PENDING

        assert await attachment_handler.remove(pending.id) is True
        api.delete_file.assert_not_awaited()

        release.set()
        result = await add

        assert result == BatchResult(succeeded=1, failed=0)
        assert api.upload_file.await_count == 1
        assert [a.name for a in attachment_handler.attachments] == ["photo.png"]

    @pytest.mark.asyncio
    async def test_remove_releases_preview(self, attachment_handler, api, files):
        api.upload_file.return_value = remote("photo.png")
        await attachment_handler.add(files[:1])
        photo = attachment_handler.attachments[0]

        await attachment_handler.remove(photo.id)

        assert not Path(photo.preview_ref).exists()

    @pytest.mark.asyncio
    async def test_remove_unknown_attachment(self, attachment_handler):
        assert await attachment_handler.remove("missing") is False


class TestClear:
    """Test clear method."""

    @pytest.mark.asyncio
    async def test_clear_is_best_effort(self, attachment_handler, api, files):
        api.upload_file.side_effect = lambda attachment, session: remote(attachment.name)
        api.delete_file.side_effect = [None, NetworkError("gone"), None]
        await attachment_handler.add(files)
        previews = [a.preview_ref for a in attachment_handler.attachments if a.preview_ref]

        result = await attachment_handler.clear()

        assert result == BatchResult(succeeded=2, failed=1)
        assert attachment_handler.attachments == []
        assert attachment_handler.ready_attachments == []
        assert all(not Path(preview).exists() for preview in previews)

    @pytest.mark.asyncio
    async def test_clear_skips_never_uploaded(self, attachment_handler, api, files):
        api.upload_file.side_effect = NetworkError("down")
        await attachment_handler.add(files)

        result = await attachment_handler.clear()

        assert result == BatchResult()
        api.delete_file.assert_not_awaited()
        assert not attachment_handler.has_attachments()
