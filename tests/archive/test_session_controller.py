"""
Archive Session Controller Tests

Tests for ArchiveSessionController showing:
- Fixed state order, even on failure
- Ledger arithmetic over a full session
- Partial transport progress is credited, the rest retried
- Cleanup always runs, after the ledger is saved and the view is gone
- Trigger files and notifications

Collaborators are mocks except the ledger and the copy-based view, which
work on real files under tmp_path.

To run these tests:
    pytest tests/archive/test_session_controller.py -v
"""

import pytest

from archive.constants import (
    CANDIDATE_LIST_NAME,
    FILTER_WORK_DIR_NAME,
    TRIGGER_LIST_NAME,
)
from archive.implementations.mock_notifier import MockNotifier
from archive.implementations.mock_transport import MockTransport
from core.state_machine import SessionStateMachine
from device.interfaces.command_interface import CommandResult
from storage.constants import ClipCategory, SessionState
from storage.factory import StorageFactory
from storage.interfaces.view_interface import SnapshotViewInterface, ViewError
from storage.managers.ledger_manager import ClipLedger
from storage.models.clip import ReclaimResult

SAVED_FRONT = "TeslaCam/SavedClips/2024-05-01_10-00-00/front.mp4"
SAVED_BACK = "TeslaCam/SavedClips/2024-05-01_10-00-00/back.mp4"
SENTRY_FRONT = "TeslaCam/SentryClips/2024-05-02_09-00-00/front.mp4"
RECENT_FRONT = "TeslaCam/RecentClips/2024-05-03_07-00-00-front.mp4"
DELETED_CLIP = "TeslaCam/SentryClips/2024-04-01_08-00-00/front.mp4"

FULL_SESSION = [
    SessionState.IDLE,
    SessionState.BUILDING_CANDIDATES,
    SessionState.FILTERING,
    SessionState.TRANSPORTING,
    SessionState.RECONCILING,
    SessionState.CLEANING_UP,
    SessionState.IDLE,
]


@pytest.fixture
def three_clips(add_clip):
    """SAVED_FRONT, SAVED_BACK and SENTRY_FRONT on the capture filesystem"""
    for clip in (SAVED_FRONT, SAVED_BACK, SENTRY_FRONT):
        add_clip(clip)


class RecordingReclaimer:
    """Reclaimer stand-in that snapshots the world when cleanup runs"""

    def __init__(self, ledger, view):
        self.ledger = ledger
        self.view = view
        self.ledger_at_cleanup = None
        self.view_root_at_cleanup = "unset"
        self.cleaned = []
        self.trimmed = []

    def clean_up(self, mount_root, floor_bytes):
        self.ledger_at_cleanup = self.ledger.load()
        self.view_root_at_cleanup = self.view.root
        self.cleaned.append(mount_root)
        return ReclaimResult(
            floor_bytes=floor_bytes,
            free_bytes_before=1,
            free_bytes_after=floor_bytes + 1,
        )

    def trim_free_space(self, mount_root):
        self.trimmed.append(mount_root)
        return True


class BrokenView(SnapshotViewInterface):
    """View whose build always fails"""

    def __init__(self):
        self.teardown_count = 0

    @property
    def root(self):
        return None

    def build(self):
        raise ViewError("overlay: no such device")

    def teardown(self):
        self.teardown_count += 1


# =============================================================================
# STATE ORDER
# =============================================================================


@pytest.mark.unit
def test_session_visits_every_state(make_session, three_clips, cam_root):
    """
    Test a normal session walks the full state order back to IDLE.
    """
    session = make_session()

    session.run(cam_root)

    assert session.state_machine.history == FULL_SESSION
    assert session.state == SessionState.IDLE


@pytest.mark.unit
def test_failed_session_visits_every_state(make_session, three_clips, cam_root):
    """
    Test a failing transport does not skip any state.
    """
    session = make_session(transport=MockTransport(raise_error=True))

    session.run(cam_root)

    assert session.state_machine.history == FULL_SESSION


@pytest.mark.unit
def test_interrupted_state_machine_is_reset(make_session, three_clips, cam_root):
    """
    Test a state machine left mid-session is finished before starting.
    """
    machine = SessionStateMachine()
    machine.advance()
    machine.advance()
    session = make_session(state_machine=machine)

    outcome = session.run(cam_root)

    assert outcome.success is True
    assert machine.history[-6:] == FULL_SESSION[1:]


# =============================================================================
# LEDGER ARITHMETIC
# =============================================================================


@pytest.mark.unit_integration
def test_partial_progress_credited(make_session, ledger, add_clip, cam_root):
    """
    Test a session where the transport archives only part of its list.

    Ledger {A, X}, source {A, B, C}, transport leaves C behind:
    - X is pruned (no longer on the source)
    - Transport is asked for {B, C}
    - Only B is credited; C is retried next session
    """
    for clip in (SAVED_FRONT, SAVED_BACK, SENTRY_FRONT):
        add_clip(clip)
    ledger.save({SAVED_FRONT, DELETED_CLIP})
    transport = MockTransport(keep={SENTRY_FRONT})
    session = make_session(transport=transport)

    outcome = session.run(cam_root)

    assert transport.transfer_history[0]["requested"] == sorted([SAVED_BACK, SENTRY_FRONT])
    assert outcome.newly_archived == {SAVED_BACK}
    assert outcome.archived_count == 1
    assert outcome.success is True
    assert ledger.load() == {SAVED_FRONT, SAVED_BACK}
    assert outcome.candidate_counts[ClipCategory.SAVED] == 2
    assert outcome.archived_counts == {ClipCategory.SAVED: 1, ClipCategory.SENTRY: 0}


@pytest.mark.unit
def test_source_clips_never_deleted_by_archiving(make_session, three_clips, cam_root):
    """
    Test the transport's deletions stay inside the view.
    """
    session = make_session()

    session.run(cam_root)

    for clip in (SAVED_FRONT, SAVED_BACK, SENTRY_FRONT):
        assert (cam_root / clip).exists()


@pytest.mark.unit
def test_excluded_categories_not_archived(make_session, add_clip, ledger, cam_root):
    """
    Test clips of excluded categories are never offered or recorded.
    """
    add_clip(SAVED_FRONT)
    add_clip(RECENT_FRONT)
    transport = MockTransport()
    session = make_session(transport=transport)

    session.run(cam_root)

    assert transport.transfer_history[0]["requested"] == [SAVED_FRONT]
    assert ledger.load() == {SAVED_FRONT}


@pytest.mark.unit
def test_short_clips_ignored(make_session, add_clip, ledger, cam_root):
    """
    Test degenerate clips are neither transported nor recorded.

    They remain candidates and are looked at again next session.
    """
    add_clip(SAVED_FRONT)
    add_clip(SENTRY_FRONT, size=1_000)
    transport = MockTransport()
    session = make_session(transport=transport)

    outcome = session.run(cam_root)

    assert outcome.ignored_count == 1
    assert transport.transfer_history[0]["requested"] == [SAVED_FRONT]
    assert ledger.load() == {SAVED_FRONT}


@pytest.mark.unit
def test_repeated_sessions_are_idempotent(make_session, three_clips, ledger, cam_root):
    """
    Test a second session with no new clips changes nothing.

    Should:
    - Not invoke the transport
    - Not rewrite the ledger
    """
    transport = MockTransport()
    session = make_session(transport=transport)

    first = session.run(cam_root)
    second = session.run(cam_root)

    assert first.archived_count == 3
    assert second.transport_invoked is False
    assert second.ledger_changed is False
    assert len(transport.transfer_history) == 1
    assert ledger.load() == {SAVED_FRONT, SAVED_BACK, SENTRY_FRONT}


@pytest.mark.unit
def test_nothing_to_archive_skips_transport(make_session, cam_root):
    """
    Test an empty source: no transport, cleanup still runs.
    """
    transport = MockTransport()
    session = make_session(transport=transport)

    outcome = session.run(cam_root)

    assert transport.transfer_history == []
    assert outcome.success is True
    assert outcome.reclaim is not None
    assert outcome.message == "Nothing to archive (0 ignored)"


@pytest.mark.unit
def test_filter_hook_narrows_list(
    make_config, make_session, mock_runner, three_clips, cam_root, tmp_path
):
    """
    Test the external filter hook limits what is transported.
    """
    hook = tmp_path / "bin" / "archive-filter"
    hook.parent.mkdir()
    hook.write_text("#!/bin/sh\n")
    hook.chmod(0o755)

    def only_sentry(args):
        with open(args[2], "w") as f:
            f.write(f"{SENTRY_FRONT}\n")
        return CommandResult(args, 0)

    mock_runner.on([str(hook)], only_sentry)
    config = make_config(filter_hook=str(hook))
    transport = MockTransport()
    session = make_session(
        ledger=StorageFactory.create_ledger(config, mock_runner),
        transport=transport,
    )

    outcome = session.run(cam_root)

    assert transport.transfer_history[0]["requested"] == [SENTRY_FRONT]
    assert outcome.newly_archived == {SENTRY_FRONT}


# =============================================================================
# FAILURES
# =============================================================================


@pytest.mark.unit
def test_transport_failure_still_reconciles(make_session, three_clips, ledger, cam_root):
    """
    Test a non-zero transport exit.

    Should:
    - Credit what the transport removed before failing
    - Mark the session failed
    - Still clean up
    """
    transport = MockTransport(returncode=23, keep={SENTRY_FRONT})
    session = make_session(transport=transport)

    outcome = session.run(cam_root)

    assert outcome.success is False
    assert outcome.newly_archived == {SAVED_FRONT, SAVED_BACK}
    assert ledger.load() == {SAVED_FRONT, SAVED_BACK}
    assert outcome.reclaim is not None
    assert outcome.message.startswith("Archiving failed")


@pytest.mark.unit
def test_transport_exception_still_cleans_up(
    make_session, three_clips, ledger, view, cam_root
):
    """
    Test a transport that cannot be started.
    """
    session = make_session(transport=MockTransport(raise_error=True))

    outcome = session.run(cam_root)

    assert outcome.success is False
    assert outcome.newly_archived == set()
    assert ledger.load() == set()
    assert outcome.reclaim is not None
    assert view.root is None


@pytest.mark.unit
def test_view_failure_keeps_ledger(make_session, three_clips, ledger, cam_root):
    """
    Test a view that cannot be built.

    Should:
    - Leave the ledger byte-identical (nothing was enumerated)
    - Skip the transport
    - Still tear down and clean up
    """
    ledger.save({SAVED_FRONT, DELETED_CLIP})
    before = ledger.ledger_file.read_bytes()
    view = BrokenView()
    transport = MockTransport()
    session = make_session(view=view, transport=transport)

    outcome = session.run(cam_root)

    assert outcome.success is False
    assert ledger.ledger_file.read_bytes() == before
    assert transport.transfer_history == []
    assert view.teardown_count == 1
    assert outcome.reclaim is not None
    assert session.state_machine.history == FULL_SESSION


@pytest.mark.unit
def test_undecodable_ledger_entry_still_cleans_up(
    make_session, three_clips, ledger, view, cam_root
):
    """
    Test a ledger holding a name that is not valid UTF-8.

    Should:
    - Complete the session and visit every state
    - Prune the stale entry like any other
    - Still reclaim space and trim
    """
    ledger.ledger_file.parent.mkdir(parents=True)
    ledger.ledger_file.write_bytes(
        SAVED_FRONT.encode() + b"\nTeslaCam/SavedClips/\xff\xfe.mp4\n"
    )
    reclaimer = RecordingReclaimer(ledger, view)
    session = make_session(reclaimer=reclaimer)

    outcome = session.run(cam_root)

    assert outcome.success is True
    assert outcome.newly_archived == {SAVED_BACK, SENTRY_FRONT}
    assert ledger.load() == {SAVED_FRONT, SAVED_BACK, SENTRY_FRONT}
    assert reclaimer.trimmed == [cam_root]
    assert session.state_machine.history == FULL_SESSION


@pytest.mark.unit
def test_ledger_load_error_still_cleans_up(
    make_session, three_clips, ledger, view, cam_root, monkeypatch
):
    """
    Test an unexpected error while reading the ledger.

    Should:
    - Mark the session failed and skip the transport
    - Leave the ledger file as it was
    - Still tear down, clean up and trim
    """
    ledger.save({SAVED_FRONT})
    before = ledger.ledger_file.read_bytes()

    def broken_load():
        raise ValueError("ledger is garbage")

    monkeypatch.setattr(ledger, "load", broken_load)
    reclaimer = RecordingReclaimer(ClipLedger(ledger.ledger_file), view)
    transport = MockTransport()
    session = make_session(reclaimer=reclaimer, transport=transport)

    outcome = session.run(cam_root)

    assert outcome.success is False
    assert "ledger is garbage" in outcome.error
    assert transport.transfer_history == []
    assert ledger.ledger_file.read_bytes() == before
    assert view.root is None
    assert reclaimer.cleaned == [cam_root]
    assert reclaimer.trimmed == [cam_root]
    assert session.state_machine.history == FULL_SESSION


@pytest.mark.unit
def test_filter_hook_write_failure_still_cleans_up(
    make_config, make_session, mock_runner, three_clips, ledger, view, cam_root,
    tmp_path,
):
    """
    Test the filter hook's work directory cannot be created.

    Should:
    - Mark the session failed and skip the transport
    - Still clean up and trim
    """
    hook = tmp_path / "bin" / "archive-filter"
    hook.parent.mkdir()
    hook.write_text("#!/bin/sh\n")
    hook.chmod(0o755)
    config = make_config(filter_hook=str(hook))
    blocker = config.archive_scratch_dir / FILTER_WORK_DIR_NAME
    blocker.parent.mkdir(parents=True, exist_ok=True)
    blocker.write_text("not a directory")

    reclaimer = RecordingReclaimer(ledger, view)
    transport = MockTransport()
    session = make_session(
        ledger=StorageFactory.create_ledger(config, mock_runner),
        reclaimer=reclaimer,
        transport=transport,
    )

    outcome = session.run(cam_root)

    assert outcome.success is False
    assert transport.transfer_history == []
    assert outcome.newly_archived == set()
    assert reclaimer.trimmed == [cam_root]
    assert session.state_machine.history == FULL_SESSION


@pytest.mark.unit
def test_ledger_saved_before_cleanup(make_session, three_clips, ledger, view, cam_root):
    """
    Test ordering around cleanup.

    When cleanup starts the ledger already holds the new clips and the
    view is gone, since cleanup changes the lower layer.
    """
    reclaimer = RecordingReclaimer(ledger, view)
    session = make_session(reclaimer=reclaimer)

    outcome = session.run(cam_root)

    assert reclaimer.ledger_at_cleanup == {SAVED_FRONT, SAVED_BACK, SENTRY_FRONT}
    assert reclaimer.view_root_at_cleanup is None
    assert reclaimer.cleaned == [cam_root]
    assert reclaimer.trimmed == [cam_root]
    assert outcome.trimmed is True


@pytest.mark.unit
def test_notifier_failure_ignored(make_session, three_clips, cam_root):
    """
    Test a notifier that raises does not affect the session.
    """
    class RaisingNotifier(MockNotifier):
        def send(self, title, message):
            raise RuntimeError("push service down")

    session = make_session(notifier=RaisingNotifier())

    outcome = session.run(cam_root)

    assert outcome.success is True
    assert outcome.archived_count == 3


# =============================================================================
# TRIGGERS
# =============================================================================


@pytest.mark.unit
def test_triggers_per_category(make_session, add_clip, config, cam_root):
    """
    Test one labelled trigger per category with clips to archive.

    Should:
    - Create triggers only for categories that have clips
    - List each as "<category>\\t<path>"
    - Remove triggers and lists after the session
    """
    add_clip(SENTRY_FRONT)
    transport = MockTransport()
    session = make_session(transport=transport)

    session.run(cam_root)

    transfer = transport.transfer_history[0]
    assert transfer["trigger_files"] == ["ARCHIVE_SENTRY"]
    assert len(transfer["triggers"]) == 1
    category, path = transfer["triggers"][0].split("\t")
    assert category == "sentry"
    assert path.endswith("ARCHIVE_SENTRY")
    assert not (config.archive_scratch_dir / TRIGGER_LIST_NAME).exists()
    assert not (config.archive_scratch_dir / CANDIDATE_LIST_NAME).exists()


@pytest.mark.unit
def test_triggers_for_every_category(make_session, three_clips, cam_root):
    transport = MockTransport()
    session = make_session(transport=transport)

    session.run(cam_root)

    assert transport.transfer_history[0]["trigger_files"] == [
        "ARCHIVE_SAVED",
        "ARCHIVE_SENTRY",
    ]


# =============================================================================
# NOTIFICATIONS
# =============================================================================


@pytest.mark.unit
def test_start_and_end_notifications(make_session, three_clips, notifier, config, cam_root):
    """
    Test one notification when transport starts and one with the outcome.
    """
    ticks = iter([100.0, 142.0])
    session = make_session(clock=lambda: next(ticks))

    outcome = session.run(cam_root)

    assert notifier.messages == [
        (config.notify_title, "Archiving started: 3 new clip(s)"),
        (config.notify_title, "Archived 3 clip(s) (2 saved, 1 sentry) in 42 seconds"),
    ]
    assert outcome.elapsed_seconds == 42.0
