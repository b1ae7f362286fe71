"""
Archive Session Controller

Orchestrates one archiving pass over the mounted capture filesystem:
candidates → filtering → transport → reconciliation → cleanup.

Session handling:
- Fixed state order enforced by SessionStateMachine
- Every transition logged with counts
- Failures degrade the outcome, they never skip housekeeping
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

from archive.constants import (
    CANDIDATE_LIST_NAME,
    FILTER_WORK_DIR_NAME,
    TRIGGER_DIR_NAME,
    TRIGGER_LIST_NAME,
    TRIGGER_LIST_SEPARATOR,
)
from archive.interfaces.notifier_interface import NotifierInterface
from archive.interfaces.transport_interface import TransportInterface
from core.state_machine import SessionStateMachine
from storage.constants import ClipCategory, SessionState
from storage.interfaces.view_interface import SnapshotViewInterface
from storage.managers.ledger_manager import (
    ClipLedger,
    category_of,
    diff,
    prune,
    write_path_list,
)
from storage.managers.space_manager import SpaceReclaimer
from storage.models.clip import ArchiveOutcome


@dataclass
class TriggerSet:
    """
    Sentinel files telling the transport which categories have clips.

    Each category's trigger is labelled with that category alone.
    """

    list_file: Path
    trigger_dir: Optional[Path] = None
    entries: Dict[ClipCategory, Path] = field(default_factory=dict)

    def create(
        self,
        trigger_dir: Path,
        trigger_files: Dict[ClipCategory, str],
        categories: Iterable[ClipCategory],
    ) -> None:
        """Create the trigger file of every category that has clips"""
        self.trigger_dir = Path(trigger_dir)
        self.trigger_dir.mkdir(parents=True, exist_ok=True)
        for category in sorted(set(categories), key=lambda c: c.value):
            name = trigger_files.get(category)
            if not name:
                continue
            path = self.trigger_dir / name
            path.touch()
            self.entries[category] = path

        lines = [
            f"{category.value}{TRIGGER_LIST_SEPARATOR}{path}\n"
            for category, path in self.entries.items()
        ]
        self.list_file.parent.mkdir(parents=True, exist_ok=True)
        self.list_file.write_text("".join(lines), encoding="utf-8")

    def remove(self) -> None:
        """Remove trigger files, their directory and the list"""
        for path in self.entries.values():
            path.unlink(missing_ok=True)
        self.entries.clear()
        if self.trigger_dir is not None:
            try:
                self.trigger_dir.rmdir()
            except OSError:
                # Missing, or the transport left files; the view is discarded anyway
                pass
            self.trigger_dir = None
        self.list_file.unlink(missing_ok=True)


class ArchiveSessionController:
    """
    Runs archive sessions.

    Responsibilities:
    - Build the snapshot view and the candidate list
    - Diff candidates against the ledger and filter them
    - Invoke the transport with the candidate list and trigger set
    - Credit whatever the transport removed, persist the ledger
    - Reclaim space and trim, whatever happened before

    Usage:
        session = ArchiveSessionController(config, ledger, view,
                                           reclaimer, transport, notifier)
        outcome = session.run(Path("/mnt/cam"))
        print(outcome.message)
    """

    def __init__(
        self,
        config,
        ledger: ClipLedger,
        view: SnapshotViewInterface,
        reclaimer: SpaceReclaimer,
        transport: TransportInterface,
        notifier: NotifierInterface,
        state_machine: Optional[SessionStateMachine] = None,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize session controller.

        Args:
            config: ArchiveConfig (categories, floors, scratch paths)
            ledger: Ledger of archived clips
            view: Snapshot view of the capture filesystem
            reclaimer: Space reclaimer for the capture filesystem
            transport: Clip transport
            notifier: Notification sender
            state_machine: Session state tracking (created if None)
            clock: Monotonic clock for elapsed time
        """
        self.config = config
        self.ledger = ledger
        self.view = view
        self.reclaimer = reclaimer
        self.transport = transport
        self.notifier = notifier
        self.state_machine = state_machine or SessionStateMachine()
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    @property
    def state(self) -> SessionState:
        return self.state_machine.current_state

    def run(self, mount_root: Path) -> ArchiveOutcome:
        """
        Run one archive session.

        Args:
            mount_root: Where the capture filesystem is mounted

        Returns:
            ArchiveOutcome describing the session
        """
        mount_root = Path(mount_root)
        start = self.clock()
        outcome = ArchiveOutcome()
        scratch = Path(self.config.archive_scratch_dir)
        category_dirs = self.config.category_dirs

        self.logger.info("=" * 60)
        self.logger.info("Archive session starting")

        pruned: Set[str] = set()
        newly_archived: Set[str] = set()
        enumerated = False
        triggers = TriggerSet(list_file=scratch / TRIGGER_LIST_NAME)
        candidate_list = scratch / CANDIDATE_LIST_NAME

        if self.state != SessionState.IDLE:
            self.state_machine.finish("previous session was interrupted")

        try:
            # =================================================================
            # BUILDING_CANDIDATES
            # =================================================================
            self.state_machine.advance()
            view_root = None
            candidates: Set[str] = set()
            try:
                view_root = self.view.build()
                candidates = self.ledger.enumerate_candidates(
                    view_root,
                    category_dirs,
                    self.config.included_categories,
                )
                pruned = prune(self.ledger.load(), candidates)
                enumerated = True
            except Exception as e:
                self._fail(outcome, "Cannot build candidate list", e)

            outcome.candidate_counts = self._count_by_category(candidates)
            to_archive = diff(candidates, pruned)

            # =================================================================
            # FILTERING
            # =================================================================
            self.state_machine.advance(
                candidates=len(candidates),
                already_archived=len(pruned),
                new=len(to_archive),
            )
            kept: Set[str] = set()
            if enumerated and to_archive:
                try:
                    kept, ignored = self.ledger.filter_short_clips(
                        view_root,
                        to_archive,
                        self.config.min_clip_size_bytes,
                    )
                    outcome.ignored_count = len(ignored)
                    kept = self.ledger.apply_filter_hook(
                        kept,
                        scratch / FILTER_WORK_DIR_NAME,
                    )
                except Exception as e:
                    self._fail(outcome, "Filtering failed", e)
                    kept = set()
            outcome.to_archive_count = len(kept)

            # =================================================================
            # TRANSPORTING
            # =================================================================
            self.state_machine.advance(
                to_archive=len(kept),
                ignored=outcome.ignored_count,
            )
            self._notify(f"Archiving started: {len(kept)} new clip(s)")
            if kept:
                self._transport(view_root, kept, triggers, candidate_list, outcome)
            else:
                self.logger.info("Nothing to archive, skipping transport")

            # =================================================================
            # RECONCILING
            # =================================================================
            self.state_machine.advance(
                transport_ok=outcome.success,
            )
            if outcome.transport_invoked:
                try:
                    newly_archived = self.ledger.reconcile(view_root, kept)
                except Exception as e:
                    self._fail(outcome, "Reconciliation failed", e)
            outcome.newly_archived = newly_archived
            outcome.archived_counts = self._count_by_category(newly_archived)

        finally:
            self._discard_view(triggers, candidate_list)

        if enumerated:
            try:
                outcome.ledger_changed = self.ledger.save(pruned | newly_archived)
            except Exception as e:
                self._fail(outcome, "Failed to save ledger", e)

        # =====================================================================
        # CLEANING_UP
        # =====================================================================
        self.state_machine.advance(
            archived=outcome.archived_count,
            remaining=outcome.to_archive_count - outcome.archived_count,
        )
        self._clean_up(mount_root, outcome)

        outcome.elapsed_seconds = self.clock() - start
        self.state_machine.finish()

        self.logger.info(outcome.message)
        self.logger.info("=" * 60)
        self._notify(outcome.message)
        return outcome

    # =========================================================================
    # PHASES
    # =========================================================================

    def _transport(
        self,
        view_root: Path,
        kept: Set[str],
        triggers: TriggerSet,
        candidate_list: Path,
        outcome: ArchiveOutcome,
    ) -> None:
        """Write the lists, create triggers and run the transport"""
        try:
            list_file = write_path_list(candidate_list, kept)
            triggers.create(
                view_root / TRIGGER_DIR_NAME,
                self.config.trigger_files,
                self._categories_of(kept),
            )
            outcome.transport_invoked = True
            result = self.transport.transfer(
                view_root,
                list_file,
                triggers.trigger_dir,
                triggers.list_file,
            )
        except Exception as e:
            self.logger.error(f"Transport failed: {e}", exc_info=True)
            outcome.success = False
            outcome.error = str(e)
            return

        if not result.success:
            outcome.success = False
            outcome.error = result.error_message

    def _clean_up(self, mount_root: Path, outcome: ArchiveOutcome) -> None:
        """Reclaim space and trim; failures here are logged only"""
        try:
            outcome.reclaim = self.reclaimer.clean_up(
                mount_root,
                self.config.cam_min_free_bytes,
            )
        except Exception as e:
            self.logger.error(f"Space reclaiming failed: {e}", exc_info=True)

        try:
            outcome.trimmed = self.reclaimer.trim_free_space(mount_root)
        except Exception as e:
            self.logger.error(f"Trim failed: {e}", exc_info=True)

    def _discard_view(self, triggers: TriggerSet, candidate_list: Path) -> None:
        """Remove the transport's inputs and tear the view down"""
        try:
            triggers.remove()
            candidate_list.unlink(missing_ok=True)
        except OSError as e:
            self.logger.warning(f"Failed to remove trigger files: {e}")

        # The view must be gone before the lower layer changes
        try:
            self.view.teardown()
        except Exception as e:
            self.logger.error(f"Snapshot view teardown failed: {e}", exc_info=True)

    def _fail(self, outcome: ArchiveOutcome, message: str, error: Exception) -> None:
        """Mark the session degraded; the first error is the one reported"""
        self.logger.error(f"{message}: {error}", exc_info=True)
        outcome.success = False
        outcome.error = outcome.error or f"{message}: {error}"

    def _notify(self, message: str) -> None:
        try:
            self.notifier.send(self.config.notify_title, message)
        except Exception as e:
            self.logger.warning(f"Notification failed: {e}")

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _count_by_category(self, paths: Iterable[str]) -> Dict[ClipCategory, int]:
        counts = {category: 0 for category in self.config.included_categories}
        for path in paths:
            category = category_of(path, self.config.category_dirs)
            if category is not None:
                counts[category] = counts.get(category, 0) + 1
        return counts

    def _categories_of(self, paths: Iterable[str]) -> List[ClipCategory]:
        found = {category_of(path, self.config.category_dirs) for path in paths}
        return [category for category in found if category is not None]
