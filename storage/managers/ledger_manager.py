"""
Clip Ledger

Durable record of which clips have already been archived.
Single responsibility: ledger set algebra and persistence.

The ledger is the only state that must survive restarts. It is a plain
text file of sorted relative clip paths, one per line, replaced
atomically so a crash mid-write leaves the previous version intact.
"""

import logging
import os
import shlex
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from device.interfaces.command_interface import CommandError, CommandRunner
from storage.constants import ClipCategory
from storage.utils.path_utils import is_video_file

# Clip names come from the filesystem; undecodable bytes round-trip unchanged
LIST_ENCODING = "utf-8"
LIST_ERRORS = "surrogateescape"

# =============================================================================
# SET ALGEBRA
# =============================================================================
# Results are sets; anything written or compared is sorted first, so the
# outcome never depends on input order.


def intersect(ledger: Iterable[str], candidates: Iterable[str]) -> Set[str]:
    """Paths present in both"""
    return set(ledger) & set(candidates)


def prune(ledger: Iterable[str], candidates: Iterable[str]) -> Set[str]:
    """
    Drop ledger entries for clips that no longer exist.

    This bounds ledger growth: the result is always a subset of
    candidates.
    """
    return intersect(ledger, candidates)


def diff(candidates: Iterable[str], pruned_ledger: Iterable[str]) -> Set[str]:
    """Candidates not yet archived"""
    return set(candidates) - set(pruned_ledger)


def category_of(path: str, category_dirs: dict) -> Optional[ClipCategory]:
    """
    Find the category a clip path belongs to.

    Args:
        path: Relative clip path
        category_dirs: ClipCategory -> relative directory

    Returns:
        Category, or None if the path is outside every category
    """
    for category, directory in category_dirs.items():
        prefix = directory.strip("/") + "/"
        if path.startswith(prefix):
            return category
    return None


class ClipLedger:
    """
    Tracks archived clips across runs.

    Responsibilities:
    - Enumerate candidate clips in a snapshot view
    - Load and atomically save the ledger file
    - Prune / diff against the ledger
    - Filter out degenerate clips and apply the optional filter hook
    - Work out which clips the transport actually archived

    Usage:
        ledger = ClipLedger(Path("/mutable/archived-clips.txt"))
        candidates = ledger.enumerate_candidates(view, dirs, included)
        pruned = prune(ledger.load(), candidates)
        to_archive = diff(candidates, pruned)
    """

    def __init__(
        self,
        ledger_file: Path,
        runner: Optional[CommandRunner] = None,
        filter_hook: str = "",
        video_extensions: Sequence[str] = (".mp4",),
        logger: Optional[logging.Logger] = None,
    ):
        self.ledger_file = Path(ledger_file)
        self.runner = runner
        self.filter_hook = filter_hook
        self.video_extensions = tuple(ext.lower() for ext in video_extensions)
        self.logger = logger or logging.getLogger(__name__)

    # =========================================================================
    # ENUMERATION
    # =========================================================================

    def enumerate_candidates(
        self,
        view_root: Path,
        category_dirs: dict,
        included: Iterable[ClipCategory],
    ) -> Set[str]:
        """
        Walk the view for clips in the included categories.

        Symlinks are listed but never followed or dereferenced, so old
        snapshots they may point into are not pulled in.

        Args:
            view_root: Root of the snapshot view
            category_dirs: ClipCategory -> directory relative to view_root
            included: Categories to enumerate

        Returns:
            Set of relative clip paths (POSIX separators)
        """
        view_root = Path(view_root)
        candidates: Set[str] = set()

        for category in included:
            category_root = view_root / category_dirs[category]
            if not category_root.is_dir():
                self.logger.debug(f"No {category.value} directory at {category_root}")
                continue

            found = 0
            for dirpath, dirnames, filenames in os.walk(category_root, followlinks=False):
                # os.walk lists symlinked directories in dirnames without
                # descending; keep them as clips
                entries = list(filenames) + [
                    name for name in dirnames if os.path.islink(os.path.join(dirpath, name))
                ]
                for name in entries:
                    full = Path(dirpath) / name
                    candidates.add(full.relative_to(view_root).as_posix())
                    found += 1

            self.logger.debug(f"Found {found} {category.value} clip file(s)")

        return candidates

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def load(self) -> Set[str]:
        """
        Read the persisted ledger.

        Returns:
            Set of archived paths (empty if the file does not exist)
        """
        try:
            text = self.ledger_file.read_text(
                encoding=LIST_ENCODING, errors=LIST_ERRORS,
            )
        except FileNotFoundError:
            self.logger.info(f"No ledger at {self.ledger_file}, starting empty")
            return set()

        return set(_split_lines(text))

    def save(self, paths: Iterable[str]) -> bool:
        """
        Persist the ledger if its content changed.

        Written to a temp file in the same directory, synced, then renamed
        over the ledger, so readers see either the old or the new file.

        Args:
            paths: Complete set of archived paths

        Returns:
            True if the file was rewritten
        """
        entries = sorted(set(paths))
        content = "".join(f"{entry}\n" for entry in entries)

        try:
            current = self.ledger_file.read_text(
                encoding=LIST_ENCODING, errors=LIST_ERRORS,
            )
            if current == content:
                self.logger.debug("Ledger unchanged, not rewriting")
                return False
        except FileNotFoundError:
            if not entries:
                return False

        self.ledger_file.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.ledger_file.name}.",
            suffix=".tmp",
            dir=self.ledger_file.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding=LIST_ENCODING, errors=LIST_ERRORS) as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.ledger_file)
        except BaseException:
            # Never leave the temp file behind; the old ledger is untouched
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

        self._sync_directory()
        self.logger.info(f"Ledger saved ({len(entries)} entries)")
        return True

    def _sync_directory(self) -> None:
        """Make the rename durable across power loss"""
        try:
            dir_fd = os.open(self.ledger_file.parent, os.O_RDONLY)
        except OSError:
            return
        try:
            os.fsync(dir_fd)
        except OSError:
            pass
        finally:
            os.close(dir_fd)

    # =========================================================================
    # FILTERING
    # =========================================================================

    def filter_short_clips(
        self,
        view_root: Path,
        paths: Iterable[str],
        min_bytes: int,
    ) -> Tuple[Set[str], Set[str]]:
        """
        Remove degenerate video files.

        Video files are dereferenced and size-checked; dangling links and
        files under min_bytes are ignored. Companion files (event.json,
        thumbnails) always pass.

        Returns:
            Tuple of (kept, ignored)
        """
        kept: Set[str] = set()
        ignored: Set[str] = set()

        for path in paths:
            if not is_video_file(path, self.video_extensions):
                kept.add(path)
                continue

            try:
                size = (Path(view_root) / path).stat().st_size
            except OSError:
                size = -1

            if size < min_bytes:
                ignored.add(path)
            else:
                kept.add(path)

        if ignored:
            self.logger.info(
                f"Ignoring {len(ignored)} clip(s) smaller than {min_bytes} bytes"
            )
        return kept, ignored

    def apply_filter_hook(self, paths: Set[str], work_dir: Path) -> Set[str]:
        """
        Run the optional external filter over the archive list.

        The hook is called as `hook <in_list> <out_list>` and writes the
        paths to keep. Paths it adds that were not offered are dropped.
        A missing or failing hook leaves the list unchanged.

        Returns:
            Filtered set of paths
        """
        if not self.filter_hook or self.runner is None:
            return set(paths)

        hook_args = shlex.split(self.filter_hook)
        if not os.access(hook_args[0], os.X_OK):
            self.logger.debug(f"No filter hook at {hook_args[0]}")
            return set(paths)

        work_dir = Path(work_dir)
        work_dir.mkdir(parents=True, exist_ok=True)
        in_list = work_dir / "filter-in.lst"
        out_list = work_dir / "filter-out.lst"
        write_path_list(in_list, paths)
        out_list.unlink(missing_ok=True)

        try:
            result = self.runner.run(hook_args + [str(in_list), str(out_list)])
        except CommandError as e:
            self.logger.warning(f"Filter hook unavailable: {e}")
            return set(paths)

        if not result.ok or not out_list.exists():
            self.logger.warning(
                f"Filter hook failed ({result.returncode}), using unfiltered list"
            )
            return set(paths)

        filtered = intersect(read_path_list(out_list), paths)
        self.logger.info(f"Filter hook kept {len(filtered)} of {len(paths)} clip(s)")
        return filtered

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    def reconcile(self, view_root: Path, to_archive: Iterable[str]) -> Set[str]:
        """
        Clips the transport removed from the view, i.e. archived.

        Partial transport progress counts: whatever is gone is credited,
        whatever remains is retried next session.
        """
        view_root = Path(view_root)
        return {
            path for path in to_archive
            if not os.path.lexists(view_root / path)
        }


# =============================================================================
# LIST FILES
# =============================================================================


def write_path_list(list_file: Path, paths: Iterable[str]) -> Path:
    """Write paths sorted, one per line"""
    list_file = Path(list_file)
    list_file.parent.mkdir(parents=True, exist_ok=True)
    list_file.write_text(
        "".join(f"{p}\n" for p in sorted(set(paths))),
        encoding=LIST_ENCODING,
        errors=LIST_ERRORS,
    )
    return list_file


def read_path_list(list_file: Path) -> List[str]:
    """Read a list written by write_path_list (blank lines ignored)"""
    text = Path(list_file).read_text(encoding=LIST_ENCODING, errors=LIST_ERRORS)
    return _split_lines(text)


def _split_lines(text: str) -> List[str]:
    # Only newline separates entries; other whitespace is part of the path
    return [line for line in text.split("\n") if line]
