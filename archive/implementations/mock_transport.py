"""
Mock Transport Implementation

Simulated transport for testing without a remote archive.
Similar to MockCommandRunner in the device module.
"""

import logging
import os
import random
from pathlib import Path
from typing import Iterable, List, Set

from archive.interfaces.transport_interface import (
    TransportError,
    TransportInterface,
    TransportResult,
)
from storage.managers.ledger_manager import read_path_list


class MockTransport(TransportInterface):
    """
    Mock clip transport.

    "Archives" clips by deleting them from the view, as the real
    transport does once a clip is stored remotely.

    Useful for:
    - Unit tests (partial progress, failures, exceptions)
    - Running the whole service with --mock
    """

    def __init__(
        self,
        returncode: int = 0,
        keep: Iterable[str] = (),
        fail_rate: float = 0.0,
        raise_error: bool = False,
    ):
        """
        Initialize mock transport.

        Args:
            returncode: Exit status to report
            keep: Paths to leave in the view (simulated partial progress)
            fail_rate: Probability of leaving each clip behind (0.0 to 1.0)
            raise_error: Raise TransportError instead of running

        Example:
            # Reports success but only archives B
            transport = MockTransport(keep={"TeslaCam/SavedClips/e/C.mp4"})
        """
        self.logger = logging.getLogger(__name__)
        self.returncode = returncode
        self.keep: Set[str] = set(keep)
        self.fail_rate = fail_rate
        self.raise_error = raise_error

        # Track transfer history for testing
        self.transfer_history: List[dict] = []

        self.logger.info(
            f"Mock Transport initialized "
            f"(returncode: {returncode}, fail_rate: {fail_rate})",
        )

    def transfer(
        self,
        view_root: Path,
        list_file: Path,
        trigger_dir: Path,
        trigger_list: Path,
    ) -> TransportResult:
        if self.raise_error:
            raise TransportError("Simulated transport error")

        requested = read_path_list(list_file)
        triggers = (
            read_path_list(trigger_list) if Path(trigger_list).exists() else []
        )

        archived = []
        for path in requested:
            if path in self.keep or random.random() < self.fail_rate:
                continue
            target = Path(view_root) / path
            if os.path.lexists(target):
                target.unlink()
                archived.append(path)

        self.transfer_history.append({
            "view_root": Path(view_root),
            "requested": requested,
            "archived": archived,
            "triggers": triggers,
            "trigger_files": sorted(p.name for p in Path(trigger_dir).iterdir())
            if Path(trigger_dir).is_dir() else [],
        })

        self.logger.info(
            f"[MOCK] Archived {len(archived)} of {len(requested)} clip(s)"
        )
        return TransportResult(
            success=self.returncode == 0,
            returncode=self.returncode,
            error_message=(
                None if self.returncode == 0
                else f"transport exited {self.returncode}"
            ),
        )

    def is_available(self) -> bool:
        return True
