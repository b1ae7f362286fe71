"""
Logging Setup

Console + file logging for the service, and trimming of the log file.

The log file is append-only with timestamped lines. When it grows past
LOG_MAX_LINES it is cut down to its last LOG_MAX_LINES lines by writing a
temp file and renaming it over the original. The file handler is a
WatchedFileHandler, so it reopens the new file after the rename.
"""

import logging
import logging.handlers
import os
import sys
import threading
from collections import deque
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s | %(name)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    log_file: Path,
    level: int = logging.INFO,
    fallback_dir: Path = Path("logs"),
) -> Path:
    """
    Setup logging to stdout and to the log file.

    Args:
        log_file: Preferred log file location
        level: Root log level
        fallback_dir: Used when log_file's directory is not writable

    Returns:
        Path of the log file actually in use
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # Console handler (stdout, captured by journald)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_file = Path(log_file)
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.WatchedFileHandler(
            str(log_file),
            encoding="utf-8",
        )
    except (PermissionError, FileNotFoundError):
        # Fallback to local logs directory if the configured one is not writable
        fallback_dir.mkdir(exist_ok=True)
        fallback_log = fallback_dir / log_file.name
        logger.warning(f"Cannot write to {log_file}, using fallback: {fallback_log}")
        log_file = fallback_log
        file_handler = logging.handlers.WatchedFileHandler(
            str(log_file),
            encoding="utf-8",
        )

    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return log_file


def trim_log_file(log_file: Path, max_lines: int) -> bool:
    """
    Keep only the last max_lines lines of log_file.

    Args:
        log_file: Log file to trim
        max_lines: Number of lines to keep

    Returns:
        True if the file was rewritten, False if it was short enough
        or missing
    """
    log_file = Path(log_file)
    if not log_file.exists():
        return False

    with open(log_file, "r", encoding="utf-8", errors="replace") as f:
        total = 0
        tail = deque(maxlen=max_lines)
        for line in f:
            total += 1
            tail.append(line)

    if total <= max_lines:
        return False

    # Atomic write (write to temp file, then rename)
    tmp_file = log_file.with_name(log_file.name + ".tmp")
    with open(tmp_file, "w", encoding="utf-8") as f:
        f.writelines(tail)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp_file, log_file)

    logging.getLogger(__name__).info(
        f"Trimmed {log_file.name}: kept last {max_lines} of {total} lines",
    )
    return True


class LogTrimmer:
    """
    Background worker that trims the log file periodically.

    Fire-and-forget: it reports nothing back to the main loop and dies
    with the process.
    """

    def __init__(
        self,
        log_file: Path,
        max_lines: int,
        interval_seconds: float,
        logger: Optional[logging.Logger] = None,
    ):
        self.log_file = Path(log_file)
        self.max_lines = max_lines
        self.interval_seconds = interval_seconds
        self.logger = logger or logging.getLogger(__name__)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the worker thread"""
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._worker,
            name="log-trimmer",
            daemon=True,
        )
        self._thread.start()
        self.logger.debug("Log trimmer started")

    def stop(self, timeout: float = 5.0) -> None:
        """Ask the worker to stop and wait for it"""
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    def _worker(self) -> None:
        # Trim once at startup, then every interval until stopped
        while True:
            try:
                trim_log_file(self.log_file, self.max_lines)
            except OSError as e:
                self.logger.warning(f"Failed to trim log file: {e}")
            if self._stop_event.wait(self.interval_seconds):
                break
