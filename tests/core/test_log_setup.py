"""
Logging Setup Tests

Tests for log trimming showing:
- Only the last N lines survive
- Short files are left alone
- The file handler keeps writing after a trim

To run these tests:
    pytest tests/core/test_log_setup.py -v
"""

import logging
import logging.handlers

import pytest

from core.log_setup import LogTrimmer, setup_logging, trim_log_file


@pytest.fixture
def root_logger_restored():
    """Remove handlers added by setup_logging after the test"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


# =============================================================================
# TRIMMING
# =============================================================================


@pytest.mark.unit
def test_trim_keeps_last_lines(tmp_path):
    """
    Test trimming a long log.

    Should:
    - Keep exactly the last max_lines lines
    - Report that the file was rewritten
    """
    log_file = tmp_path / "archiveloop.log"
    log_file.write_text("".join(f"line {i}\n" for i in range(25)))

    assert trim_log_file(log_file, 10) is True

    lines = log_file.read_text().splitlines()
    assert lines == [f"line {i}" for i in range(15, 25)]
    assert not (tmp_path / "archiveloop.log.tmp").exists()


@pytest.mark.unit
def test_trim_leaves_short_log(tmp_path):
    """
    Test a log under the limit is not rewritten.
    """
    log_file = tmp_path / "archiveloop.log"
    log_file.write_text("one\ntwo\n")

    assert trim_log_file(log_file, 10) is False
    assert log_file.read_text() == "one\ntwo\n"


@pytest.mark.unit
def test_trim_missing_log(tmp_path):
    """
    Test trimming a log that does not exist yet.
    """
    assert trim_log_file(tmp_path / "missing.log", 10) is False


@pytest.mark.unit
def test_trimmer_runs_in_background(tmp_path):
    """
    Test LogTrimmer trims on start and stops cleanly.
    """
    log_file = tmp_path / "archiveloop.log"
    log_file.write_text("".join(f"line {i}\n" for i in range(50)))

    trimmer = LogTrimmer(log_file, max_lines=5, interval_seconds=3600)
    trimmer.start()
    trimmer.stop()

    assert len(log_file.read_text().splitlines()) == 5


# =============================================================================
# HANDLERS
# =============================================================================


@pytest.mark.unit_integration
def test_logging_survives_trim(tmp_path, root_logger_restored):
    """
    Test the file handler reopens the log after it is replaced.

    Should:
    - Use a WatchedFileHandler
    - Keep writing to the trimmed file
    """
    log_file = tmp_path / "archiveloop.log"
    used = setup_logging(log_file)
    logger = logging.getLogger("archiver.test")

    assert used == log_file
    assert any(
        isinstance(h, logging.handlers.WatchedFileHandler)
        for h in root_logger_restored.handlers
    )

    for i in range(20):
        logger.info(f"entry {i}")
    trim_log_file(log_file, 5)
    logger.info("after trim")

    lines = log_file.read_text().splitlines()
    assert "after trim" in lines[-1]
    assert not any("entry 0 |" in line for line in lines)
    assert any("entry 19 |" in line for line in lines)
