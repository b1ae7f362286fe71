"""
Archive Constants

Fixed names and limits used by the archive session.
Following the same pattern as storage/constants.py for consistency.
Tunable values live in config/settings.py.
"""

# =============================================================================
# SESSION FILES
# =============================================================================

# Scratch files written next to the overlay layers for each session
CANDIDATE_LIST_NAME = "archive-candidates.lst"
TRIGGER_LIST_NAME = "archive-triggers.lst"
FILTER_WORK_DIR_NAME = "filter"

# Directory created inside the snapshot view for trigger files.
# Lives outside every category directory, so it is never enumerated.
TRIGGER_DIR_NAME = ".archive_triggers"

# Separator between category label and trigger path in the trigger list
TRIGGER_LIST_SEPARATOR = "\t"

# =============================================================================
# EXTERNAL COMMANDS
# =============================================================================

# Notifications are best effort and must not hold up the session
NOTIFY_TIMEOUT = 30  # seconds
