"""
Archiver Configuration Handler

Builds the configuration object that is handed to every component.
Defaults come from config/settings.py (environment + .env), optionally
overridden by a YAML file.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from config import settings
from storage.constants import ClipCategory


class ConfigurationError(Exception):
    """
    Raised when configuration is unusable and no safe default exists.

    The service treats this as fatal: it logs and exits non-zero.
    """


class ArchiveConfig:
    """
    Archiver configuration with YAML file support.

    Reads from config/archiver.yaml if it exists, otherwise uses defaults
    from settings.py. Unlike module-level settings, an ArchiveConfig is
    passed explicitly to each component, so tests can build isolated
    configurations.

    Usage:
        config = ArchiveConfig()
        server = config.archive_server
        floor = config.cam_min_free_bytes
    """

    # Default config file location
    DEFAULT_CONFIG_PATH = Path("config/archiver.yaml")

    def __init__(
        self,
        config_path: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML config file (None = use default)
            overrides: Values applied on top of defaults and file (tests)
        """
        self.logger = logging.getLogger(__name__)
        self.config_path = Path(config_path or self.DEFAULT_CONFIG_PATH)
        self._overrides = dict(overrides or {})

        self._config = self._load_config()

        self.logger.debug(f"Archiver config loaded ({self.config_path})")

    def _get_defaults(self) -> Dict[str, Any]:
        """Get default configuration values from settings"""
        return {
            # Archive endpoint
            "archive_server": settings.ARCHIVE_SERVER,
            "archive_port": settings.ARCHIVE_PORT,
            "reachability_timeout": settings.REACHABILITY_TIMEOUT,
            "reachability_poll_interval": settings.REACHABILITY_POLL_INTERVAL,

            # Categories
            "archive_savedclips": settings.ARCHIVE_SAVEDCLIPS,
            "archive_sentryclips": settings.ARCHIVE_SENTRYCLIPS,
            "archive_recentclips": settings.ARCHIVE_RECENTCLIPS,
            "archive_trackmodeclips": settings.ARCHIVE_TRACKMODECLIPS,
            "dir_savedclips": settings.DIR_SAVEDCLIPS,
            "dir_sentryclips": settings.DIR_SENTRYCLIPS,
            "dir_recentclips": settings.DIR_RECENTCLIPS,
            "dir_trackmodeclips": settings.DIR_TRACKMODECLIPS,
            "trigger_file_saved": settings.TRIGGER_FILE_SAVED,
            "trigger_file_sentry": settings.TRIGGER_FILE_SENTRY,
            "trigger_file_recent": settings.TRIGGER_FILE_RECENT,
            "trigger_file_trackmode": settings.TRIGGER_FILE_TRACKMODE,
            "min_clip_size_bytes": settings.MIN_CLIP_SIZE_BYTES,
            "video_file_extensions": list(settings.VIDEO_FILE_EXTENSIONS),

            # Mounts
            "cam_mount_name": settings.CAM_MOUNT_NAME,
            "cam_backing_image": str(settings.CAM_BACKING_IMAGE),
            "cam_mount_point": str(settings.CAM_MOUNT_POINT),
            "mount_timeout_seconds": settings.MOUNT_TIMEOUT_SECONDS,
            "fsck_timeout_seconds": settings.FSCK_TIMEOUT_SECONDS,
            "fsck_partition_suffix": settings.FSCK_PARTITION_SUFFIX,
            "archive_view_mount_point": str(settings.ARCHIVE_VIEW_MOUNT_POINT),
            "archive_scratch_dir": str(settings.ARCHIVE_SCRATCH_DIR),

            # Space
            "cam_min_free_bytes": settings.CAM_MIN_FREE_BYTES,
            "recoverable_artifact_pattern": settings.RECOVERABLE_ARTIFACT_PATTERN,

            # Retry
            "retry_attempts": settings.RETRY_ATTEMPTS,
            "retry_delay_seconds": settings.RETRY_DELAY_SECONDS,

            # State files
            "ledger_file": str(settings.LEDGER_FILE),
            "simulate_reachable_file": str(settings.SIMULATE_REACHABLE_FILE),
            "simulate_unreachable_file": str(settings.SIMULATE_UNREACHABLE_FILE),
            "lock_file": str(settings.LOCK_FILE),

            # External commands
            "probe_command": settings.PROBE_COMMAND,
            "gadget_enable_command": settings.GADGET_ENABLE_COMMAND,
            "gadget_disable_command": settings.GADGET_DISABLE_COMMAND,
            "gadget_lun_file": str(settings.GADGET_LUN_FILE),
            "transport_command": settings.TRANSPORT_COMMAND,
            "transport_timeout_seconds": settings.TRANSPORT_TIMEOUT_SECONDS,
            "notify_command": settings.NOTIFY_COMMAND,
            "notify_title": settings.NOTIFY_TITLE,
            "filter_hook": settings.FILTER_HOOK,
            "trim_command": settings.TRIM_COMMAND,

            # Logging
            "log_dir": settings.LOG_DIR,
            "log_file_name": settings.LOG_SERVICE_FILE,
            "log_max_lines": settings.LOG_MAX_LINES,
            "log_trim_interval_seconds": settings.LOG_TRIM_INTERVAL_SECONDS,
        }

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file or use defaults"""
        config = self._get_defaults()

        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    file_config = yaml.safe_load(f) or {}

                # File overrides defaults
                config.update(file_config)

                self.logger.info(f"Loaded config from {self.config_path}")

            except (OSError, yaml.YAMLError) as e:
                self.logger.warning(
                    f"Failed to load config from {self.config_path}: {e}. "
                    f"Using defaults."
                )

        config.update(self._overrides)

        self._validate_config(config)

        return config

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """Validate configuration values"""
        if int(config["retry_attempts"]) < 1:
            raise ConfigurationError("retry_attempts must be at least 1")

        if float(config["retry_delay_seconds"]) < 0:
            raise ConfigurationError("retry_delay_seconds cannot be negative")

        if int(config["cam_min_free_bytes"]) < 0:
            raise ConfigurationError("cam_min_free_bytes cannot be negative")

        if int(config["min_clip_size_bytes"]) < 0:
            raise ConfigurationError("min_clip_size_bytes cannot be negative")

        if int(config["log_max_lines"]) < 1:
            raise ConfigurationError("log_max_lines must be positive")

        if not any(
            config[key]
            for key in (
                "archive_savedclips",
                "archive_sentryclips",
                "archive_recentclips",
                "archive_trackmodeclips",
            )
        ):
            self.logger.warning(
                "All clip categories are disabled. Nothing will be archived."
            )

    def validate_endpoint(self) -> str:
        """
        Return the archive endpoint, or raise if none is configured.

        Returns:
            Archive server address

        Raises:
            ConfigurationError: If ARCHIVE_SERVER is empty
        """
        server = str(self._config.get("archive_server") or "").strip()
        if not server:
            raise ConfigurationError(
                "ARCHIVE_SERVER is not set. Add it to the environment or .env "
                "file: ARCHIVE_SERVER=archive.local"
            )
        return server

    # =========================================================================
    # PROPERTY ACCESSORS
    # =========================================================================

    @property
    def archive_server(self) -> str:
        """Address of the remote archive"""
        return str(self._config["archive_server"] or "")

    @property
    def archive_port(self) -> int:
        """Port used by the socket probe"""
        return int(self._config["archive_port"])

    @property
    def reachability_timeout(self) -> float:
        return float(self._config["reachability_timeout"])

    @property
    def reachability_poll_interval(self) -> float:
        return float(self._config["reachability_poll_interval"])

    @property
    def category_dirs(self) -> Dict[ClipCategory, str]:
        """Directory of each category, relative to the mount root"""
        return {
            ClipCategory.SAVED: self._config["dir_savedclips"],
            ClipCategory.SENTRY: self._config["dir_sentryclips"],
            ClipCategory.RECENT: self._config["dir_recentclips"],
            ClipCategory.TRACK_MODE: self._config["dir_trackmodeclips"],
        }

    @property
    def included_categories(self) -> List[ClipCategory]:
        """Categories enabled for archiving, in declaration order"""
        toggles = {
            ClipCategory.SAVED: self._config["archive_savedclips"],
            ClipCategory.SENTRY: self._config["archive_sentryclips"],
            ClipCategory.RECENT: self._config["archive_recentclips"],
            ClipCategory.TRACK_MODE: self._config["archive_trackmodeclips"],
        }
        return [category for category in ClipCategory if toggles[category]]

    @property
    def trigger_files(self) -> Dict[ClipCategory, str]:
        """Trigger file name per category (only categories with one set)"""
        names = {
            ClipCategory.SAVED: self._config["trigger_file_saved"],
            ClipCategory.SENTRY: self._config["trigger_file_sentry"],
            ClipCategory.RECENT: self._config["trigger_file_recent"],
            ClipCategory.TRACK_MODE: self._config["trigger_file_trackmode"],
        }
        return {category: name for category, name in names.items() if name}

    @property
    def min_clip_size_bytes(self) -> int:
        """Smallest video file that is worth archiving"""
        return int(self._config["min_clip_size_bytes"])

    @property
    def video_file_extensions(self) -> tuple:
        return tuple(ext.lower() for ext in self._config["video_file_extensions"])

    @property
    def cam_mount_name(self) -> str:
        return self._config["cam_mount_name"]

    @property
    def cam_backing_image(self) -> Path:
        return Path(self._config["cam_backing_image"])

    @property
    def cam_mount_point(self) -> Path:
        return Path(self._config["cam_mount_point"])

    @property
    def mount_timeout_seconds(self) -> float:
        return float(self._config["mount_timeout_seconds"])

    @property
    def fsck_timeout_seconds(self) -> float:
        return float(self._config["fsck_timeout_seconds"])

    @property
    def fsck_partition_suffix(self) -> str:
        return self._config["fsck_partition_suffix"]

    @property
    def archive_view_mount_point(self) -> Path:
        return Path(self._config["archive_view_mount_point"])

    @property
    def archive_scratch_dir(self) -> Path:
        return Path(self._config["archive_scratch_dir"])

    @property
    def cam_min_free_bytes(self) -> int:
        """Free space floor the reclaimer tries to reach"""
        return int(self._config["cam_min_free_bytes"])

    @property
    def recoverable_artifact_pattern(self) -> str:
        return self._config["recoverable_artifact_pattern"]

    @property
    def retry_attempts(self) -> int:
        return int(self._config["retry_attempts"])

    @property
    def retry_delay_seconds(self) -> float:
        return float(self._config["retry_delay_seconds"])

    @property
    def ledger_file(self) -> Path:
        return Path(self._config["ledger_file"])

    @property
    def simulate_reachable_file(self) -> Path:
        return Path(self._config["simulate_reachable_file"])

    @property
    def simulate_unreachable_file(self) -> Path:
        return Path(self._config["simulate_unreachable_file"])

    @property
    def lock_file(self) -> Path:
        return Path(self._config["lock_file"])

    @property
    def probe_command(self) -> str:
        return self._config["probe_command"] or ""

    @property
    def gadget_enable_command(self) -> str:
        return self._config["gadget_enable_command"]

    @property
    def gadget_disable_command(self) -> str:
        return self._config["gadget_disable_command"]

    @property
    def gadget_lun_file(self) -> Path:
        return Path(self._config["gadget_lun_file"])

    @property
    def transport_command(self) -> str:
        return self._config["transport_command"]

    @property
    def transport_timeout_seconds(self) -> Optional[float]:
        value = self._config["transport_timeout_seconds"]
        return None if value is None else float(value)

    @property
    def notify_command(self) -> str:
        return self._config["notify_command"] or ""

    @property
    def notify_title(self) -> str:
        return self._config["notify_title"]

    @property
    def filter_hook(self) -> str:
        return self._config["filter_hook"] or ""

    @property
    def trim_command(self) -> str:
        return self._config["trim_command"]

    @property
    def log_file(self) -> Path:
        return Path(self._config["log_dir"]) / self._config["log_file_name"]

    @property
    def log_max_lines(self) -> int:
        return int(self._config["log_max_lines"])

    @property
    def log_trim_interval_seconds(self) -> float:
        return float(self._config["log_trim_interval_seconds"])

    def __repr__(self) -> str:
        """Human-readable representation"""
        return f"ArchiveConfig(path={self.config_path})"
