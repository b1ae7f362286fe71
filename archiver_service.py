"""
Archiver Service

Main service coordinator for the clip archiver.
This is the central orchestrator that wires all controllers together.

Architecture:
- One control thread, blocking waits (no event bus)
- Background log trimmer (fire-and-forget)
- Every external effect goes through a CommandRunner, so the whole loop
  runs against mocks with --mock

Cycle:
    wait until archive reachable
        → retract gadget (retried; the cycle stops here if it fails)
        → mount locally (retried)
        → archive session (ledger, transport, cleanup)
        → unmount + fsck
        → expose gadget
    wait until archive unreachable
        (gadget health checked on every poll, repaired if it dropped out)

Invariant: the backing image is never mounted locally while the gadget
exposes it to the capture source.
"""

import argparse
import logging
import signal
import sys
import time
from pathlib import Path
from typing import Callable, Optional

from archive.controllers.session_controller import ArchiveSessionController
from archive.factory import ArchiveFactory
from config.archive_config import ArchiveConfig, ConfigurationError
from core.instance_lock import InstanceLock, LockResult
from core.log_setup import LogTrimmer, setup_logging
from core.network import CommandProbe, ReachabilityMonitor, SocketProbe
from core.retry import Retrier
from device.controllers.gadget_controller import GadgetController
from device.controllers.mount_manager import MountManager
from device.factory import DeviceFactory
from device.interfaces.command_interface import CommandRunner

# Process exit codes
EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_ALREADY_RUNNING = 3


class ArchiverService:
    """
    Main service coordinator.

    Wires together:
    - Reachability monitor (gates each cycle)
    - Gadget controller and mount manager (who owns the backing image)
    - Archive session controller (what happens while we own it)

    Usage:
        service = ArchiverService(config)
        service.run()  # Blocks until shutdown

        # Tests: inject components, run a bounded number of cycles
        service = ArchiverService(config, mode="mock", monitor=fake_monitor)
        service.run(max_cycles=1)
    """

    def __init__(
        self,
        config: ArchiveConfig,
        mode: str = "auto",
        sleep: Callable[[float], None] = time.sleep,
        runner: Optional[CommandRunner] = None,
        monitor: Optional[ReachabilityMonitor] = None,
        session: Optional[ArchiveSessionController] = None,
    ):
        """
        Initialize all controllers.

        Args:
            config: ArchiveConfig
            mode: "auto"/"real" or "mock" for every component
            sleep: Sleep function shared by waits and retries
            runner: Command runner (created from mode if None)
            monitor: Reachability monitor (created from config if None)
            session: Session controller (created from config if None)
        """
        self.logger = logging.getLogger(__name__)
        self.logger.info("Initializing Archiver Service...")

        self.config = config
        self.running = False
        self.cycle_count = 0

        self.runner = runner or DeviceFactory.create_runner(config, mode)
        self.retrier = Retrier.from_config(config, sleep)

        # Backing image ownership
        self.point = DeviceFactory.cam_mount_point(config)
        self.mounts: MountManager = DeviceFactory.create_mount_manager(
            config, self.runner, self.retrier,
        )
        self.gadget: GadgetController = DeviceFactory.create_gadget(
            config, self.runner, self.mounts,
        )

        self.monitor = monitor or self._create_monitor(sleep)
        self.session = session or ArchiveFactory.create_session(
            config, self.runner, self.mounts, mode,
        )

        self.logger.info("Archiver Service initialized successfully")

    def _create_monitor(self, sleep: Callable[[float], None]) -> ReachabilityMonitor:
        """Build the monitor with the configured probe"""
        endpoint = self.config.archive_server
        if self.config.probe_command:
            probe = CommandProbe(
                self.runner,
                self.config.probe_command,
                endpoint,
                timeout=self.config.reachability_timeout,
            )
        else:
            probe = SocketProbe(
                endpoint,
                self.config.archive_port,
                timeout=self.config.reachability_timeout,
            )

        return ReachabilityMonitor(
            probe,
            self.retrier,
            reachable_sentinel=self.config.simulate_reachable_file,
            unreachable_sentinel=self.config.simulate_unreachable_file,
            poll_interval=self.config.reachability_poll_interval,
            sleep=sleep,
        )

    # =========================================================================
    # MAIN LOOP
    # =========================================================================

    def run(self, max_cycles: Optional[int] = None) -> None:
        """
        Main service loop.

        Args:
            max_cycles: Stop after this many cycles (None = run forever)
        """
        self.running = True
        self.logger.info("Starting Archiver Service main loop...")

        # Whatever state the last run left, the capture source needs its disk
        self.gadget.ensure_exposed()

        try:
            while self.running:
                if max_cycles is not None and self.cycle_count >= max_cycles:
                    break
                self.run_cycle()
        except KeyboardInterrupt:
            self.logger.info("Keyboard interrupt received")
        finally:
            self._shutdown()

    def run_cycle(self) -> None:
        """One archive cycle, from reachable to unreachable"""
        self.cycle_count += 1
        self.logger.info(f"Cycle {self.cycle_count} starting")

        self.monitor.wait_until_reachable(on_poll=self._check_gadget)

        if self.retrier.run(self.gadget.retract, "retract storage gadget"):
            self._archive_and_expose()
        else:
            self.logger.error("Capture source still has the storage, skipping cycle")

        self.monitor.wait_until_unreachable(on_poll=self._check_gadget)

    def _archive_and_expose(self) -> None:
        """Mount, archive, hand the storage back; gadget already retracted"""
        if self.mounts.mount_with_retry(self.point):
            self._run_session()
        else:
            self.logger.error(f"Skipping archive session: {self.point} not mounted")

        self.mounts.prepare_for_exposure(self.point)
        if not self.gadget.expose():
            self.logger.error("Storage is not exposed to the capture source")

    def _run_session(self) -> None:
        """Run the archive session; nothing it raises stops the loop"""
        try:
            outcome = self.session.run(self.point.target)
        except Exception as e:
            self.logger.error(f"Archive session crashed: {e}", exc_info=True)
            return

        if not outcome.success:
            self.logger.warning(f"Archive session degraded: {outcome.message}")

    def _check_gadget(self) -> None:
        """Repair the gadget if it silently dropped the backing image"""
        if not self.gadget.is_exposed_and_correct():
            self.gadget.repair()

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def stop(self) -> None:
        """Ask the main loop to stop after the current cycle"""
        self.running = False

    def _signal_handler(self, signum, _frame):
        """
        Handle shutdown signals.

        Waits block indefinitely, so the loop is interrupted rather than
        asked to finish.

        Args:
            signum: Signal number
            _frame: Current stack frame (unused, required by signal API)
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received signal {signal_name}, shutting down...")
        self.running = False
        raise KeyboardInterrupt

    def install_signal_handlers(self) -> None:
        """Register SIGTERM/SIGINT handlers (main thread only)"""
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

    def _shutdown(self) -> None:
        """Leave the backing image with the capture source"""
        self.logger.info("Shutting down Archiver Service...")
        self.running = False

        if not self.gadget.is_exposed_and_correct():
            self.mounts.prepare_for_exposure(self.point)
            self.gadget.expose()

        self.logger.info("Archiver Service shutdown complete")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Archive dashcam clips whenever the archive is reachable",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"YAML config file (default: {ArchiveConfig.DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Run against simulated devices, transport and notifier",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single cycle and exit",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """
    Main entry point for the service.

    Loads config, sets up logging, takes the instance lock and runs the
    service.

    Returns:
        Process exit code
    """
    args = parse_args(argv)

    try:
        config = ArchiveConfig(args.config)
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO)
        logging.getLogger(__name__).critical(f"Invalid configuration: {e}")
        return EXIT_CONFIG_ERROR

    log_file = setup_logging(config.log_file)
    logger = logging.getLogger(__name__)

    lock = InstanceLock(config.lock_file)
    if lock.acquire() is LockResult.ALREADY_RUNNING:
        logger.error(f"Another archiver is already running ({config.lock_file})")
        return EXIT_ALREADY_RUNNING

    trimmer = LogTrimmer(
        log_file,
        config.log_max_lines,
        config.log_trim_interval_seconds,
    )

    try:
        try:
            server = config.validate_endpoint()
        except ConfigurationError as e:
            logger.critical(str(e))
            return EXIT_CONFIG_ERROR

        logger.info("=" * 60)
        logger.info(f"Clip Archiver Service Starting (archive: {server})")
        logger.info("=" * 60)

        trimmer.start()

        service = ArchiverService(config, mode="mock" if args.mock else "auto")
        service.install_signal_handlers()
        service.run(max_cycles=1 if args.once else None)
        return EXIT_OK

    except Exception as e:
        logger.critical(f"Fatal error in main: {e}", exc_info=True)
        return EXIT_CONFIG_ERROR
    finally:
        trimmer.stop()
        lock.release()


if __name__ == "__main__":
    sys.exit(main())
