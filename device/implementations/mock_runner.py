"""
Mock Command Runner

Simulated system for development and testing without root, loop devices
or a USB gadget.

This is a "Fake" rather than a stub: it keeps track of which targets are
mounted, whether the gadget is exposed and which loop devices are attached,
and it records any instant at which a watched backing image is both
mounted locally and exposed to the capture source.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from device.interfaces.command_interface import CommandResult, CommandRunner


@dataclass
class _Rule:
    """Scripted result for commands starting with a prefix"""

    prefix: Tuple[str, ...]
    returncode: int
    times: Optional[int]  # None = forever
    timed_out: bool = False
    stdout: str = ""
    stderr: str = ""


class MockCommandRunner(CommandRunner):
    """
    Simulated CommandRunner.

    Understands the commands the archiver issues: mountpoint, mount,
    umount, losetup, fsck, fstrim and the gadget enable/disable scripts.
    Anything else succeeds unless a rule or handler says otherwise.

    Usage:
        runner = MockCommandRunner(
            gadget_enable_command="enable_gadget.sh",
            gadget_disable_command="disable_gadget.sh",
            watched_targets=[Path("/mnt/cam")],
        )
        runner.fail(("mount",), times=2)  # First two mounts fail
        ...
        assert runner.violations == []
    """

    def __init__(
        self,
        gadget_enable_command: str = "enable_gadget.sh",
        gadget_disable_command: str = "disable_gadget.sh",
        lun_file: Optional[Path] = None,
        backing_image: Optional[Path] = None,
        watched_targets: Sequence[Path] = (),
    ):
        self.logger = logging.getLogger(__name__)
        self.gadget_enable_command = gadget_enable_command
        self.gadget_disable_command = gadget_disable_command
        self.lun_file = Path(lun_file) if lun_file else None
        self.backing_image = Path(backing_image) if backing_image else None
        self.watched_targets = {str(target) for target in watched_targets}

        # Simulated system state
        self.mounted: Set[str] = set()
        self.gadget_exposed = False
        self.loop_devices: Dict[str, str] = {}  # loop device -> image
        self._next_loop = 0

        # Scripting and history
        self._rules: List[_Rule] = []
        self._handlers: List[Tuple[Tuple[str, ...], Callable]] = []
        self.calls: List[List[str]] = []
        self.violations: List[str] = []

        self.logger.info("Mock command runner initialized (simulation mode)")

    # =========================================================================
    # SCRIPTING
    # =========================================================================

    def fail(
        self,
        prefix: Sequence[str],
        times: Optional[int] = 1,
        returncode: int = 1,
        timed_out: bool = False,
        stderr: str = "simulated failure",
    ) -> None:
        """
        Make commands starting with prefix fail.

        Args:
            prefix: Leading arguments to match (program compared by basename)
            times: Number of matching calls to fail (None = always)
            returncode: Exit status to report
            timed_out: Report the failure as a timeout
        """
        self._rules.append(
            _Rule(
                prefix=tuple(str(p) for p in prefix),
                returncode=returncode,
                times=times,
                timed_out=timed_out,
                stderr=stderr,
            ),
        )

    def on(
        self,
        prefix: Sequence[str],
        handler: Callable[[List[str]], CommandResult],
    ) -> None:
        """Route commands starting with prefix to a custom handler"""
        self._handlers.append((tuple(str(p) for p in prefix), handler))

    def simulate_gadget_detach(self) -> None:
        """Drop the emulated disk as a flaky driver would"""
        self.gadget_exposed = False
        self._write_lun("")
        self.logger.debug("[MOCK] Gadget silently detached")

    def calls_matching(self, prefix: Sequence[str]) -> List[List[str]]:
        """All recorded calls starting with prefix"""
        prefix = tuple(str(p) for p in prefix)
        return [call for call in self.calls if self._matches(call, prefix)]

    # =========================================================================
    # CommandRunner
    # =========================================================================

    def run(
        self,
        args: Sequence[str],
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Simulate a command and update the fake system state"""
        args = [str(arg) for arg in args]
        self.calls.append(args)
        self.logger.debug(f"[MOCK] {' '.join(args)}")

        for prefix, handler in self._handlers:
            if self._matches(args, prefix):
                result = handler(args)
                self._check_exclusion(args)
                return result

        rule = self._take_rule(args)
        if rule is not None:
            return CommandResult(
                args=args,
                returncode=rule.returncode,
                stdout=rule.stdout,
                stderr=rule.stderr,
                timed_out=rule.timed_out,
            )

        result = self._simulate(args)
        self._check_exclusion(args)
        return result

    # =========================================================================
    # SIMULATION
    # =========================================================================

    def _simulate(self, args: List[str]) -> CommandResult:
        program = os.path.basename(args[0])

        if program == os.path.basename(self.gadget_enable_command):
            self.gadget_exposed = True
            self._write_lun(str(self.backing_image or ""))
            return CommandResult(args=args, returncode=0)

        if program == os.path.basename(self.gadget_disable_command):
            self.gadget_exposed = False
            self._write_lun("")
            return CommandResult(args=args, returncode=0)

        if program == "mountpoint":
            mounted = args[-1] in self.mounted
            return CommandResult(args=args, returncode=0 if mounted else 32)

        if program == "mount":
            target = args[-1]
            if target in self.mounted:
                return CommandResult(
                    args=args,
                    returncode=32,
                    stderr=f"{target}: already mounted",
                )
            self.mounted.add(target)
            return CommandResult(args=args, returncode=0)

        if program == "umount":
            target = args[-1]
            if target not in self.mounted:
                return CommandResult(
                    args=args,
                    returncode=32,
                    stderr=f"{target}: not mounted",
                )
            self.mounted.discard(target)
            return CommandResult(args=args, returncode=0)

        if program == "losetup":
            return self._simulate_losetup(args)

        return CommandResult(args=args, returncode=0)

    def _simulate_losetup(self, args: List[str]) -> CommandResult:
        if "-d" in args:
            device = args[-1]
            if self.loop_devices.pop(device, None) is None:
                return CommandResult(args=args, returncode=1, stderr="no such device")
            return CommandResult(args=args, returncode=0)

        device = f"/dev/loop{self._next_loop}"
        self._next_loop += 1
        self.loop_devices[device] = args[-1]
        return CommandResult(args=args, returncode=0, stdout=f"{device}\n")

    def _write_lun(self, value: str) -> None:
        if self.lun_file is None:
            return
        self.lun_file.parent.mkdir(parents=True, exist_ok=True)
        self.lun_file.write_text(f"{value}\n" if value else "")

    def _check_exclusion(self, args: List[str]) -> None:
        """Record a violation if a watched image is mounted while exposed"""
        if not self.gadget_exposed:
            return
        overlap = self.mounted & self.watched_targets
        if overlap:
            violation = (
                f"{sorted(overlap)} mounted while gadget exposed "
                f"(after: {' '.join(args)})"
            )
            self.violations.append(violation)
            self.logger.error(f"[MOCK] {violation}")

    def _take_rule(self, args: List[str]) -> Optional[_Rule]:
        for rule in self._rules:
            if rule.times == 0 or not self._matches(args, rule.prefix):
                continue
            if rule.times is not None:
                rule.times -= 1
            return rule
        return None

    @staticmethod
    def _matches(args: Sequence[str], prefix: Tuple[str, ...]) -> bool:
        if len(args) < len(prefix) or not prefix:
            return False
        if os.path.basename(args[0]) != os.path.basename(prefix[0]):
            return False
        return tuple(args[1:len(prefix)]) == prefix[1:]
