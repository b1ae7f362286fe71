#!/usr/bin/env python3
"""
Simulate Reachability Script

Make the archiver behave as if the archive came into (or went out of)
range, without touching the network. Used by test harnesses.

Usage:
    python scripts/simulate_reachability.py reachable
    python scripts/simulate_reachability.py unreachable
    python scripts/simulate_reachability.py clear

Or directly from SSH:
    ssh pi@teslausb "touch /tmp/archive_is_reachable"

How it works:
- Creates the sentinel file the service polls for
- The service deletes the file when it acts on it
- Response time: one poll interval (~1 second)
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import SIMULATE_REACHABLE_FILE, SIMULATE_UNREACHABLE_FILE

SENTINELS = {
    "reachable": Path(SIMULATE_REACHABLE_FILE),
    "unreachable": Path(SIMULATE_UNREACHABLE_FILE),
}


def simulate(transition: str) -> bool:
    """
    Create the sentinel for a transition, or remove both for "clear".

    Args:
        transition: "reachable", "unreachable" or "clear"

    Returns:
        True if the sentinel files were updated
    """
    try:
        if transition == "clear":
            for sentinel in SENTINELS.values():
                sentinel.unlink(missing_ok=True)
            print("✅ Simulation sentinels removed")
            return True

        sentinel = SENTINELS[transition]
        sentinel.touch()
        print(f"✅ Created {sentinel}")
        print("Service will act on it within ~1 second")
        return True

    except OSError as e:
        print(f"❌ Failed to update sentinel: {e}")
        return False


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Simulate the archive becoming reachable or unreachable",
        epilog="""
Examples:
  %(prog)s reachable    # Start an archive cycle now
  %(prog)s unreachable  # End the wait after the cycle
  %(prog)s clear        # Remove pending sentinels
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "transition",
        choices=["reachable", "unreachable", "clear"],
        help="Transition to simulate",
    )

    args = parser.parse_args()

    success = simulate(args.transition)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
