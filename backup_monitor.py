#!/usr/bin/env python3
"""
Backup Monitor - Time Machine backup-overdue notifier.
Watches Time Machine destinations and posts notifications when backups fall behind.
"""
import argparse
import json
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from app.controller import MonitoringController
from app.dependencies import create_dependencies
from config import STORAGE, get_logger, setup_logging
from monitor.destination import Destination

logger = get_logger(__name__)

# How often the destinations snapshot file is re-read
REFRESH_SECONDS = 300


def load_destinations(path: Path) -> List[Destination]:
    """Read destination snapshots from a JSON list.

    Entries that cannot be parsed are skipped with a warning; an unreadable
    file yields an empty list.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            entries = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read destinations from {path}: {e}")
        return []

    if not isinstance(entries, list):
        logger.warning(f"Destinations file {path} is not a JSON list")
        return []

    destinations = []
    for entry in entries:
        try:
            destinations.append(Destination.from_dict(entry))
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping destination entry: {e}")
    return destinations


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Time Machine backup-overdue monitor")
    parser.add_argument("--destinations", type=Path, required=True,
                        help="JSON file with Time Machine destination snapshots")
    parser.add_argument("--data-dir", type=Path, default=Path.home() / STORAGE.DATA_DIR_NAME,
                        help="Directory for settings and logs")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the application."""
    args = parse_args(argv)

    setup_logging(data_dir=args.data_dir, debug=args.debug, console_output=True)
    logger.info("Backup Monitor starting...")

    stop_event = threading.Event()

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        stop_event.set()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    controller = MonitoringController(create_dependencies(data_dir=args.data_dir))
    try:
        controller.start()
        while not stop_event.is_set():
            controller.refresh_destinations(load_destinations(args.destinations))
            stop_event.wait(REFRESH_SECONDS)
    except Exception as e:
        logger.critical(f"Application crashed: {e}", exc_info=True)
        raise
    finally:
        controller.stop()
        if controller.event_bus is not None:
            controller.event_bus.shutdown()
        logger.info("Backup Monitor stopped")


if __name__ == "__main__":
    sys.exit(main())
