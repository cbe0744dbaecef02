#!/usr/bin/env python3
"""Run the PDF watch folder without the HTTP control surface.

Saves the given paths into the watch configuration, starts the ingestion
controller and keeps it running until SIGINT/SIGTERM. Files already being
compressed are allowed to finish before the process exits.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.utils.config import get_settings
from app.utils.config_store import ConfigStore
from domains.pdf_compression.controller import IngestionController


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Watch a directory and compress incoming PDFs with Ghostscript.",
    )
    parser.add_argument(
        "--source",
        type=Path,
        default=None,
        help="Directory to watch (default: value in the config file).",
    )
    parser.add_argument(
        "--dest",
        type=Path,
        default=None,
        help="Directory receiving compressed PDFs (default: value in the config file).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Watch configuration JSON file (default: settings config_file).",
    )
    parser.add_argument(
        "--gs",
        default=None,
        help="Explicit Ghostscript executable, overriding auto-detection.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Console log level (default: settings log_level).",
    )

    return parser.parse_args(argv)


async def run(controller: IngestionController) -> int:
    """Start the controller and block until a shutdown signal arrives."""

    if not await controller.start():
        logger.error("Watcher failed to start; check the configuration.")
        return 1

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop_event.set)
        except NotImplementedError:  # Windows event loops
            signal.signal(signum, lambda *_: loop.call_soon_threadsafe(stop_event.set))

    await stop_event.wait()
    logger.info("Shutdown requested, waiting for in-flight files...")
    await controller.stop()
    await controller.wait_idle()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI script."""

    args = parse_args(argv)
    settings = get_settings()

    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=(args.log_level or settings.log_level).upper(),
    )

    store = ConfigStore(args.config)
    updates = {}
    if args.source:
        updates["source_path"] = str(args.source)
    if args.dest:
        updates["dest_path"] = str(args.dest)
    if args.gs:
        updates["manual_gs_path"] = args.gs
    if updates and not store.save(updates):
        return 1

    controller = IngestionController.from_settings(settings, store)
    return asyncio.run(run(controller))


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
