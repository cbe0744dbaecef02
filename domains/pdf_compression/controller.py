"""
Ingestion controller.

Owns the running/stopped state and the active directory monitor, and
dispatches every stable PDF through the orchestrator and the relocator.
Files are processed concurrently; a file already in flight is not
dispatched a second time.
"""

import asyncio
import contextlib
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from loguru import logger

from app.utils.config_store import ConfigStore
from domains.pdf_compression.invoker import (
    GhostscriptInvoker,
    detect_ghostscript,
    resolve_command,
)
from domains.pdf_compression.models import CompressionOutcome, IngestionEvent
from domains.pdf_compression.orchestrator import CompressionOrchestrator
from domains.pdf_compression.relocator import FileRelocator
from domains.pdf_compression.watchers.directory import DirectoryMonitor

MonitorFactory = Callable[[Path], DirectoryMonitor]


class IngestionController:
    """Start/stop lifecycle and per-file dispatch."""

    def __init__(
        self,
        config_store: ConfigStore,
        orchestrator: CompressionOrchestrator,
        relocator: FileRelocator,
        monitor_factory: MonitorFactory,
        ghostscript_command: Optional[str] = None,
        restart_delay: float = 1.0,
    ):
        """
        Initialize controller.

        Args:
            config_store: Watch configuration, re-read for every file
            orchestrator: Two-pass compression service
            relocator: Moves originals into the organization subtrees
            monitor_factory: Builds a monitor for a source directory
            ghostscript_command: Detected executable (auto-detected if None)
            restart_delay: Settle time between stop and start on reconfigure
        """
        self.config_store = config_store
        self.orchestrator = orchestrator
        self.relocator = relocator
        self.monitor_factory = monitor_factory
        self.ghostscript_command = ghostscript_command or detect_ghostscript()
        self.restart_delay = restart_delay

        self._lock = asyncio.Lock()
        self._monitor: Optional[DirectoryMonitor] = None
        self._consumer: Optional[asyncio.Task] = None
        self._in_flight: Dict[Path, asyncio.Task] = {}
        self.processed = 0
        self.failed = 0

    @classmethod
    def from_settings(cls, settings, config_store: ConfigStore) -> "IngestionController":
        """Wire the default collaborators from process settings."""
        relocator = FileRelocator.from_settings(settings)
        invoker = GhostscriptInvoker(
            handle_release_delay=settings.handle_release_delay,
            timeout=settings.tool_timeout,
        )

        def monitor_factory(source: Path) -> DirectoryMonitor:
            return DirectoryMonitor(
                source,
                ignore=relocator.should_ignore,
                stability_threshold=settings.stability_threshold,
                poll_interval=settings.poll_interval,
            )

        return cls(
            config_store,
            CompressionOrchestrator(invoker, relocator),
            relocator,
            monitor_factory,
            restart_delay=settings.restart_delay,
        )

    @property
    def running(self) -> bool:
        return self._monitor is not None

    def command(self) -> str:
        """Ghostscript executable for the current configuration."""
        return resolve_command(self.config_store.get().manual_gs_path, self.ghostscript_command)

    async def start(self) -> bool:
        """
        Validate the configuration and start watching the source directory.

        Returns:
            True if the watcher started
        """
        async with self._lock:
            return await self._start()

    async def stop(self) -> bool:
        """
        Close the monitor. Files already in flight run to completion.

        Returns:
            True if a running watcher was stopped
        """
        async with self._lock:
            return await self._stop()

    async def reconfigure(self, partial: Dict[str, Any]) -> bool:
        """
        Save configuration changes, restarting the watcher if it runs.

        Returns:
            False if the configuration was rejected
        """
        if not self.config_store.save(partial):
            return False

        # Held across the whole restart so no start/stop slips in between
        async with self._lock:
            if self.running:
                logger.info("Configuration changed, restarting watcher")
                await self._stop()
                await asyncio.sleep(self.restart_delay)
                await self._start()

        return True

    # Lifecycle (caller holds self._lock) ---------------------------------------------

    async def _start(self) -> bool:
        if self.running:
            logger.warning("Watcher is already running")
            return False

        errors = self.config_store.validate()
        if errors:
            for error in errors:
                logger.error(error)
            return False

        source = Path(self.config_store.get().source_path)
        logger.info(f"Starting watcher on: {source}")

        monitor = self.monitor_factory(source)
        try:
            await monitor.start()
        except Exception as e:
            logger.error(f"Failed to start watcher on {source}: {e}")
            await monitor.close()
            return False

        self._monitor = monitor
        self._consumer = asyncio.create_task(self._consume(monitor))
        logger.success(f"Watcher started, using Ghostscript: {self.command()}")
        return True

    async def _stop(self) -> bool:
        if not self.running:
            logger.warning("Watcher is not running")
            return False

        monitor, self._monitor = self._monitor, None
        await monitor.close()

        if self._consumer is not None:
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
            self._consumer = None

        logger.info("Watcher stopped")
        return True

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "in_flight": sorted(str(path) for path in self._in_flight),
            "processed": self.processed,
            "failed": self.failed,
            "ghostscript": self.command(),
        }

    async def wait_idle(self) -> None:
        """Wait until every in-flight file has finished."""
        while self._in_flight:
            await asyncio.gather(*self._in_flight.values(), return_exceptions=True)

    # Dispatch -----------------------------------------------------------------------

    async def _consume(self, monitor: DirectoryMonitor) -> None:
        async for event in monitor.events():
            if self._monitor is not monitor:
                break
            self.dispatch(event)

    def dispatch(self, event: IngestionEvent) -> Optional[asyncio.Task]:
        """
        Schedule processing for one stable file.

        Returns:
            The processing task, or None if the file was skipped
        """
        path = event.path
        if path.suffix.lower() != ".pdf" or self.relocator.should_ignore(path):
            return None
        if path in self._in_flight:
            logger.debug(f"Already processing {path.name}, skipping")
            return None

        task = asyncio.create_task(self.handle(event))
        self._in_flight[path] = task
        task.add_done_callback(lambda _: self._in_flight.pop(path, None))
        return task

    async def handle(self, event: IngestionEvent) -> Optional[CompressionOutcome]:
        """
        Compress one file and relocate the original.

        Never raises; a failure is logged and the original goes to the
        error subtree.
        """
        path = event.path
        config = self.config_store.get()
        outcome = None
        logger.info(f"New PDF detected: {path.name}")

        try:
            dest_dir = Path(config.dest_path)
            await asyncio.to_thread(dest_dir.mkdir, parents=True, exist_ok=True)

            command = resolve_command(config.manual_gs_path, self.ghostscript_command)
            outcome = await self.orchestrator.process(
                path, dest_dir / path.name, config.policy, command
            )
        except Exception as e:
            logger.error(f"Processing failed for {path.name}: {e}")

        if outcome is not None and outcome.success:
            self.processed += 1
        else:
            self.failed += 1

        await self.relocator.relocate(path, outcome is not None and outcome.success)
        if self._monitor is not None:
            self._monitor.release(path)
        return outcome
