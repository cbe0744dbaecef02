"""
Directory monitor for incoming PDFs.

Watches one directory (non-recursive) with watchdog and emits an
IngestionEvent once a new ``.pdf`` file has stopped changing for the
stability window. Files already present at start-up are picked up too.

watchdog delivers events on its observer thread; they are handed to the
asyncio loop with ``call_soon_threadsafe`` and settled there.
"""

import asyncio
from pathlib import Path
from typing import AsyncIterator, Callable, Dict, Optional, Set

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from app.utils.helpers import normalise_path
from domains.pdf_compression.models import IngestionEvent


class PdfArrivalHandler(FileSystemEventHandler):
    """Forwards file arrivals and departures to the monitor."""

    def __init__(self, monitor: "DirectoryMonitor"):
        super().__init__()
        self.monitor = monitor

    def on_created(self, event: FileSystemEvent):
        """Handle file creation."""
        if event.is_directory:
            return
        self.monitor.notify_threadsafe(event.src_path)

    def on_moved(self, event: FileSystemEvent):
        """Handle rename/move into or out of the watched directory."""
        if event.is_directory:
            return
        self.monitor.forget_threadsafe(event.src_path)
        if event.dest_path:
            self.monitor.notify_threadsafe(event.dest_path)

    def on_deleted(self, event: FileSystemEvent):
        """Handle file deletion."""
        if event.is_directory:
            return
        self.monitor.forget_threadsafe(event.src_path)


class DirectoryMonitor:
    """Emits one ingestion event per stable PDF in ``root``."""

    def __init__(
        self,
        root: Path,
        ignore: Optional[Callable[[Path], bool]] = None,
        stability_threshold: float = 2.0,
        poll_interval: float = 0.1,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        """
        Initialize monitor.

        Args:
            root: Directory to watch (immediate children only)
            ignore: Predicate for paths that must never be emitted
            stability_threshold: Seconds a file must stay unchanged
            poll_interval: Seconds between size/mtime checks
            observer_factory: watchdog observer class (PollingObserver for network shares)
        """
        self.root = normalise_path(Path(root))
        self.ignore = ignore or (lambda path: False)
        self.stability_threshold = stability_threshold
        self.poll_interval = poll_interval
        self.observer_factory = observer_factory

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._observer = None
        self._queue: Optional[asyncio.Queue] = None
        self._settling: Dict[Path, asyncio.Task] = {}
        self._emitted: Set[Path] = set()
        self._closed = False

    def qualifies(self, path: Path) -> bool:
        """Check whether ``path`` is a PDF this monitor should emit."""
        path = Path(path)
        if path.parent != self.root:
            return False
        if path.suffix.lower() != ".pdf":
            return False
        return not self.ignore(path)

    async def start(self) -> None:
        """Start the observer and queue the files already present."""
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._closed = False

        observer = self.observer_factory()
        observer.schedule(PdfArrivalHandler(self), str(self.root), recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.info(f"Watching directory: {self.root}")

        try:
            existing = sorted(p for p in self.root.iterdir() if p.is_file())
        except OSError as e:
            logger.error(f"Watcher error while scanning {self.root}: {e}")
            return

        for path in existing:
            self._notify(path)

    async def close(self) -> None:
        """Stop the observer and end the event stream."""
        if self._closed:
            return
        self._closed = True

        for task in self._settling.values():
            task.cancel()
        self._settling.clear()

        if self._observer is not None:
            self._observer.stop()
            await asyncio.to_thread(self._observer.join)
            self._observer = None

        if self._queue is not None:
            self._queue.put_nowait(None)
        logger.info(f"Stopped watching: {self.root}")

    async def events(self) -> AsyncIterator[IngestionEvent]:
        """Yield ingestion events until the monitor is closed."""
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event

    def release(self, path: Path) -> None:
        """Allow ``path`` to be emitted again once its processing has finished."""
        self._emitted.discard(Path(path))

    # Observer thread bridge ---------------------------------------------------------

    def _call_in_loop(self, callback, raw_path) -> None:
        if self._closed or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(callback, Path(raw_path))
        except RuntimeError as e:
            logger.error(f"Watcher error: {e}")

    def notify_threadsafe(self, raw_path) -> None:
        self._call_in_loop(self._notify, raw_path)

    def forget_threadsafe(self, raw_path) -> None:
        self._call_in_loop(self._forget, raw_path)

    # Loop side ----------------------------------------------------------------------

    def _notify(self, path: Path) -> None:
        if self._closed or not self.qualifies(path):
            return
        if path in self._settling or path in self._emitted:
            return

        task = self._loop.create_task(self._settle(path))
        self._settling[path] = task
        task.add_done_callback(lambda done: self._settled(path, done))

    def _settled(self, path: Path, task: asyncio.Task) -> None:
        if self._settling.get(path) is task:
            del self._settling[path]

    def _forget(self, path: Path) -> None:
        self._emitted.discard(path)
        task = self._settling.pop(path, None)
        if task is not None:
            task.cancel()

    @staticmethod
    def _signature(path: Path):
        stats = path.stat()
        return stats.st_size, stats.st_mtime_ns

    async def _settle(self, path: Path) -> None:
        """Wait until ``path`` stops changing, then emit it."""
        try:
            last = self._signature(path)
            stable_since = self._loop.time()

            while True:
                await asyncio.sleep(self.poll_interval)
                current = self._signature(path)
                now = self._loop.time()

                if current != last:
                    last = current
                    stable_since = now
                elif now - stable_since >= self.stability_threshold:
                    break

        except FileNotFoundError:
            logger.debug(f"File vanished before it settled: {path}")
            return
        except OSError as e:
            logger.error(f"Watcher error on {path.name}: {e}")
            return

        if self._closed:
            return
        self._emitted.add(path)
        self._queue.put_nowait(IngestionEvent(path=path))
