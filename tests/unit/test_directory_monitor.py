import asyncio
import time
from pathlib import Path

import pytest

pytest.importorskip("watchdog", reason="watchdog dependency is required for monitor tests")

from domains.pdf_compression.relocator import FileRelocator
from domains.pdf_compression.watchers.directory import DirectoryMonitor, PdfArrivalHandler

EVENT_TIMEOUT = 10


def _monitor(root: Path, stability: float = 0.3) -> DirectoryMonitor:
    return DirectoryMonitor(
        root,
        ignore=FileRelocator().should_ignore,
        stability_threshold=stability,
        poll_interval=0.05,
    )


def test_qualifies_filters_extension_depth_and_ignore_rules(tmp_path):
    monitor = _monitor(tmp_path)
    root = monitor.root

    assert monitor.qualifies(root / "scan.pdf")
    assert monitor.qualifies(root / "SCAN.PDF")
    assert not monitor.qualifies(root / "notes.txt")
    assert not monitor.qualifies(root / "nested" / "scan.pdf")
    assert not monitor.qualifies(root / "_Processed" / "scan.pdf")
    assert not monitor.qualifies(root / ".scan.pdfw-tmp-standard.pdf")


def test_emits_existing_and_new_pdfs_only(tmp_path):
    (tmp_path / "existing.pdf").write_bytes(b"%PDF existing")

    async def scenario():
        monitor = _monitor(tmp_path)
        await monitor.start()
        stream = monitor.events()
        try:
            first = await asyncio.wait_for(anext(stream), EVENT_TIMEOUT)

            # None of these may surface; the next event must be last.pdf
            (tmp_path / "notes.txt").write_text("not a pdf")
            (tmp_path / ".x.pdfw-tmp-standard.pdf").write_bytes(b"temp")
            (tmp_path / "nested").mkdir()
            (tmp_path / "nested" / "deep.pdf").write_bytes(b"deep")
            await asyncio.sleep(0.2)
            (tmp_path / "last.pdf").write_bytes(b"%PDF last")

            second = await asyncio.wait_for(anext(stream), EVENT_TIMEOUT)
        finally:
            await monitor.close()

        with pytest.raises(StopAsyncIteration):
            await anext(stream)
        return first, second

    first, second = asyncio.run(scenario())

    assert first.path.name == "existing.pdf"
    assert second.path.name == "last.pdf"


def test_waits_for_file_to_stop_changing(tmp_path):
    stability = 0.5

    async def scenario():
        monitor = _monitor(tmp_path, stability=stability)
        await monitor.start()
        target = tmp_path / "growing.pdf"
        last_write = 0.0

        async def writer():
            nonlocal last_write
            with open(target, "wb") as fh:
                for _ in range(6):
                    fh.write(b"x" * 1024)
                    fh.flush()
                    last_write = time.monotonic()
                    await asyncio.sleep(0.1)

        stream = monitor.events()
        try:
            await writer()
            event = await asyncio.wait_for(anext(stream), EVENT_TIMEOUT)
            emitted_at = time.monotonic()
        finally:
            await monitor.close()
        return event, emitted_at - last_write

    event, quiet_time = asyncio.run(scenario())

    assert event.path.name == "growing.pdf"
    assert quiet_time >= stability - 0.15


def test_closed_monitor_ignores_late_notifications(tmp_path):
    async def scenario():
        monitor = _monitor(tmp_path)
        await monitor.start()
        await monitor.close()

        handler = PdfArrivalHandler(monitor)

        class Event:
            def __init__(self, src: Path):
                self.src_path = str(src)
                self.dest_path = None
                self.is_directory = False

        handler.on_created(Event(tmp_path / "late.pdf"))
        await asyncio.sleep(0.1)
        return [event async for event in monitor.events()]

    assert asyncio.run(scenario()) == []


def test_released_path_can_be_emitted_again(tmp_path):
    stability = 0.3
    target = tmp_path / "rescan.pdf"
    target.write_bytes(b"%PDF rescan")

    class Event:
        def __init__(self, src: Path):
            self.src_path = str(src)
            self.dest_path = None
            self.is_directory = False

    async def scenario():
        monitor = _monitor(tmp_path, stability=stability)
        await monitor.start()
        handler = PdfArrivalHandler(monitor)
        stream = monitor.events()
        try:
            first = await asyncio.wait_for(anext(stream), EVENT_TIMEOUT)

            # Still marked as emitted, so this arrival is dropped
            handler.on_created(Event(first.path))
            await asyncio.sleep(stability * 2)

            monitor.release(first.path)
            released_at = time.monotonic()
            handler.on_created(Event(first.path))
            second = await asyncio.wait_for(anext(stream), EVENT_TIMEOUT)
            waited = time.monotonic() - released_at
        finally:
            await monitor.close()
        rest = [event async for event in stream]
        return first, second, waited, rest

    first, second, waited, rest = asyncio.run(scenario())

    assert first.path == second.path
    assert waited >= stability - 0.15
    assert rest == []
