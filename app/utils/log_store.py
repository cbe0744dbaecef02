"""
Bounded in-memory log buffer for the control surface.

A loguru sink that keeps the newest records so operators can see what
the pipeline did without reading the process output.
"""

import threading
from collections import deque
from functools import lru_cache
from typing import Dict, List, Optional

from loguru import logger

from app.utils.config import get_settings

SEVERITIES = {"info", "success", "warning", "error"}


class LogStore:
    """Newest-first buffer of log entries."""

    def __init__(self, max_entries: int = 200):
        self._entries = deque(maxlen=max_entries)
        self._lock = threading.Lock()
        self._sink_id: Optional[int] = None

    def write(self, message) -> None:
        """loguru sink entry point."""
        record = message.record
        entry = {
            "timestamp": record["time"].strftime("%H:%M:%S"),
            "message": record["message"],
            "type": record["level"].name.lower(),
        }
        with self._lock:
            self._entries.appendleft(entry)

    def install(self, level: str = "INFO") -> int:
        """Register this store as a loguru sink."""
        if self._sink_id is None:
            self._sink_id = logger.add(self.write, level=level, format="{message}")
        return self._sink_id

    def uninstall(self) -> None:
        if self._sink_id is not None:
            logger.remove(self._sink_id)
            self._sink_id = None

    def record(self, message: str, severity: str = "info") -> None:
        """Log ``message`` at one of info, success, warning, error."""
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown severity: {severity}")
        logger.log(severity.upper(), message)

    def entries(self) -> List[Dict[str, str]]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Logs cleared")


@lru_cache()
def get_log_store() -> LogStore:
    """Get the process-wide log store."""
    return LogStore(max_entries=get_settings().log_buffer_size)
