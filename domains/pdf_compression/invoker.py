"""
Ghostscript process runner.

Runs one compression attempt as a child process without a shell, so file
names are never interpreted. The blocking ``subprocess.run`` call is moved
to a worker thread; the caller only suspends until the process exits.
"""

import asyncio
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from domains.pdf_compression.models import AttemptResult, ProfileKind

KNOWN_LOCATIONS = [
    r"C:\Program Files\gs\gs10.06.0\bin\gswin64c.exe",
    r"C:\Program Files\gs\gs10.05.0\bin\gswin64c.exe",
    r"C:\Program Files\gs\gs10.04.0\bin\gswin64c.exe",
    "/usr/bin/gs",
    "/usr/local/bin/gs",
    "/opt/homebrew/bin/gs",
]

EXECUTABLE_NAMES = ["gs", "gswin64c", "gswin32c"]

# Ghostscript is chatty on stderr for damaged files; keep the log readable.
MAX_DIAGNOSTIC_CHARS = 2000


def detect_ghostscript(candidates: Optional[Sequence[str]] = None) -> str:
    """
    Locate the Ghostscript executable.

    Checks known install locations first, then PATH.

    Returns:
        Path or bare command name (``gs`` when nothing is found)
    """
    for location in candidates if candidates is not None else KNOWN_LOCATIONS:
        if Path(location).is_file():
            return location

    for name in EXECUTABLE_NAMES:
        found = shutil.which(name)
        if found:
            return found

    return "gs"


def resolve_command(manual_path: Optional[str], detected: str) -> str:
    """Prefer the operator's explicit Ghostscript path over the detected one."""
    return manual_path or detected


def is_available(command: str) -> bool:
    """Check whether ``command`` points at an executable."""
    return Path(command).is_file() or shutil.which(command) is not None


class GhostscriptInvoker:
    """Runs Ghostscript once per compression attempt."""

    def __init__(self, handle_release_delay: float = 0.5, timeout: Optional[float] = None):
        """
        Initialize invoker.

        Args:
            handle_release_delay: Seconds to wait after a clean exit before
                reading the output size
            timeout: Optional hard limit for one run, in seconds
        """
        self.handle_release_delay = handle_release_delay
        self.timeout = timeout

    def _run(self, command: str, args: List[str]) -> subprocess.CompletedProcess:
        return subprocess.run(
            [command, *args],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            timeout=self.timeout,
        )

    async def invoke(
        self,
        command: str,
        args: List[str],
        *,
        output_path: Path,
        profile: ProfileKind,
    ) -> AttemptResult:
        """
        Run Ghostscript and report what it produced.

        Args:
            command: Ghostscript executable
            args: Argument vector from the profile builder
            output_path: File Ghostscript writes to
            profile: Profile the arguments were built for

        Returns:
            AttemptResult; never raises for tool failures
        """
        try:
            result = await asyncio.to_thread(self._run, command, args)
        except OSError as e:
            error = f"Failed to start Ghostscript ({command}): {e}"
            logger.error(error)
            return AttemptResult(profile=profile, success=False, error=error)
        except subprocess.TimeoutExpired:
            error = f"Ghostscript timed out after {self.timeout}s"
            logger.error(error)
            return AttemptResult(profile=profile, success=False, error=error)

        if result.returncode != 0:
            diagnostics = (result.stderr or "").strip()[:MAX_DIAGNOSTIC_CHARS]
            error = f"Ghostscript exited with code {result.returncode}"
            if diagnostics:
                error = f"{error}: {diagnostics}"
            logger.error(error)
            return AttemptResult(profile=profile, success=False, error=error)

        if self.handle_release_delay > 0:
            await asyncio.sleep(self.handle_release_delay)

        try:
            size = output_path.stat().st_size
        except OSError as e:
            error = f"Ghostscript reported success but output is unreadable: {e}"
            logger.error(error)
            return AttemptResult(profile=profile, success=False, error=error)

        return AttemptResult(profile=profile, success=True, size=size)
