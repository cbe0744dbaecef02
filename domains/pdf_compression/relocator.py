"""
Placement of finished files.

Moves processed originals into the success or error subtree next to
them, copies compressed artifacts into the destination directory, and
decides which paths the directory monitor must never ingest.

Windows keeps a file locked for a moment after the producing process (a
scanner driver, or Ghostscript itself) exits, so every move and copy goes
through a bounded retry with backoff.
"""

import asyncio
import errno
import shutil
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional

from loguru import logger

from app.utils.helpers import exponential_backoff, linear_backoff, retry_async

LOCK_ERRNOS = {errno.EBUSY, errno.EACCES, errno.EPERM, errno.ETXTBSY}
LOCK_WINERRORS = {32, 33}  # sharing violation, lock violation


def is_lock_error(exc: BaseException) -> bool:
    """Check whether ``exc`` means the file is transiently in use."""
    if isinstance(exc, PermissionError):
        return True
    if getattr(exc, "winerror", None) in LOCK_WINERRORS:
        return True
    return isinstance(exc, OSError) and exc.errno in LOCK_ERRNOS


class FileRelocator:
    """Moves and copies files with retry, and owns the ignore rules."""

    def __init__(
        self,
        processed_dir_name: str = "_Processed",
        error_dir_name: str = "_Processed_Error",
        temp_marker: str = ".pdfw-tmp",
        move_max_attempts: int = 5,
        move_base_delay: float = 1.0,
        copy_max_attempts: int = 5,
        copy_base_delay: float = 0.5,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.processed_dir_name = processed_dir_name
        self.error_dir_name = error_dir_name
        self.temp_marker = temp_marker
        self.move_max_attempts = move_max_attempts
        self.move_base_delay = move_base_delay
        self.copy_max_attempts = copy_max_attempts
        self.copy_base_delay = copy_base_delay
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings) -> "FileRelocator":
        return cls(
            processed_dir_name=settings.processed_dir_name,
            error_dir_name=settings.error_dir_name,
            temp_marker=settings.temp_marker,
            move_max_attempts=settings.move_max_attempts,
            move_base_delay=settings.move_base_delay,
            copy_max_attempts=settings.copy_max_attempts,
            copy_base_delay=settings.copy_base_delay,
        )

    # Naming ---------------------------------------------------------------------

    def should_ignore(self, path: Path) -> bool:
        """
        Check if the ingestion pipeline must skip ``path``.

        True for anything inside either organization subtree and for the
        pipeline's own temp artifacts.
        """
        path = Path(path)
        organized = {self.processed_dir_name, self.error_dir_name}
        if any(part in organized for part in path.parts[:-1]):
            return True
        return self.temp_marker in path.name

    def temp_path(self, directory: Path, stem: str, label: str) -> Path:
        """Private temp artifact path carrying the temp marker."""
        return Path(directory) / f".{stem}{self.temp_marker}-{label}.pdf"

    def ensure_folders(self, base_dir: Path) -> None:
        """Create both organization subtrees under ``base_dir``."""
        (Path(base_dir) / self.processed_dir_name).mkdir(parents=True, exist_ok=True)
        (Path(base_dir) / self.error_dir_name).mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _free_name(target: Path) -> Path:
        """Avoid clobbering an earlier original with the same name."""
        if not target.exists():
            return target
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        return target.with_name(f"{target.stem}_{stamp}{target.suffix}")

    # Operations -----------------------------------------------------------------

    async def relocate(self, path: Path, succeeded: bool) -> Optional[Path]:
        """
        Move a processed original into its organization subtree.

        Never raises; a failed move is logged and the pipeline continues.

        Args:
            path: Original file in the watched directory
            succeeded: Whether processing succeeded

        Returns:
            New location, or None when the move failed
        """
        path = Path(path)
        folder = self.processed_dir_name if succeeded else self.error_dir_name

        async def _move() -> Path:
            target = self._free_name(path.parent / folder / path.name)
            await asyncio.to_thread(shutil.move, str(path), str(target))
            return target

        try:
            await asyncio.to_thread(self.ensure_folders, path.parent)
            target = await retry_async(
                _move,
                max_attempts=self.move_max_attempts,
                backoff=linear_backoff(self.move_base_delay),
                retry_if=is_lock_error,
                description=f"Moving {path.name}",
                sleep=self._sleep,
            )
        except Exception as e:
            logger.error(f"Failed to move {path.name} to {folder}: {e}")
            return None

        logger.info(f"File moved to {folder}: {path.name}")
        return target

    async def copy_with_retry(self, src: Path, dst: Path, max_attempts: Optional[int] = None) -> None:
        """
        Copy ``src`` to ``dst``, retrying while either side is locked.

        Raises:
            OSError: When the copy still fails after the last attempt
        """
        src, dst = Path(src), Path(dst)

        async def _copy() -> None:
            await asyncio.to_thread(shutil.copyfile, src, dst)

        await retry_async(
            _copy,
            max_attempts=max_attempts or self.copy_max_attempts,
            backoff=exponential_backoff(self.copy_base_delay),
            retry_if=is_lock_error,
            description=f"Copying {src.name}",
            sleep=self._sleep,
        )
