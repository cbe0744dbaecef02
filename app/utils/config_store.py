"""
Persisted watch configuration.

Holds the source/destination paths, the optional Ghostscript override and
the compression policy, stored as JSON so the control surface can edit
them at runtime. Readers get an immutable snapshot.
"""

import json
import threading
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError

from app.utils.config import get_settings
from app.utils.helpers import normalise_path
from domains.pdf_compression.models import WatchConfig


class ConfigStore:
    """JSON-backed store for the watch configuration."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else get_settings().config_file
        self._lock = threading.Lock()
        self._config = WatchConfig()
        self.load()

    def load(self) -> None:
        """Load configuration from file, falling back to defaults."""
        if not self.path.exists():
            logger.info("No config file found, using defaults")
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            config = WatchConfig.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.error(f"Error loading config: {e}")
            return

        with self._lock:
            self._config = config
        logger.info("Configuration loaded successfully")

    def get(self) -> WatchConfig:
        """Current configuration snapshot."""
        with self._lock:
            return self._config

    def save(self, partial: Dict[str, Any]) -> bool:
        """
        Merge ``partial`` into the configuration and persist it.

        Args:
            partial: Top-level keys to replace; a ``policy`` dict is merged
                key by key into the current policy

        Returns:
            True if saved, False on validation or write failure
        """
        with self._lock:
            current = self._config.model_dump()
            merged = {**current, **{k: v for k, v in partial.items() if k != "policy"}}
            merged["policy"] = {**current["policy"], **(partial.get("policy") or {})}

            try:
                config = WatchConfig.model_validate(merged)
            except ValidationError as e:
                logger.error(f"Error saving config: {e}")
                return False

            try:
                self._write(config)
            except OSError as e:
                logger.error(f"Error saving config: {e}")
                return False

            self._config = config

        logger.info("Configuration saved successfully")
        return True

    def _write(self, config: WatchConfig) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    def validate(self) -> List[str]:
        """
        Check that the configured paths are usable.

        Returns:
            List of error messages; empty when valid
        """
        config = self.get()
        errors = []

        if not config.source_path:
            errors.append("Source path is not defined")
        elif not Path(config.source_path).is_dir():
            errors.append(f"Source path does not exist: {config.source_path}")

        if not config.dest_path:
            errors.append("Destination path is not defined")
        elif config.source_path and (
            normalise_path(Path(config.dest_path)) == normalise_path(Path(config.source_path))
        ):
            errors.append("Destination path must differ from source path")

        return errors


@lru_cache()
def get_config_store() -> ConfigStore:
    """Get the process-wide configuration store."""
    return ConfigStore()
