"""
Pydantic models for the PDF Watchman API.

The watch configuration itself is ``domains.pdf_compression.models.WatchConfig``.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, PositiveFloat, PositiveInt, field_validator

from domains.pdf_compression.models import (
    CompatibilityLevel,
    DownsampleMethod,
    PdfSettingsPreset,
    WatchConfig,
)


# =====================================================
# Configuration Models
# =====================================================

class PolicyUpdate(BaseModel):
    """Partial compression policy update."""
    compatibility_level: Optional[CompatibilityLevel] = None
    pdf_settings: Optional[PdfSettingsPreset] = None
    color_image_resolution: Optional[PositiveInt] = None
    gray_image_resolution: Optional[PositiveInt] = None
    mono_image_resolution: Optional[PositiveInt] = None
    downsample_method: Optional[DownsampleMethod] = None
    downsample_threshold: Optional[PositiveFloat] = None
    detect_duplicate_images: Optional[bool] = None
    compress_pages: Optional[bool] = None

    @field_validator("*")
    @classmethod
    def reject_null(cls, value, info):
        # Omit a field to keep its value; null is not a policy setting
        if value is None:
            raise ValueError(f"{info.field_name} must not be null")
        return value


class ConfigUpdate(BaseModel):
    """Partial watch configuration update; omitted fields keep their value."""
    source_path: Optional[str] = None
    dest_path: Optional[str] = None
    manual_gs_path: Optional[str] = None
    policy: Optional[PolicyUpdate] = None

    @field_validator("source_path", "dest_path", "policy")
    @classmethod
    def reject_null(cls, value, info):
        # manual_gs_path may be null to clear the override
        if value is None:
            raise ValueError(f"{info.field_name} must not be null")
        return value

    def as_partial(self) -> Dict[str, Any]:
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


# =====================================================
# Status Models
# =====================================================

class StatusResponse(BaseModel):
    """Watcher status."""
    running: bool
    in_flight: List[str] = []
    processed: int = 0
    failed: int = 0
    ghostscript: str
    config: WatchConfig


class LogEntry(BaseModel):
    """One buffered log record."""
    timestamp: str
    message: str
    type: Literal["debug", "info", "success", "warning", "error", "critical", "trace"]


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
    version: str
    ghostscript_available: bool


# =====================================================
# Response Models
# =====================================================

class OperationStatus(BaseModel):
    """Generic operation status."""
    success: bool
    message: str
