"""
Data model for the PDF compression pipeline.

CompressionPolicy is a pydantic model because it arrives from the
persisted configuration and the HTTP surface and has to be validated.
The per-file records are plain frozen dataclasses: they are created and
consumed inside one file's processing and never cross a trust boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, PositiveInt


DownsampleMethod = Literal["nearest", "bilinear", "bicubic", "subsample"]
CompatibilityLevel = Literal["1.3", "1.4", "1.5", "1.6", "1.7", "2.0"]
PdfSettingsPreset = Literal["/screen", "/ebook", "/printer", "/prepress", "/default"]


class CompressionPolicy(BaseModel):
    """Compression knobs handed to Ghostscript for one attempt."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    compatibility_level: CompatibilityLevel = "1.4"
    pdf_settings: PdfSettingsPreset = "/screen"

    color_image_resolution: PositiveInt = 115
    gray_image_resolution: PositiveInt = 115
    mono_image_resolution: PositiveInt = 115

    downsample_method: DownsampleMethod = "bicubic"
    downsample_threshold: PositiveFloat = 1.0

    detect_duplicate_images: bool = True
    compress_pages: bool = True


class WatchConfig(BaseModel):
    """Paths, executable override and policy edited from the control surface."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    source_path: str = ""
    dest_path: str = ""
    manual_gs_path: Optional[str] = None
    policy: CompressionPolicy = Field(default_factory=CompressionPolicy)


class ProfileKind(str, Enum):
    """The two fixed compression profiles."""

    STANDARD = "Standard"
    RGB_FALLBACK = "RGBFallback"


IRREDUCIBLE = "Original-Irreducible"


@dataclass(frozen=True, slots=True)
class IngestionEvent:
    """A file under the watched root that has stopped changing."""

    path: Path
    discovered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True, slots=True)
class AttemptResult:
    """Outcome of one Ghostscript run."""

    profile: ProfileKind
    success: bool
    size: int = 0
    error: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CompressionOutcome:
    """Terminal record of one file's processing."""

    profile: str  # ProfileKind value or IRREDUCIBLE
    original_size: int
    final_size: int
    reduction: str  # percentage with one decimal, e.g. "60.0"
    success: bool = True

    @classmethod
    def build(cls, profile: str, original_size: int, final_size: int) -> "CompressionOutcome":
        """Create an outcome, computing the reduction percentage."""
        return cls(
            profile=profile,
            original_size=original_size,
            final_size=final_size,
            reduction=reduction_percent(original_size, final_size),
        )

    def as_dict(self) -> dict:
        return {
            "profile": self.profile,
            "original_size": self.original_size,
            "final_size": self.final_size,
            "reduction": self.reduction,
            "success": self.success,
        }


def reduction_percent(original_size: int, final_size: int) -> str:
    """Format the size reduction as a percentage string with one decimal."""
    if original_size <= 0 or final_size >= original_size:
        return "0.0"
    return f"{(original_size - final_size) / original_size * 100:.1f}"
