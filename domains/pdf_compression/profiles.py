"""
Ghostscript argument lists for the two compression profiles.

Standard:
    Policy resolution, threshold and downsample method, with duplicate
    image detection and page compression forced on.
RGBFallback:
    Same resolution settings, but converts everything to DeviceRGB and
    disables automatic filter selection so images are re-encoded as JPEG.
    Helps files whose CMYK or JPEG2000 images the Standard pass inflates.
"""

from pathlib import Path
from typing import List, Union

from domains.pdf_compression.models import CompressionPolicy, ProfileKind

PathLike = Union[str, Path]

DOWNSAMPLE_TYPES = {
    "nearest": "/Subsample",
    "subsample": "/Subsample",
    "bilinear": "/Average",
    "bicubic": "/Bicubic",
}

PROCESS_CONTROL = ["-dNOPAUSE", "-dBATCH", "-dQUIET"]

RGB_OVERRIDES = [
    "-sColorConversionStrategy=RGB",
    "-dProcessColorModel=/DeviceRGB",
    "-dAutoFilterColorImages=false",
    "-dColorImageFilter=/DCTEncode",
    "-dAutoFilterGrayImages=false",
    "-dGrayImageFilter=/DCTEncode",
]


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _image_args(policy: CompressionPolicy) -> List[str]:
    """Threshold, resolution and downsample type for the three channels."""
    method = DOWNSAMPLE_TYPES[policy.downsample_method]
    resolutions = {
        "Color": policy.color_image_resolution,
        "Gray": policy.gray_image_resolution,
        "Mono": policy.mono_image_resolution,
    }

    args = []
    for channel in resolutions:
        args.append(f"-d{channel}ImageDownsampleThreshold={policy.downsample_threshold}")
    for channel, dpi in resolutions.items():
        args.append(f"-d{channel}ImageResolution={dpi}")
    for channel in resolutions:
        args.append(f"-d{channel}ImageDownsampleType={method}")
    return args


def build(
    policy: CompressionPolicy,
    profile: ProfileKind,
    input_path: PathLike,
    output_path: PathLike,
) -> List[str]:
    """
    Build the Ghostscript argument vector for one profile.

    Args:
        policy: Compression policy snapshot
        profile: Which profile to build
        input_path: PDF to compress
        output_path: Where Ghostscript writes its result

    Returns:
        Argument list; output and input paths are always the last two
    """
    args = [
        "-sDEVICE=pdfwrite",
        f"-dCompatibilityLevel={policy.compatibility_level}",
        f"-dPDFSETTINGS={policy.pdf_settings}",
        *_image_args(policy),
    ]

    if profile is ProfileKind.STANDARD:
        args += ["-dDetectDuplicateImages=true", "-dCompressPages=true"]
    else:
        args += RGB_OVERRIDES
        args += [
            f"-dDetectDuplicateImages={_flag(policy.detect_duplicate_images)}",
            f"-dCompressPages={_flag(policy.compress_pages)}",
        ]

    args += PROCESS_CONTROL
    args += [f"-sOutputFile={output_path}", str(input_path)]
    return args
