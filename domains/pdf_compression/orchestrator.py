"""
Two-pass compression of a single PDF.

1. Standard profile. Accepted if the output is strictly smaller.
2. RGBFallback profile, same acceptance rule.
3. Neither helped: the original is copied to the destination unchanged.

Temp artifacts live next to the final output and are removed on every
exit path, including unexpected errors.
"""

from pathlib import Path

from loguru import logger

from app.utils.helpers import format_bytes, normalise_path
from domains.pdf_compression import profiles
from domains.pdf_compression.invoker import GhostscriptInvoker
from domains.pdf_compression.models import (
    IRREDUCIBLE,
    AttemptResult,
    CompressionOutcome,
    CompressionPolicy,
    ProfileKind,
)
from domains.pdf_compression.relocator import FileRelocator

ATTEMPT_ORDER = (ProfileKind.STANDARD, ProfileKind.RGB_FALLBACK)


class CompressionOrchestrator:
    """Drives the Standard → RGBFallback → original decision for one file."""

    def __init__(self, invoker: GhostscriptInvoker, relocator: FileRelocator):
        """
        Initialize orchestrator.

        Args:
            invoker: Runs Ghostscript for one attempt
            relocator: Provides temp naming and retry-capable copies
        """
        self.invoker = invoker
        self.relocator = relocator

    async def _attempt(
        self,
        command: str,
        policy: CompressionPolicy,
        profile: ProfileKind,
        input_path: Path,
        temp_path: Path,
    ) -> AttemptResult:
        logger.info(f"Attempt {profile.value}: {input_path.name}")
        args = profiles.build(policy, profile, input_path, temp_path)
        return await self.invoker.invoke(command, args, output_path=temp_path, profile=profile)

    @staticmethod
    def _cleanup(paths) -> None:
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.debug(f"Could not remove temp file {path}: {e}")

    async def process(
        self,
        input_path: Path,
        final_output_path: Path,
        policy: CompressionPolicy,
        command: str,
    ) -> CompressionOutcome:
        """
        Compress ``input_path`` into ``final_output_path``.

        Args:
            input_path: Original PDF
            final_output_path: Where the chosen result is written
            policy: Policy snapshot for this file
            command: Ghostscript executable

        Returns:
            CompressionOutcome describing the chosen result

        Raises:
            ValueError: Output path would overwrite the input
            OSError: Unexpected filesystem errors (temp files are removed first)
        """
        input_path = Path(input_path)
        final_output_path = Path(final_output_path)
        if normalise_path(final_output_path) == normalise_path(input_path):
            raise ValueError(f"Output path is the input file itself: {input_path}")

        original_size = input_path.stat().st_size

        temp_paths = {
            profile: self.relocator.temp_path(
                final_output_path.parent, final_output_path.stem, profile.value.lower()
            )
            for profile in ATTEMPT_ORDER
        }

        try:
            for profile in ATTEMPT_ORDER:
                temp_path = temp_paths[profile]
                result = await self._attempt(command, policy, profile, input_path, temp_path)

                if not result.success:
                    logger.warning(f"{profile.value} failed for {input_path.name}: {result.error}")
                    continue

                if result.size >= original_size:
                    logger.warning(
                        f"{profile.value} did not reduce {input_path.name} "
                        f"({format_bytes(original_size)} -> {format_bytes(result.size)})"
                    )
                    continue

                await self.relocator.copy_with_retry(temp_path, final_output_path)
                outcome = CompressionOutcome.build(profile.value, original_size, result.size)
                logger.success(
                    f"Compressed {input_path.name} with {profile.value}: "
                    f"{format_bytes(original_size)} -> {format_bytes(result.size)} "
                    f"(-{outcome.reduction}%)"
                )
                return outcome

            logger.warning(f"No profile reduced {input_path.name}; keeping the original")
            await self.relocator.copy_with_retry(input_path, final_output_path)
            return CompressionOutcome.build(IRREDUCIBLE, original_size, original_size)
        finally:
            self._cleanup(temp_paths.values())
