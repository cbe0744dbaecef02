"""
Health check endpoint.
"""

from fastapi import APIRouter, Request
from datetime import datetime

from app.models.schemas import HealthResponse
from app.utils.config import get_settings
from domains.pdf_compression.invoker import is_available

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Health check endpoint.

    Verifies:
    - API is running
    - Ghostscript can be found
    """
    settings = get_settings()
    ghostscript_available = is_available(request.app.state.controller.command())

    return HealthResponse(
        status="healthy" if ghostscript_available else "degraded",
        timestamp=datetime.now(),
        version=settings.api_version,
        ghostscript_available=ghostscript_available
    )
