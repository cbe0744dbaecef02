"""
PDF Watchman - Main FastAPI Application

Watches a directory for new PDFs and compresses them with Ghostscript:
- Standard profile first, RGB/JPEG fallback second
- Originals kept when neither pass makes the file smaller
- Processed originals organized into success/error subtrees
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
import sys

from app.api import control, health
from app.utils.config import get_settings
from app.utils.config_store import get_config_store
from app.utils.log_store import get_log_store
from domains.pdf_compression.controller import IngestionController


def configure_logging(level: str = "INFO") -> None:
    """Console sink plus the in-memory buffer served at /api/logs."""
    logger.remove()
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=level
    )
    get_log_store().install()


configure_logging(get_settings().log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(f"Starting {settings.api_title} v{settings.api_version}")

    if not hasattr(app.state, "controller"):
        app.state.controller = IngestionController.from_settings(settings, get_config_store())
    logger.info(f"Ghostscript: {app.state.controller.command()}")
    logger.success("Ready to compress PDFs")

    yield

    # Cleanup
    logger.info("Shutting down application...")
    controller = app.state.controller
    if controller.running:
        await controller.stop()
    await controller.wait_idle()
    logger.success("Application shut down complete")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Watch-folder PDF compression with Ghostscript",
        lifespan=lifespan
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(f"Server error: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.log_level == "DEBUG" else "An error occurred"
            }
        )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(control.router, prefix="/api", tags=["Control"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": "PDF Watchman",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower()
    )
