"""
Watcher control endpoints.

Includes:
- Configuration read/update
- Watcher start/stop/status
- Buffered logs
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from loguru import logger

from app.models.schemas import ConfigUpdate, LogEntry, OperationStatus, StatusResponse
from app.utils.log_store import LogStore, get_log_store
from domains.pdf_compression.controller import IngestionController
from domains.pdf_compression.models import WatchConfig

router = APIRouter()


def get_controller(request: Request) -> IngestionController:
    """Controller built during application startup."""
    return request.app.state.controller


@router.get("/config", response_model=WatchConfig)
async def get_config(controller: IngestionController = Depends(get_controller)):
    """Current watch configuration."""
    return controller.config_store.get()


@router.post("/config", response_model=OperationStatus)
async def update_config(
    update: ConfigUpdate,
    controller: IngestionController = Depends(get_controller),
):
    """
    Save configuration changes.

    A running watcher is restarted so the new source directory and
    policy apply to the next file.
    """
    if not await controller.reconfigure(update.as_partial()):
        raise HTTPException(status_code=500, detail="Failed to save configuration")

    return OperationStatus(success=True, message="Configuration saved")


@router.post("/start", response_model=OperationStatus)
async def start_watcher(controller: IngestionController = Depends(get_controller)):
    """Start watching the source directory."""
    started = await controller.start()
    return OperationStatus(
        success=started,
        message="Watcher started" if started else "Failed to start watcher",
    )


@router.post("/stop", response_model=OperationStatus)
async def stop_watcher(controller: IngestionController = Depends(get_controller)):
    """Stop watching; files already being compressed finish normally."""
    stopped = await controller.stop()
    return OperationStatus(
        success=stopped,
        message="Watcher stopped" if stopped else "Watcher is not running",
    )


@router.get("/status", response_model=StatusResponse)
async def get_status(controller: IngestionController = Depends(get_controller)):
    """Watcher state, counters and active configuration."""
    return StatusResponse(**controller.status(), config=controller.config_store.get())


@router.get("/logs", response_model=List[LogEntry])
async def get_logs(store: LogStore = Depends(get_log_store)):
    """Buffered log entries, newest first."""
    return store.entries()


@router.delete("/logs", response_model=OperationStatus)
async def clear_logs(store: LogStore = Depends(get_log_store)):
    """Clear the log buffer."""
    store.clear()
    logger.debug("Log buffer cleared via API")
    return OperationStatus(success=True, message="Logs cleared")
