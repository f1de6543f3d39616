"""Monday.com webhook. Always answers 200 so the board does not retry; failures are logged."""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from artist_dispatch.api.deps import (
    BoardConfig,
    BookingSource,
    NotificationGateway,
    board_config_dep,
    booking_source_dep,
    gateway_dep,
)
from artist_dispatch.db.session import get_db
from artist_dispatch.services.webhook_service import handle_board_event

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/webhooks/monday")
async def monday_webhook(
    request: Request,
    db: Session = Depends(get_db),
    source: BookingSource = Depends(booking_source_dep),
    gateway: NotificationGateway = Depends(gateway_dep),
    board_config: BoardConfig = Depends(board_config_dep),
) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Monday webhook: body is not JSON")
        return {"success": False, "error": "Invalid JSON"}
    if not isinstance(payload, dict):
        return {"success": False, "error": "Invalid payload"}
    try:
        # Sync handler (DB, board HTTP, note retries); run off the event loop
        return await run_in_threadpool(handle_board_event, db, source, gateway, payload, board_config)
    except Exception as e:
        logger.exception("Monday webhook error: %s", e)
        return {"success": False, "error": "Internal error"}
