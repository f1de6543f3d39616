"""Shared route dependencies: acting user and collaborators (overridden in tests)."""
from fastapi import Header, HTTPException, Query

from artist_dispatch.core.board_config import BoardConfig, get_board_config
from artist_dispatch.services.monday import BookingSource, get_booking_source
from artist_dispatch.services.notification_gateway import NotificationGateway, get_notification_gateway

__all__ = [
    "BoardConfig",
    "BookingSource",
    "NotificationGateway",
    "actor_id",
    "optional_actor_id",
    "board_config_dep",
    "booking_source_dep",
    "gateway_dep",
]


def actor_id(
    x_actor_id: str | None = Header(None, alias="X-Actor-Id"),
    actor: str | None = Query(None),
) -> str:
    """Identity of the caller. Verified upstream (session layer); required here."""
    value = (x_actor_id or actor or "").strip()
    if not value:
        raise HTTPException(status_code=400, detail={"code": "validation_error", "message": "X-Actor-Id header is required"})
    return value


def optional_actor_id(x_actor_id: str | None = Header(None, alias="X-Actor-Id")) -> str | None:
    return (x_actor_id or "").strip() or None


def board_config_dep() -> BoardConfig:
    return get_board_config()


def booking_source_dep() -> BookingSource:
    return get_booking_source()


def gateway_dep() -> NotificationGateway:
    return get_notification_gateway()
