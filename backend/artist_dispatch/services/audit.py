"""
Audit trail writes. Rows are added to the caller's session and committed with the
change they describe; nothing here commits.
"""
from typing import Any

from sqlalchemy.orm import Session

from artist_dispatch.core.constants import SYSTEM_ACTOR
from artist_dispatch.models.audit_log import AuditLog


def log_audit(
    db: Session,
    *,
    action: str,
    entity_type: str,
    entity_id: Any,
    actor: str | None = None,
    client_service_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    row = AuditLog(
        actor=(actor or SYSTEM_ACTOR)[:64],
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        client_service_id=client_service_id,
        details=details or {},
    )
    db.add(row)
    return row


def list_audit_for_client_service(db: Session, client_service_id: int, limit: int = 200) -> list[AuditLog]:
    return (
        db.query(AuditLog)
        .filter(AuditLog.client_service_id == client_service_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )
