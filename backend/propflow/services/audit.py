"""
Audit logging: who uploaded which import, changed its mapping, executed or rolled it back.
Append-only.
"""
from uuid import UUID
from typing import Any
from sqlalchemy.orm import Session

from propflow.models.audit import AuditLog


def log_action(
    db: Session,
    organization_id: UUID,
    actor_user_id: UUID | None,
    action: str,
    entity_type: str,
    entity_id: UUID | None = None,
    diff: dict[str, Any] | None = None,
) -> None:
    entry = AuditLog(
        organization_id=organization_id,
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        diff_json=diff or {},
    )
    db.add(entry)
    db.flush()
