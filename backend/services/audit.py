import json
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models.models import AuditLog, ResidentRecord, User, utcnow

logger = logging.getLogger(__name__)


def _serialize(data: Any) -> Optional[str]:
    if data is None:
        return None
    try:
        return json.dumps(data, default=str)
    except TypeError:
        return str(data)


def audit_log(
    db_session: Session,
    actor_user_id: Optional[int],
    action: str,
    target_entity_type: Optional[str] = None,
    target_entity_id: Optional[str] = None,
    before: Any = None,
    after: Any = None,
) -> AuditLog:
    """Stage an audit entry; the caller's commit persists it with the change it describes."""
    entry = AuditLog(
        timestamp=utcnow(),
        actor_user_id=actor_user_id,
        action=action,
        target_entity_type=target_entity_type,
        target_entity_id=target_entity_id,
        before=_serialize(before),
        after=_serialize(after),
    )
    db_session.add(entry)
    return entry


def audit_status_change(
    db_session: Session,
    actor: Optional[User],
    record: ResidentRecord,
    previous_status: Optional[str],
) -> AuditLog:
    logger.info(
        "%s %s status %s -> %s by user %s",
        record.record_type,
        record.id,
        previous_status,
        record.status,
        actor.id if actor else None,
    )
    return audit_log(
        db_session,
        actor_user_id=actor.id if actor else None,
        action=f"{record.record_type}.status",
        target_entity_type=record.record_type,
        target_entity_id=str(record.id),
        before={"status": previous_status} if previous_status else None,
        after={"status": record.status},
    )
