from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..constants import ROLE_RESIDENT
from ..core.errors import NotFound, ValidationFailed
from ..models.models import User, Visitor
from ..schemas.schemas import VisitorCreate, VisitorStatusUpdate
from ..utils.pagination import PageWindow
from .audit import audit_status_change
from .lifecycle import (
    VISITOR_PENDING_STATUSES,
    VISITOR_TRANSITIONS,
    VisitorStatus,
    check_transition,
    parse_status,
)
from .policy import Operation, enforce

logger = logging.getLogger(__name__)

# Status targets that record a resident's decision rather than gate activity.
DECISION_STATUSES = {VisitorStatus.APPROVED, VisitorStatus.REJECTED}


def _newest_first(query):
    return query.order_by(Visitor.created_at.desc(), Visitor.id.desc())


def require_resident(session: Session, resident_id: int) -> User:
    resident = session.get(User, resident_id)
    if resident is None or resident.role != ROLE_RESIDENT or not resident.is_active:
        raise ValidationFailed("Invalid resident ID", [f"No active resident with id {resident_id}"])
    return resident


def create_visitor(session: Session, actor: User, payload: VisitorCreate) -> Visitor:
    enforce(actor, Operation.CREATE_RECORD)
    require_resident(session, payload.resident_id)

    visitor = Visitor(
        resident_id=payload.resident_id,
        visitor_name=payload.visitor_name,
        visitor_phone=payload.visitor_phone,
        purpose=payload.visitor_purpose,
        status=VisitorStatus.NEW.value,
        expected_at=payload.expected_entry_time,
        checked_out_at=payload.exit_time,
    )
    session.add(visitor)
    session.flush()
    audit_status_change(session, actor, visitor, None)
    session.commit()
    session.refresh(visitor)
    return visitor


def list_visitors(
    session: Session,
    actor: User,
    window: PageWindow,
    status: Optional[VisitorStatus] = None,
    resident_id: Optional[int] = None,
) -> Tuple[List[Visitor], int]:
    enforce(actor, Operation.LIST_ALL)
    query = session.query(Visitor)
    if resident_id is not None:
        query = query.filter(Visitor.resident_id == resident_id)
    if status is not None:
        query = query.filter(Visitor.status == status.value)
    total = query.count()
    items = _newest_first(query).offset(window.offset).limit(window.page_size).all()
    return items, total


def get_visitor(session: Session, actor: User, visitor_id: int) -> Visitor:
    # Any authenticated user may read a single visitor; there is no ownership check here.
    enforce(actor, Operation.VIEW_VISITOR)
    visitor = session.get(Visitor, visitor_id)
    if visitor is None:
        raise NotFound("Visitor not found")
    return visitor


def pending_visitors(session: Session, actor: User, resident_id: int) -> List[Visitor]:
    enforce(actor, Operation.VIEW_RESIDENT_RECORDS, resident_id)
    query = session.query(Visitor).filter(
        Visitor.resident_id == resident_id,
        Visitor.status.in_([status.value for status in VISITOR_PENDING_STATUSES]),
    )
    return _newest_first(query).all()


def visitor_history(session: Session, actor: User, resident_id: int) -> List[Visitor]:
    enforce(actor, Operation.VIEW_RESIDENT_RECORDS, resident_id)
    return _newest_first(session.query(Visitor).filter(Visitor.resident_id == resident_id)).all()


def pending_visitor_count(session: Session, actor: User, resident_id: int) -> int:
    enforce(actor, Operation.VIEW_RESIDENT_RECORDS, resident_id)
    return (
        session.query(func.count(Visitor.id))
        .filter(
            Visitor.resident_id == resident_id,
            Visitor.status.in_([status.value for status in VISITOR_PENDING_STATUSES]),
        )
        .scalar()
        or 0
    )


def update_visitor_status(
    session: Session,
    actor: User,
    visitor_id: int,
    payload: VisitorStatusUpdate,
) -> Visitor:
    """Move a visitor to ``payload.status``.

    Order of checks: the status must be known, the record must exist, the actor must
    be allowed to set that status on that record, and (when enforcement is on) the
    move must follow the transition table. Supplied timestamps replace stored ones;
    omitted timestamps leave stored values alone.
    """
    target = parse_status(VisitorStatus, payload.status)

    visitor = session.get(Visitor, visitor_id)
    if visitor is None:
        raise NotFound("Visitor not found")

    operation = Operation.DECIDE_VISITOR if target in DECISION_STATUSES else Operation.TRACK_VISITOR
    enforce(actor, operation, visitor.resident_id)

    current = parse_status(VisitorStatus, visitor.status)
    check_transition(VISITOR_TRANSITIONS, current, target, settings.enforce_status_transitions)

    visitor.status = target.value
    if payload.arrived_at is not None:
        visitor.arrived_at = payload.arrived_at
    if payload.checked_in_at is not None:
        visitor.checked_in_at = payload.checked_in_at
    if payload.checked_out_at is not None:
        visitor.checked_out_at = payload.checked_out_at

    audit_status_change(session, actor, visitor, current.value)
    session.commit()
    session.refresh(visitor)
    return visitor
