from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..core.errors import NotFound
from ..models.models import Parcel, User, utcnow
from ..schemas.schemas import ParcelCreate
from ..utils.pagination import OffsetWindow
from .audit import audit_status_change
from .lifecycle import (
    PARCEL_PENDING_STATUSES,
    PARCEL_TRANSITIONS,
    ParcelStatus,
    check_transition,
    parse_status,
)
from .policy import Operation, enforce
from .visitors import require_resident

logger = logging.getLogger(__name__)

# Each status owns one timestamp; the first stamp is kept on later updates.
STATUS_TIMESTAMPS = {
    ParcelStatus.RECEIVED: "received_at",
    ParcelStatus.ACKNOWLEDGED: "acknowledged_at",
    ParcelStatus.COLLECTED: "collected_at",
}


def _newest_first(query):
    return query.order_by(Parcel.created_at.desc(), Parcel.id.desc())


def _load(session: Session, parcel_id: int) -> Parcel:
    parcel = session.get(Parcel, parcel_id)
    if parcel is None:
        raise NotFound("Parcel not found")
    return parcel


def create_parcel(session: Session, actor: User, payload: ParcelCreate) -> Parcel:
    enforce(actor, Operation.CREATE_RECORD)
    require_resident(session, payload.resident_id)

    parcel = Parcel(
        resident_id=payload.resident_id,
        parcel_number=payload.parcel_number,
        sender_name=payload.sender_name,
        sender_phone=payload.sender_phone,
        description=payload.description,
        status=ParcelStatus.RECEIVED.value,
        received_at=utcnow(),
    )
    session.add(parcel)
    session.flush()
    audit_status_change(session, actor, parcel, None)
    session.commit()
    session.refresh(parcel)
    return parcel


def list_parcels(
    session: Session,
    actor: User,
    window: OffsetWindow,
    status: Optional[ParcelStatus] = None,
) -> Tuple[List[Parcel], int]:
    enforce(actor, Operation.LIST_ALL)
    query = session.query(Parcel)
    if status is not None:
        query = query.filter(Parcel.status == status.value)
    total = query.count()
    items = _newest_first(query).offset(window.offset).limit(window.limit).all()
    return items, total


def get_parcel(session: Session, actor: User, parcel_id: int) -> Parcel:
    parcel = _load(session, parcel_id)
    enforce(actor, Operation.VIEW_PARCEL, parcel.resident_id)
    return parcel


def parcels_for_resident(session: Session, actor: User, resident_id: int) -> List[Parcel]:
    enforce(actor, Operation.VIEW_RESIDENT_RECORDS, resident_id)
    return _newest_first(session.query(Parcel).filter(Parcel.resident_id == resident_id)).all()


def pending_parcel_count(session: Session, actor: User, resident_id: int) -> int:
    enforce(actor, Operation.VIEW_RESIDENT_RECORDS, resident_id)
    return (
        session.query(func.count(Parcel.id))
        .filter(
            Parcel.resident_id == resident_id,
            Parcel.status.in_([status.value for status in PARCEL_PENDING_STATUSES]),
        )
        .scalar()
        or 0
    )


def update_parcel_status(session: Session, actor: User, parcel_id: int, status: object) -> Parcel:
    """Move a parcel to ``status`` and stamp the matching timestamp if it is still empty.

    Reaching ``received`` is a guard action; ``acknowledged`` and ``collected`` belong
    to the owning resident.
    """
    target = parse_status(ParcelStatus, status)
    parcel = _load(session, parcel_id)

    if target is ParcelStatus.RECEIVED:
        enforce(actor, Operation.MARK_PARCEL_RECEIVED)
    else:
        enforce(actor, Operation.RESOLVE_PARCEL, parcel.resident_id)

    current = parse_status(ParcelStatus, parcel.status)
    check_transition(PARCEL_TRANSITIONS, current, target, settings.enforce_status_transitions)

    parcel.status = target.value
    stamp_field = STATUS_TIMESTAMPS[target]
    if getattr(parcel, stamp_field) is None:
        setattr(parcel, stamp_field, utcnow())

    audit_status_change(session, actor, parcel, current.value)
    session.commit()
    session.refresh(parcel)
    return parcel


def acknowledge_parcel(session: Session, actor: User, parcel_id: int) -> Parcel:
    return update_parcel_status(session, actor, parcel_id, ParcelStatus.ACKNOWLEDGED)
