"""Status state machines for visitor and parcel records.

The transition tables describe the intended flow. Whether they are enforced is a
deployment choice (``settings.enforce_status_transitions``); when they are not,
any known status may be set from any other status.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Mapping, Optional, Type, TypeVar

from ..core.errors import InvalidStatus


class VisitorStatus(str, Enum):
    NEW = "new"
    WAITING_APPROVAL = "waiting_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    ENTERED = "entered"
    EXITED = "exited"


class ParcelStatus(str, Enum):
    RECEIVED = "received"
    ACKNOWLEDGED = "acknowledged"
    COLLECTED = "collected"


VISITOR_TRANSITIONS: Dict[VisitorStatus, FrozenSet[VisitorStatus]] = {
    VisitorStatus.NEW: frozenset({VisitorStatus.WAITING_APPROVAL}),
    VisitorStatus.WAITING_APPROVAL: frozenset({VisitorStatus.APPROVED, VisitorStatus.REJECTED}),
    VisitorStatus.APPROVED: frozenset({VisitorStatus.ENTERED}),
    VisitorStatus.REJECTED: frozenset(),
    VisitorStatus.ENTERED: frozenset({VisitorStatus.EXITED}),
    VisitorStatus.EXITED: frozenset(),
}

PARCEL_TRANSITIONS: Dict[ParcelStatus, FrozenSet[ParcelStatus]] = {
    ParcelStatus.RECEIVED: frozenset({ParcelStatus.ACKNOWLEDGED}),
    ParcelStatus.ACKNOWLEDGED: frozenset({ParcelStatus.COLLECTED}),
    ParcelStatus.COLLECTED: frozenset(),
}

VISITOR_PENDING_STATUSES = (VisitorStatus.NEW, VisitorStatus.WAITING_APPROVAL)
PARCEL_PENDING_STATUSES = (ParcelStatus.RECEIVED, ParcelStatus.ACKNOWLEDGED)

StatusT = TypeVar("StatusT", VisitorStatus, ParcelStatus)


def parse_status(status_type: Type[StatusT], value: object) -> StatusT:
    """Coerce ``value`` into ``status_type`` or raise ``InvalidStatus``."""
    if isinstance(value, status_type):
        return value
    try:
        return status_type(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in status_type)
        raise InvalidStatus("Invalid status", [f"Status must be one of: {allowed}"]) from exc


def coerce_filter(status_type: Type[StatusT], value: Optional[str]) -> Optional[StatusT]:
    """List filters drop unknown statuses instead of rejecting the request."""
    if not value:
        return None
    try:
        return status_type(value)
    except ValueError:
        return None


def check_transition(
    table: Mapping[StatusT, FrozenSet[StatusT]],
    current: StatusT,
    target: StatusT,
    enforce: bool,
) -> None:
    if not enforce or current == target:
        return
    if target not in table.get(current, frozenset()):
        raise InvalidStatus(
            "Invalid status transition",
            [f"Cannot move from '{current.value}' to '{target.value}'"],
        )
