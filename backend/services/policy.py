"""Role and ownership rules for visitor and parcel operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..constants import ROLE_ADMIN, ROLE_GUARD, ROLE_RESIDENT, STAFF_ROLES
from ..core.errors import Forbidden
from ..models.models import User


class Operation(str, Enum):
    CREATE_RECORD = "create_record"
    LIST_ALL = "list_all"
    VIEW_RESIDENT_RECORDS = "view_resident_records"
    VIEW_PARCEL = "view_parcel"
    VIEW_VISITOR = "view_visitor"
    DECIDE_VISITOR = "decide_visitor"
    TRACK_VISITOR = "track_visitor"
    MARK_PARCEL_RECEIVED = "mark_parcel_received"
    RESOLVE_PARCEL = "resolve_parcel"
    MANAGE_USERS = "manage_users"
    LIST_RESIDENTS = "list_residents"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def _deny(reason: str) -> Decision:
    return Decision(False, reason)


def _is_owner(user: User, resource_owner_id: Optional[int]) -> bool:
    return resource_owner_id is not None and user.id == resource_owner_id


def authorize(user: User, operation: Operation, resource_owner_id: Optional[int] = None) -> Decision:
    role = user.role

    if operation in (Operation.CREATE_RECORD, Operation.LIST_ALL, Operation.LIST_RESIDENTS):
        return ALLOW if role in STAFF_ROLES else _deny("Only security guards and admins can do this")

    if operation is Operation.MANAGE_USERS:
        return ALLOW if role == ROLE_ADMIN else _deny("Only admins can manage users")

    if operation is Operation.VIEW_VISITOR:
        return ALLOW

    if operation in (Operation.VIEW_RESIDENT_RECORDS, Operation.VIEW_PARCEL):
        if role in STAFF_ROLES:
            return ALLOW
        if role == ROLE_RESIDENT and _is_owner(user, resource_owner_id):
            return ALLOW
        return _deny("You don't have permission to view these records")

    if operation is Operation.MARK_PARCEL_RECEIVED:
        return ALLOW if role == ROLE_GUARD else _deny("Only guards can mark parcels as received")

    if operation in (Operation.DECIDE_VISITOR, Operation.RESOLVE_PARCEL):
        if role != ROLE_RESIDENT:
            return _deny("Only the resident can update this record")
        if not _is_owner(user, resource_owner_id):
            return _deny("You don't have permission to update this record")
        return ALLOW

    if operation is Operation.TRACK_VISITOR:
        if role in STAFF_ROLES:
            return ALLOW
        if role == ROLE_RESIDENT and _is_owner(user, resource_owner_id):
            return ALLOW
        return _deny("You don't have permission to update this visitor")

    return _deny("Unknown operation")


def enforce(user: User, operation: Operation, resource_owner_id: Optional[int] = None) -> None:
    decision = authorize(user, operation, resource_owner_id)
    if not decision:
        raise Forbidden(decision.reason)
