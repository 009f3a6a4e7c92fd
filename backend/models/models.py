from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship as orm_relationship

from ..config import Base
from ..constants import RECORD_TYPE_PARCEL, RECORD_TYPE_VISITOR, ROLE_RESIDENT


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String(32), nullable=True)
    hashed_password = Column(String, nullable=False)
    role = Column(String(16), default=ROLE_RESIDENT, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    audit_logs = orm_relationship("AuditLog", back_populates="actor")

    def has_any_role(self, *role_names: str) -> bool:
        return self.role in set(role_names)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=utcnow, index=True, nullable=False)
    actor_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String, nullable=False)
    target_entity_type = Column(String, nullable=True)
    target_entity_id = Column(String, nullable=True)
    before = Column(Text, nullable=True)
    after = Column(Text, nullable=True)

    actor = orm_relationship("User", back_populates="audit_logs")


class ResidentRecord(Base):
    """Shared storage row for visitors and parcels, split by ``record_type``."""

    __tablename__ = "visitors_parcels"
    __table_args__ = (Index("ix_visitors_parcels_type_resident_status", "record_type", "resident_id", "status"),)

    id = Column(Integer, primary_key=True, index=True)
    record_type = Column(String(16), nullable=False)
    resident_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(32), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    resident = orm_relationship("User")

    __mapper_args__ = {"polymorphic_on": record_type}


class Visitor(ResidentRecord):
    visitor_name = Column(String, nullable=True)
    visitor_phone = Column(String(32), nullable=True)
    purpose = Column(Text, nullable=True)
    expected_at = Column(DateTime, nullable=True)
    arrived_at = Column(DateTime, nullable=True)
    checked_in_at = Column(DateTime, nullable=True)
    checked_out_at = Column(DateTime, nullable=True)

    __mapper_args__ = {"polymorphic_identity": RECORD_TYPE_VISITOR}


class Parcel(ResidentRecord):
    parcel_number = Column(String, nullable=True)
    sender_name = Column(String, nullable=True)
    sender_phone = Column(String(32), nullable=True)
    description = Column(Text, nullable=True)
    received_at = Column(DateTime, nullable=True)
    acknowledged_at = Column(DateTime, nullable=True)
    collected_at = Column(DateTime, nullable=True)

    __mapper_args__ = {"polymorphic_identity": RECORD_TYPE_PARCEL}
