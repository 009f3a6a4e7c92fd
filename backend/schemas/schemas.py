import re
from datetime import datetime, timezone
from typing import Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..constants import MIN_PASSWORD_LENGTH, PHONE_PATTERN

T = TypeVar("T")

_PHONE_RE = re.compile(PHONE_PATTERN)

RoleName = Literal["admin", "guard", "resident"]


def _optional_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if not _PHONE_RE.match(value):
        raise ValueError("Phone number format is invalid")
    return value


def _utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Store instants as naive UTC; naive input is taken to be UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _utc_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class ItemList(BaseModel, Generic[T]):
    items: List[T]
    total: int


class CountRead(BaseModel):
    count: int


# --- Users / auth ---


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: str
    phone: Optional[str] = None
    role: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _utc_aware(value)


class ResidentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: str
    phone: Optional[str] = None


class RegisterRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    phone: Optional[str] = None
    # Unsupported roles are downgraded to resident, not rejected.
    role: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _lowercase_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("phone")
    @classmethod
    def _phone_shape(cls, value: Optional[str]) -> Optional[str]:
        return _optional_phone(value)


class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _lowercase_email(cls, value: str) -> str:
        return value.lower()


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead


class UserAdminUpdate(BaseModel):
    role: Optional[RoleName] = None
    is_active: Optional[bool] = None


# --- Visitors ---


class VisitorCreate(BaseModel):
    resident_id: int = Field(gt=0)
    visitor_name: str = Field(min_length=1)
    visitor_phone: Optional[str] = None
    visitor_purpose: Optional[str] = None
    expected_entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None

    @field_validator("visitor_name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Visitor name cannot be empty")
        return value

    @field_validator("visitor_phone")
    @classmethod
    def _phone_shape(cls, value: Optional[str]) -> Optional[str]:
        return _optional_phone(value)

    @field_validator("visitor_purpose")
    @classmethod
    def _purpose_text(cls, value: Optional[str]) -> Optional[str]:
        return _optional_text(value)

    @field_validator("expected_entry_time", "exit_time")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _utc_naive(value)


class VisitorStatusUpdate(BaseModel):
    # Checked against VisitorStatus by the lifecycle service so bad values report INVALID_STATUS.
    status: str = Field(min_length=1)
    arrived_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None

    @field_validator("arrived_at", "checked_in_at", "checked_out_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _utc_naive(value)


class VisitorRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    resident_id: int
    visitor_name: str
    visitor_phone: Optional[str] = None
    purpose: Optional[str] = None
    status: str
    expected_at: Optional[datetime] = None
    arrived_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("expected_at", "arrived_at", "checked_in_at", "checked_out_at", "created_at", "updated_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _utc_aware(value)


class VisitorPage(BaseModel):
    items: List[VisitorRead]
    total: int
    page: int
    page_size: int
    total_pages: int


# --- Parcels ---


class ParcelCreate(BaseModel):
    resident_id: int = Field(gt=0)
    parcel_number: str = Field(min_length=1)
    sender_name: str = Field(min_length=1)
    sender_phone: Optional[str] = None
    description: Optional[str] = None

    @field_validator("parcel_number")
    @classmethod
    def _parcel_number_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Parcel number cannot be empty")
        return value

    @field_validator("sender_name")
    @classmethod
    def _sender_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Sender name cannot be empty")
        return value

    @field_validator("sender_phone")
    @classmethod
    def _phone_shape(cls, value: Optional[str]) -> Optional[str]:
        return _optional_phone(value)

    @field_validator("description")
    @classmethod
    def _description_text(cls, value: Optional[str]) -> Optional[str]:
        return _optional_text(value)


class ParcelStatusUpdate(BaseModel):
    status: str = Field(min_length=1)


class ParcelRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    resident_id: int
    parcel_number: str
    sender_name: str
    sender_phone: Optional[str] = None
    description: Optional[str] = None
    status: str
    received_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    collected_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("received_at", "acknowledged_at", "collected_at", "created_at", "updated_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _utc_aware(value)


class ParcelPage(BaseModel):
    items: List[ParcelRead]
    total: int
    limit: int
    offset: int
