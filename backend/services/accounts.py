from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth.jwt import create_access_token, get_password_hash, verify_password
from ..config import settings
from ..constants import ROLE_ADMIN, ROLE_RESIDENT, SELF_REGISTER_ROLES
from ..core.errors import Conflict, NotFound, Unauthenticated, ValidationFailed
from ..models.models import User
from ..schemas.schemas import RegisterRequest, TokenResponse, UserAdminUpdate, UserRead
from .audit import audit_log
from .policy import Operation, enforce

logger = logging.getLogger(__name__)


def resolve_self_registered_role(requested: Optional[str]) -> str:
    """Self-registration may pick resident or guard; anything else becomes resident."""
    normalized = (requested or "").strip().lower()
    return normalized if normalized in SELF_REGISTER_ROLES else ROLE_RESIDENT


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.query(User).filter(func.lower(User.email) == email.lower()).first()


def build_token_response(user: User) -> TokenResponse:
    return TokenResponse(
        token=create_access_token(user),
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserRead.model_validate(user),
    )


def register_user(session: Session, payload: RegisterRequest) -> User:
    if get_user_by_email(session, payload.email):
        raise Conflict("User with this email already exists", ["Email already in use"])

    user = User(
        full_name=payload.full_name,
        email=payload.email,
        phone=payload.phone,
        hashed_password=get_password_hash(payload.password),
        role=resolve_self_registered_role(payload.role),
        is_active=True,
    )
    session.add(user)
    try:
        session.flush()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration for the same email.
        session.rollback()
        raise Conflict("User with this email already exists", ["Email already in use"]) from exc
    audit_log(
        session,
        actor_user_id=user.id,
        action="user.register",
        target_entity_type="User",
        target_entity_id=str(user.id),
        after={"email": user.email, "role": user.role},
    )
    session.commit()
    session.refresh(user)
    logger.info("Registered user %s with role %s", user.id, user.role)
    return user


def authenticate(session: Session, email: str, password: str) -> User:
    user = get_user_by_email(session, email)
    if not user or not verify_password(password, user.hashed_password):
        raise Unauthenticated("Invalid email or password")
    if not user.is_active:
        raise Unauthenticated("User account is inactive")
    return user


def list_active_residents(session: Session, actor: User) -> List[User]:
    enforce(actor, Operation.LIST_RESIDENTS)
    return (
        session.query(User)
        .filter(User.role == ROLE_RESIDENT, User.is_active.is_(True))
        .order_by(User.full_name.asc())
        .all()
    )


def list_users(session: Session, actor: User, role: Optional[str] = None) -> List[User]:
    enforce(actor, Operation.MANAGE_USERS)
    query = session.query(User)
    if role:
        query = query.filter(User.role == role)
    return query.order_by(User.created_at.asc(), User.id.asc()).all()


def update_user(session: Session, actor: User, user_id: int, payload: UserAdminUpdate) -> User:
    enforce(actor, Operation.MANAGE_USERS)
    user = session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")

    if user.id == actor.id:
        if payload.is_active is False:
            raise ValidationFailed("Admins cannot deactivate their own account")
        if payload.role is not None and payload.role != ROLE_ADMIN:
            raise ValidationFailed("Admins cannot change their own role")

    before = {"role": user.role, "is_active": user.is_active}
    if payload.role is not None:
        user.role = payload.role
    if payload.is_active is not None:
        user.is_active = payload.is_active
    after = {"role": user.role, "is_active": user.is_active}

    if before != after:
        audit_log(
            session,
            actor_user_id=actor.id,
            action="user.update",
            target_entity_type="User",
            target_entity_id=str(user.id),
            before=before,
            after=after,
        )
    session.commit()
    session.refresh(user)
    return user
