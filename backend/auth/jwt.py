from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..config import settings
from ..core.errors import Forbidden, Unauthenticated
from ..models.models import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(user: User) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "email": user.email,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def verify_token(token: str) -> dict:
    """Return ``{"subject_id", "role", "email"}`` for a valid access token."""
    try:
        payload = decode_token(token)
    except JWTError as exc:
        raise Unauthenticated("Invalid or expired token") from exc

    subject = payload.get("sub")
    if subject is None or payload.get("type") not in (None, "access"):
        raise Unauthenticated("Invalid or expired token")
    try:
        subject_id = int(subject)
    except (TypeError, ValueError) as exc:
        raise Unauthenticated("Invalid or expired token") from exc
    return {"subject_id": subject_id, "role": payload.get("role"), "email": payload.get("email")}


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise Unauthenticated("Missing authorization token")

    claims = verify_token(credentials.credentials)
    user = db.get(User, claims["subject_id"])
    if user is None or not user.is_active:
        raise Unauthenticated("User not found or inactive")
    return user


def require_roles(*allowed_roles: str):
    allowed = set(allowed_roles)

    def role_checker(user: User = Depends(get_current_user)) -> User:
        if not allowed:
            return user
        if user.has_any_role(*allowed):
            return user
        raise Forbidden("Operation not permitted for your role")

    return role_checker
