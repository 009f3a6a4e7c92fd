from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.jwt import get_current_user, require_roles
from ..constants import ROLE_ADMIN, ROLE_GUARD
from ..models.models import User
from ..schemas.schemas import (
    ApiResponse,
    LoginRequest,
    RegisterRequest,
    ResidentSummary,
    RoleName,
    TokenResponse,
    UserAdminUpdate,
    UserRead,
)
from ..services import accounts

router = APIRouter()


@router.post("/register", response_model=ApiResponse[TokenResponse], status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    user = accounts.register_user(db, payload)
    return ApiResponse(message="Registration successful", data=accounts.build_token_response(user))


@router.post("/login", response_model=ApiResponse[TokenResponse])
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = accounts.authenticate(db, payload.email, payload.password)
    return ApiResponse(message="Login successful", data=accounts.build_token_response(user))


@router.post("/logout", response_model=ApiResponse[None])
def logout(_: User = Depends(get_current_user)):
    # Tokens are stateless; the client discards its copy.
    return ApiResponse(message="Logged out successfully")


@router.get("/me", response_model=ApiResponse[UserRead])
def read_current_user(current_user: User = Depends(get_current_user)):
    return ApiResponse(data=UserRead.model_validate(current_user))


@router.get("/residents", response_model=ApiResponse[List[ResidentSummary]])
def list_residents(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_GUARD, ROLE_ADMIN)),
):
    residents = accounts.list_active_residents(db, current_user)
    return ApiResponse(data=[ResidentSummary.model_validate(resident) for resident in residents])


@router.get("/users", response_model=ApiResponse[List[UserRead]])
def list_users(
    role: Optional[RoleName] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_ADMIN)),
):
    users = accounts.list_users(db, current_user, role)
    return ApiResponse(data=[UserRead.model_validate(user) for user in users])


@router.patch("/users/{user_id}", response_model=ApiResponse[UserRead])
def update_user(
    user_id: int,
    payload: UserAdminUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_ADMIN)),
):
    user = accounts.update_user(db, current_user, user_id, payload)
    return ApiResponse(message="User updated", data=UserRead.model_validate(user))
