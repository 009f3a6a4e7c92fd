from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.jwt import get_current_user, require_roles
from ..constants import ROLE_ADMIN, ROLE_GUARD, ROLE_RESIDENT
from ..models.models import User
from ..schemas.schemas import (
    ApiResponse,
    CountRead,
    ItemList,
    VisitorCreate,
    VisitorPage,
    VisitorRead,
    VisitorStatusUpdate,
)
from ..services import visitors as visitor_service
from ..services.lifecycle import VisitorStatus, coerce_filter
from ..utils.pagination import page_window

router = APIRouter()


def _item_list(records) -> ItemList[VisitorRead]:
    items = [VisitorRead.model_validate(record) for record in records]
    return ItemList[VisitorRead](items=items, total=len(items))


@router.post("", response_model=ApiResponse[VisitorRead], status_code=201)
def create_visitor(
    payload: VisitorCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_GUARD, ROLE_ADMIN)),
):
    visitor = visitor_service.create_visitor(db, current_user, payload)
    return ApiResponse(message="Visitor logged successfully", data=VisitorRead.model_validate(visitor))


@router.get("", response_model=ApiResponse[VisitorPage])
def list_visitors(
    status: Optional[str] = Query(None),
    resident_id: Optional[int] = Query(None),
    page: Optional[str] = Query(None),
    page_size: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_GUARD, ROLE_ADMIN)),
):
    window = page_window(page, page_size)
    records, total = visitor_service.list_visitors(
        db,
        current_user,
        window,
        status=coerce_filter(VisitorStatus, status),
        resident_id=resident_id,
    )
    return ApiResponse(
        data=VisitorPage(
            items=[VisitorRead.model_validate(record) for record in records],
            total=total,
            page=window.page,
            page_size=window.page_size,
            total_pages=window.total_pages(total),
        )
    )


@router.get("/pending/{resident_id}", response_model=ApiResponse[ItemList[VisitorRead]])
def list_pending_visitors(
    resident_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ApiResponse(data=_item_list(visitor_service.pending_visitors(db, current_user, resident_id)))


@router.get("/history/{resident_id}", response_model=ApiResponse[ItemList[VisitorRead]])
def visitor_history(
    resident_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ApiResponse(data=_item_list(visitor_service.visitor_history(db, current_user, resident_id)))


@router.get("/pending-count/{resident_id}", response_model=ApiResponse[CountRead])
def pending_visitor_count(
    resident_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    count = visitor_service.pending_visitor_count(db, current_user, resident_id)
    return ApiResponse(data=CountRead(count=count))


@router.get("/{visitor_id}", response_model=ApiResponse[VisitorRead])
def get_visitor(
    visitor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ApiResponse(data=VisitorRead.model_validate(visitor_service.get_visitor(db, current_user, visitor_id)))


@router.put("/{visitor_id}/status", response_model=ApiResponse[VisitorRead])
def update_visitor_status(
    visitor_id: int,
    payload: VisitorStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_GUARD, ROLE_ADMIN, ROLE_RESIDENT)),
):
    visitor = visitor_service.update_visitor_status(db, current_user, visitor_id, payload)
    return ApiResponse(
        message=f"Visitor status updated to {visitor.status}",
        data=VisitorRead.model_validate(visitor),
    )
