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
    ParcelCreate,
    ParcelPage,
    ParcelRead,
    ParcelStatusUpdate,
)
from ..services import parcels as parcel_service
from ..services.lifecycle import ParcelStatus, coerce_filter
from ..utils.pagination import offset_window

router = APIRouter()


def _item_list(records) -> ItemList[ParcelRead]:
    items = [ParcelRead.model_validate(record) for record in records]
    return ItemList[ParcelRead](items=items, total=len(items))


@router.post("", response_model=ApiResponse[ParcelRead], status_code=201)
def create_parcel(
    payload: ParcelCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_GUARD, ROLE_ADMIN)),
):
    parcel = parcel_service.create_parcel(db, current_user, payload)
    return ApiResponse(message="Parcel logged successfully", data=ParcelRead.model_validate(parcel))


@router.get("", response_model=ApiResponse[ParcelPage])
def list_parcels(
    status: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_GUARD, ROLE_ADMIN)),
):
    window = offset_window(limit, offset)
    records, total = parcel_service.list_parcels(
        db,
        current_user,
        window,
        status=coerce_filter(ParcelStatus, status),
    )
    return ApiResponse(
        data=ParcelPage(
            items=[ParcelRead.model_validate(record) for record in records],
            total=total,
            limit=window.limit,
            offset=window.offset,
        )
    )


@router.get("/pending-count/{resident_id}", response_model=ApiResponse[CountRead])
def pending_parcel_count(
    resident_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    count = parcel_service.pending_parcel_count(db, current_user, resident_id)
    return ApiResponse(data=CountRead(count=count))


@router.get("/resident/{resident_id}", response_model=ApiResponse[ItemList[ParcelRead]])
def parcels_for_resident(
    resident_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ApiResponse(data=_item_list(parcel_service.parcels_for_resident(db, current_user, resident_id)))


@router.get("/history/resident/{resident_id}", response_model=ApiResponse[ItemList[ParcelRead]])
def parcel_history(
    resident_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # History is permanent: it is every parcel the resident has ever had.
    return ApiResponse(data=_item_list(parcel_service.parcels_for_resident(db, current_user, resident_id)))


@router.put("/{parcel_id}/acknowledge", response_model=ApiResponse[ParcelRead])
def acknowledge_parcel(
    parcel_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_RESIDENT)),
):
    parcel = parcel_service.acknowledge_parcel(db, current_user, parcel_id)
    return ApiResponse(message="Parcel acknowledged successfully", data=ParcelRead.model_validate(parcel))


@router.put("/{parcel_id}/status", response_model=ApiResponse[ParcelRead])
def update_parcel_status(
    parcel_id: int,
    payload: ParcelStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_GUARD, ROLE_ADMIN, ROLE_RESIDENT)),
):
    parcel = parcel_service.update_parcel_status(db, current_user, parcel_id, payload.status)
    return ApiResponse(
        message=f"Parcel status updated to {parcel.status}",
        data=ParcelRead.model_validate(parcel),
    )


@router.get("/{parcel_id}", response_model=ApiResponse[ParcelRead])
def get_parcel(
    parcel_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ApiResponse(data=ParcelRead.model_validate(parcel_service.get_parcel(db, current_user, parcel_id)))
