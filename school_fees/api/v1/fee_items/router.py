"""Fee items router: CRUD plus disable/enable and the disablement history."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_fees.auth.dependencies import get_current_user
from school_fees.auth.rbac import check_permission
from school_fees.auth.schemas import CurrentUser
from school_fees.core.enums import FeeCategory, FeeStatus
from school_fees.core.exceptions import ServiceError
from school_fees.db.session import get_db

from .schemas import (
    FeeDisableEventResponse,
    FeeDisableRequest,
    FeeEnableRequest,
    FeeItemCreate,
    FeeItemResponse,
    FeeItemUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/fee-items", tags=["fee-items"])


@router.post(
    "",
    response_model=FeeItemResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def create_fee_item(
    payload: FeeItemCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeItemResponse:
    try:
        return await service.create_fee_item(db, current_user.tenant_id, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[FeeItemResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_fee_items(
    category: Optional[FeeCategory] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    status_filter: Optional[FeeStatus] = Query(None, description="Filter by status: active, disabled"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[FeeItemResponse]:
    return await service.list_fee_items(
        db,
        current_user.tenant_id,
        category=category,
        academic_year_id=academic_year_id,
        status_filter=status_filter,
    )


@router.get(
    "/{fee_item_id}",
    response_model=FeeItemResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_fee_item(
    fee_item_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeItemResponse:
    fee = await service.get_fee_item(db, current_user.tenant_id, fee_item_id)
    if not fee:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Fee item not found",
        )
    return fee


@router.patch(
    "/{fee_item_id}",
    response_model=FeeItemResponse,
    dependencies=[Depends(check_permission("fees", "update"))],
)
async def update_fee_item(
    fee_item_id: UUID,
    payload: FeeItemUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeItemResponse:
    try:
        return await service.update_fee_item(
            db, current_user.tenant_id, fee_item_id, payload, current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{fee_item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("fees", "delete"))],
)
async def delete_fee_item(
    fee_item_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Response:
    try:
        await service.delete_fee_item(db, current_user.tenant_id, fee_item_id, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{fee_item_id}/disable",
    response_model=FeeItemResponse,
    dependencies=[Depends(check_permission("fees", "update"))],
)
async def disable_fee_item(
    fee_item_id: UUID,
    payload: FeeDisableRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeItemResponse:
    """Disable immediately and indefinitely, from a year onwards, or for a range of years."""
    try:
        return await service.disable_fee_item(
            db, current_user.tenant_id, fee_item_id, payload, current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{fee_item_id}/enable",
    response_model=FeeItemResponse,
    dependencies=[Depends(check_permission("fees", "update"))],
)
async def enable_fee_item(
    fee_item_id: UUID,
    payload: Optional[FeeEnableRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeItemResponse:
    try:
        return await service.enable_fee_item(
            db, current_user.tenant_id, fee_item_id, payload or FeeEnableRequest(), current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{fee_item_id}/history",
    response_model=List[FeeDisableEventResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_disable_history(
    fee_item_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[FeeDisableEventResponse]:
    try:
        return await service.list_disable_history(db, current_user.tenant_id, fee_item_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
