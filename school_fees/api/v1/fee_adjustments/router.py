"""Fee adjustments router."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_fees.auth.dependencies import get_current_user
from school_fees.auth.rbac import check_permission
from school_fees.auth.schemas import CurrentUser
from school_fees.core.exceptions import ServiceError
from school_fees.db.session import get_db

from .schemas import FeeAdjustmentCreate, FeeAdjustmentResponse
from . import service

router = APIRouter(prefix="/api/v1/fee-adjustments", tags=["fee-adjustments"])


@router.post(
    "",
    response_model=FeeAdjustmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "update"))],
)
async def create_fee_adjustment(
    payload: FeeAdjustmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeAdjustmentResponse:
    try:
        return await service.create_fee_adjustment(db, current_user.tenant_id, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[FeeAdjustmentResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_fee_adjustments(
    fee_item_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[FeeAdjustmentResponse]:
    return await service.list_fee_adjustments(db, current_user.tenant_id, fee_item_id=fee_item_id)
