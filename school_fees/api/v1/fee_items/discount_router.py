"""Discounts router. A discount is a fee item of category Discount, stored as a credit."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_fees.auth.dependencies import get_current_user
from school_fees.auth.rbac import check_permission
from school_fees.auth.schemas import CurrentUser
from school_fees.core.exceptions import ServiceError
from school_fees.db.session import get_db

from .schemas import DiscountCreate, DiscountUpdate, FeeItemResponse
from . import service

router = APIRouter(prefix="/api/v1/discounts", tags=["discounts"])


@router.post(
    "",
    response_model=FeeItemResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def create_discount(
    payload: DiscountCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeItemResponse:
    try:
        return await service.create_discount(db, current_user.tenant_id, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch(
    "/{discount_id}",
    response_model=FeeItemResponse,
    dependencies=[Depends(check_permission("fees", "update"))],
)
async def update_discount(
    discount_id: UUID,
    payload: DiscountUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeItemResponse:
    try:
        return await service.update_discount(
            db, current_user.tenant_id, discount_id, payload, current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
