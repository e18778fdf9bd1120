"""Fee resolution router: resolved amounts, the per-term schedule and discount nets."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from school_fees.auth.dependencies import get_current_user
from school_fees.auth.rbac import check_permission
from school_fees.auth.schemas import CurrentUser
from school_fees.core.exceptions import ServiceError
from school_fees.db.session import get_db

from .schemas import FeeResolutionResponse, FeeScheduleResponse, ResolvedDiscountItem
from . import service

router = APIRouter(prefix="/api/v1/fees", tags=["fees"])


@router.get(
    "/resolution/{fee_item_id}",
    response_model=FeeResolutionResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_fee_resolution(
    fee_item_id: UUID,
    academic_year_id: Optional[UUID] = Query(None, description="Year to resolve for"),
    term_id: Optional[UUID] = Query(None, description="Resolve for the year this term belongs to"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeResolutionResponse:
    """Effective amount and active status of one fee item. Defaults to the current term's year."""
    try:
        return await service.get_fee_resolution(
            db, current_user.tenant_id, fee_item_id,
            academic_year_id=academic_year_id, term_id=term_id,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/schedule",
    response_model=FeeScheduleResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_fee_schedule(
    academic_year_id: Optional[UUID] = Query(None),
    term_id: Optional[UUID] = Query(None, description="Only this term's group"),
    class_id: Optional[UUID] = Query(None),
    section: Optional[str] = Query(None, description="Day or Boarding"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> FeeScheduleResponse:
    try:
        return await service.get_fee_schedule(
            db, current_user.tenant_id,
            academic_year_id=academic_year_id, term_id=term_id,
            class_id=class_id, section=section,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/discounts",
    response_model=List[ResolvedDiscountItem],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_resolved_discounts(
    academic_year_id: Optional[UUID] = Query(None),
    term_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ResolvedDiscountItem]:
    try:
        return await service.list_resolved_discounts(
            db, current_user.tenant_id, academic_year_id=academic_year_id, term_id=term_id,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
