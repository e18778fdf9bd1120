from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_fees.auth.dependencies import get_current_user
from school_fees.auth.rbac import check_permission
from school_fees.auth.schemas import CurrentUser
from school_fees.core.exceptions import ServiceError
from school_fees.db.session import get_db

from .schemas import AcademicYearCreate, AcademicYearResponse, AcademicYearUpdate
from . import service

router = APIRouter(prefix="/api/v1/academic-years", tags=["academic-years"])


@router.post(
    "",
    response_model=AcademicYearResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("academic_years", "create"))],
)
async def create_academic_year(
    payload: AcademicYearCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AcademicYearResponse:
    """Create academic year with its terms. Term order in the payload is the term order of the year."""
    try:
        return await service.create_academic_year(db, current_user.tenant_id, payload, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[AcademicYearResponse],
    dependencies=[Depends(check_permission("academic_years", "read"))],
)
async def list_academic_years(
    include_locked: bool = Query(True, description="Set false to list only years open for changes"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[AcademicYearResponse]:
    return await service.list_academic_years(db, current_user.tenant_id, include_locked=include_locked)


@router.get(
    "/{academic_year_id}",
    response_model=AcademicYearResponse,
    dependencies=[Depends(check_permission("academic_years", "read"))],
)
async def get_academic_year(
    academic_year_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AcademicYearResponse:
    ay = await service.get_academic_year(db, current_user.tenant_id, academic_year_id)
    if not ay:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Academic year not found",
        )
    return ay


@router.patch(
    "/{academic_year_id}",
    response_model=AcademicYearResponse,
    dependencies=[Depends(check_permission("academic_years", "update"))],
)
async def update_academic_year(
    academic_year_id: UUID,
    payload: AcademicYearUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AcademicYearResponse:
    try:
        return await service.update_academic_year(
            db, current_user.tenant_id, academic_year_id, payload, current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{academic_year_id}/lock",
    response_model=AcademicYearResponse,
    dependencies=[Depends(check_permission("academic_years", "update"))],
)
async def lock_academic_year(
    academic_year_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AcademicYearResponse:
    try:
        return await service.set_year_locked(
            db, current_user.tenant_id, academic_year_id, True, current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/{academic_year_id}/unlock",
    response_model=AcademicYearResponse,
    dependencies=[Depends(check_permission("academic_years", "update"))],
)
async def unlock_academic_year(
    academic_year_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AcademicYearResponse:
    try:
        return await service.set_year_locked(
            db, current_user.tenant_id, academic_year_id, False, current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/terms/{term_id}/set-current",
    response_model=AcademicYearResponse,
    dependencies=[Depends(check_permission("academic_years", "update"))],
)
async def set_current_term(
    term_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AcademicYearResponse:
    """Mark a term as the current one. Fees without a term are shown under it."""
    try:
        return await service.set_current_term(db, current_user.tenant_id, term_id, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
