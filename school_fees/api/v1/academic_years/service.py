import logging
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_fees.api.v1.fees.audit_service import log_fee_audit
from school_fees.core.exceptions import ServiceError
from school_fees.core.models import AcademicYear, Term

from .schemas import AcademicYearCreate, AcademicYearResponse, AcademicYearUpdate, TermResponse

logger = logging.getLogger(__name__)


def _term_to_response(term: Term) -> TermResponse:
    return TermResponse(
        id=term.id,
        academic_year_id=term.academic_year_id,
        name=term.name,
        position=term.position,
        start_date=term.start_date,
        end_date=term.end_date,
        is_current=term.is_current,
    )


def _to_response(ay: AcademicYear) -> AcademicYearResponse:
    return AcademicYearResponse(
        id=ay.id,
        tenant_id=ay.tenant_id,
        name=ay.name,
        sequence_number=ay.sequence_number,
        is_locked=ay.is_locked,
        terms=[_term_to_response(t) for t in sorted(ay.terms, key=lambda t: t.position)],
        created_at=ay.created_at,
        updated_at=ay.updated_at,
    )


def _sequence_from_name(name: str) -> int:
    try:
        return int(name.strip())
    except ValueError:
        raise ServiceError(
            "sequence_number is required when the year name is not a whole number",
            status.HTTP_400_BAD_REQUEST,
        )


async def get_year(
    db: AsyncSession,
    tenant_id: UUID,
    academic_year_id: UUID,
) -> Optional[AcademicYear]:
    """Load one academic year with its terms (tenant-scoped)."""
    result = await db.execute(
        select(AcademicYear)
        .options(selectinload(AcademicYear.terms))
        .where(
            AcademicYear.id == academic_year_id,
            AcademicYear.tenant_id == tenant_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_year_or_404(db: AsyncSession, tenant_id: UUID, academic_year_id: UUID) -> AcademicYear:
    ay = await get_year(db, tenant_id, academic_year_id)
    if not ay:
        raise ServiceError("Academic year not found", status.HTTP_404_NOT_FOUND)
    return ay


async def list_year_models(db: AsyncSession, tenant_id: UUID) -> List[AcademicYear]:
    result = await db.execute(
        select(AcademicYear)
        .options(selectinload(AcademicYear.terms))
        .where(AcademicYear.tenant_id == tenant_id)
        .order_by(AcademicYear.sequence_number)
    )
    return list(result.scalars().all())


async def create_academic_year(
    db: AsyncSession,
    tenant_id: UUID,
    payload: AcademicYearCreate,
    actor_id: UUID,
) -> AcademicYearResponse:
    """Create academic year and its terms. A current term unsets current on all other terms (transaction)."""
    name = payload.name.strip()
    sequence_number = payload.sequence_number if payload.sequence_number is not None else _sequence_from_name(name)
    existing = await db.execute(
        select(AcademicYear).where(
            AcademicYear.tenant_id == tenant_id,
            (AcademicYear.name == name) | (AcademicYear.sequence_number == sequence_number),
        )
    )
    if existing.scalars().first():
        raise ServiceError(
            f"Academic year '{name}' or sequence {sequence_number} already exists for this tenant",
            status.HTTP_409_CONFLICT,
        )
    if any(t.is_current for t in payload.terms):
        await db.execute(update(Term).where(Term.tenant_id == tenant_id).values(is_current=False))

    ay = AcademicYear(
        tenant_id=tenant_id,
        name=name,
        sequence_number=sequence_number,
        is_locked=False,
    )
    ay.terms = [
        Term(
            tenant_id=tenant_id,
            name=t.name.strip(),
            position=index,
            start_date=t.start_date,
            end_date=t.end_date,
            is_current=t.is_current,
        )
        for index, t in enumerate(payload.terms, start=1)
    ]
    db.add(ay)
    try:
        await db.flush()
        await log_fee_audit(
            db, tenant_id, "academic_years", ay.id,
            "CREATE", None,
            {"name": name, "sequence_number": sequence_number, "terms": [t.name for t in ay.terms]},
            actor_id,
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            "Academic year name or sequence conflict",
            status.HTTP_409_CONFLICT,
        )
    return _to_response(await _get_year_or_404(db, tenant_id, ay.id))


async def list_academic_years(
    db: AsyncSession,
    tenant_id: UUID,
    include_locked: bool = True,
) -> List[AcademicYearResponse]:
    """List academic years for tenant in sequence order."""
    years = await list_year_models(db, tenant_id)
    if not include_locked:
        years = [ay for ay in years if not ay.is_locked]
    return [_to_response(ay) for ay in years]


async def get_academic_year(
    db: AsyncSession,
    tenant_id: UUID,
    academic_year_id: UUID,
) -> Optional[AcademicYearResponse]:
    ay = await get_year(db, tenant_id, academic_year_id)
    return _to_response(ay) if ay else None


async def update_academic_year(
    db: AsyncSession,
    tenant_id: UUID,
    academic_year_id: UUID,
    payload: AcademicYearUpdate,
    actor_id: UUID,
) -> AcademicYearResponse:
    """Rename or re-sequence a year. Locked years are read-only."""
    ay = await _get_year_or_404(db, tenant_id, academic_year_id)
    if ay.is_locked:
        raise ServiceError(
            "Cannot update a locked academic year; it is read-only",
            status.HTTP_400_BAD_REQUEST,
        )
    old = {"name": ay.name, "sequence_number": ay.sequence_number}
    if payload.name is not None:
        name = payload.name.strip()
        other = await db.execute(
            select(AcademicYear.id).where(
                AcademicYear.tenant_id == tenant_id,
                AcademicYear.name == name,
                AcademicYear.id != academic_year_id,
            )
        )
        if other.scalars().first():
            raise ServiceError(
                f"Academic year with name '{name}' already exists",
                status.HTTP_409_CONFLICT,
            )
        ay.name = name
    if payload.sequence_number is not None:
        other = await db.execute(
            select(AcademicYear.id).where(
                AcademicYear.tenant_id == tenant_id,
                AcademicYear.sequence_number == payload.sequence_number,
                AcademicYear.id != academic_year_id,
            )
        )
        if other.scalars().first():
            raise ServiceError(
                f"Academic year with sequence {payload.sequence_number} already exists",
                status.HTTP_409_CONFLICT,
            )
        ay.sequence_number = payload.sequence_number
    await log_fee_audit(
        db, tenant_id, "academic_years", ay.id,
        "UPDATE", old, {"name": ay.name, "sequence_number": ay.sequence_number},
        actor_id,
    )
    await db.commit()
    return _to_response(await _get_year_or_404(db, tenant_id, academic_year_id))


async def set_year_locked(
    db: AsyncSession,
    tenant_id: UUID,
    academic_year_id: UUID,
    locked: bool,
    actor_id: UUID,
) -> AcademicYearResponse:
    """Lock or unlock a year. Locked years cannot start new adjustments or disablements."""
    ay = await _get_year_or_404(db, tenant_id, academic_year_id)
    if bool(ay.is_locked) == locked:
        state = "locked" if locked else "unlocked"
        raise ServiceError(f"Academic year is already {state}", status.HTTP_400_BAD_REQUEST)
    ay.is_locked = locked
    await log_fee_audit(
        db, tenant_id, "academic_years", ay.id,
        "LOCK" if locked else "UNLOCK",
        {"is_locked": not locked}, {"is_locked": locked},
        actor_id,
    )
    await db.commit()
    return _to_response(await _get_year_or_404(db, tenant_id, academic_year_id))


async def set_current_term(
    db: AsyncSession,
    tenant_id: UUID,
    term_id: UUID,
    actor_id: UUID,
) -> AcademicYearResponse:
    """Set this term as current. All other terms for tenant become is_current=false (transaction)."""
    term = (
        await db.execute(select(Term).where(Term.id == term_id, Term.tenant_id == tenant_id))
    ).scalar_one_or_none()
    if not term:
        raise ServiceError("Term not found", status.HTTP_404_NOT_FOUND)
    await db.execute(update(Term).where(Term.tenant_id == tenant_id).values(is_current=False))
    await db.execute(update(Term).where(Term.id == term_id).values(is_current=True))
    await log_fee_audit(
        db, tenant_id, "terms", term_id,
        "UPDATE", None, {"is_current": True},
        actor_id,
    )
    await db.commit()
    return _to_response(await _get_year_or_404(db, tenant_id, term.academic_year_id))


async def get_term(db: AsyncSession, tenant_id: UUID, term_id: UUID) -> Optional[Term]:
    result = await db.execute(select(Term).where(Term.id == term_id, Term.tenant_id == tenant_id))
    return result.scalar_one_or_none()


async def get_current_term(db: AsyncSession, tenant_id: UUID) -> Optional[Term]:
    result = await db.execute(
        select(Term).where(Term.tenant_id == tenant_id, Term.is_current.is_(True))
    )
    return result.scalars().first()


async def require_year_span(
    db: AsyncSession,
    tenant_id: UUID,
    start_year_id: UUID,
    end_year_id: Optional[UUID] = None,
) -> None:
    """Validate the years a new adjustment or disablement spans.
    The start year must exist and be open; the end year, when given, must exist and not precede it.
    """
    start = await get_year(db, tenant_id, start_year_id)
    if not start:
        raise ServiceError("Invalid start academic year", status.HTTP_400_BAD_REQUEST)
    if start.is_locked:
        raise ServiceError(
            f"Academic year '{start.name}' is locked and cannot be used as a start year",
            status.HTTP_400_BAD_REQUEST,
        )
    if end_year_id is None:
        return
    end = await get_year(db, tenant_id, end_year_id)
    if not end:
        raise ServiceError("Invalid end academic year", status.HTTP_400_BAD_REQUEST)
    if end.sequence_number < start.sequence_number:
        raise ServiceError("End year cannot be before start year", status.HTTP_400_BAD_REQUEST)
