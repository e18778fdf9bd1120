"""
Fee resolution service: loads ledger snapshots for a tenant and runs the resolver over them.
Read-only; nothing here writes.
"""

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_fees.api.v1.academic_years.service import get_current_term, get_term, list_year_models
from school_fees.api.v1.fee_adjustments.service import list_adjustment_models
from school_fees.api.v1.fee_items.service import get_fee_model
from school_fees.core.enums import Direction, FeeStatus
from school_fees.core.exceptions import ServiceError
from school_fees.core.models import AcademicYear, FeeAdjustment, FeeItem

from .resolver import (
    ActivityState,
    AdjustmentSnapshot,
    FeeSnapshot,
    Money,
    TermSnapshot,
    YearSnapshot,
    applicable_adjustments,
    index_years,
    is_active,
    resolve_amount,
    resolve_discount,
)
from .schedule import build_fee_schedule, list_discount_rows
from .schemas import (
    AppliedAdjustment,
    DiscountResolutionResponse,
    FeeResolutionResponse,
    FeeScheduleItem,
    FeeScheduleResponse,
    ResolvedDiscountItem,
    TermFeeGroupResponse,
)


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


# --- Snapshots ---
def year_to_snapshot(ay: AcademicYear) -> YearSnapshot:
    return YearSnapshot(
        id=_to_uuid(ay.id),
        name=ay.name,
        sequence_number=ay.sequence_number,
        is_locked=bool(ay.is_locked),
        terms=tuple(
            TermSnapshot(id=_to_uuid(t.id), name=t.name, position=t.position, is_current=bool(t.is_current))
            for t in ay.terms
        ),
    )


def fee_to_snapshot(fee: FeeItem) -> FeeSnapshot:
    return FeeSnapshot(
        id=_to_uuid(fee.id),
        name=fee.name,
        money=Money(amount=_to_decimal(fee.amount), direction=Direction(fee.direction)),
        category=fee.category,
        state=ActivityState(
            is_active=fee.status != FeeStatus.disabled.value,
            disable_type=fee.disable_type,
            start_year_id=_to_uuid(fee.disable_start_year_id),
            end_year_id=_to_uuid(fee.disable_end_year_id),
        ),
        linked_fee_id=_to_uuid(fee.linked_fee_id),
        academic_year_id=_to_uuid(fee.academic_year_id),
        term_id=_to_uuid(fee.term_id),
        class_fee_type=fee.class_fee_type or "all",
        class_ids=tuple(_to_uuid(c) for c in (fee.class_ids or [])),
        section_fee_type=fee.section_fee_type or "all",
        section=fee.section,
        is_assignment_fee=bool(fee.is_assignment_fee),
    )


def adjustment_to_snapshot(adj: FeeAdjustment) -> AdjustmentSnapshot:
    return AdjustmentSnapshot(
        id=_to_uuid(adj.id),
        fee_item_id=_to_uuid(adj.fee_item_id),
        adjustment_type=adj.adjustment_type,
        amount=_to_decimal(adj.amount),
        effective_period_type=adj.effective_period_type,
        start_year_id=_to_uuid(adj.start_year_id),
        end_year_id=_to_uuid(adj.end_year_id),
        created_at=adj.created_at,
    )


async def load_years(db: AsyncSession, tenant_id: UUID) -> List[YearSnapshot]:
    return [year_to_snapshot(ay) for ay in await list_year_models(db, tenant_id)]


async def load_fees(db: AsyncSession, tenant_id: UUID) -> List[FeeSnapshot]:
    result = await db.execute(select(FeeItem).where(FeeItem.tenant_id == tenant_id).order_by(FeeItem.name))
    return [fee_to_snapshot(fee) for fee in result.scalars().all()]


async def load_adjustments(
    db: AsyncSession,
    tenant_id: UUID,
    fee_item_id: Optional[UUID] = None,
) -> List[AdjustmentSnapshot]:
    return [adjustment_to_snapshot(adj) for adj in await list_adjustment_models(db, tenant_id, fee_item_id)]


async def resolve_target_year(
    db: AsyncSession,
    tenant_id: UUID,
    academic_year_id: Optional[UUID] = None,
    term_id: Optional[UUID] = None,
) -> Optional[UUID]:
    """Year to resolve against: explicit year, else the term's year, else the current term's year."""
    if academic_year_id is not None:
        return academic_year_id
    if term_id is not None:
        term = await get_term(db, tenant_id, term_id)
        if not term:
            raise ServiceError("Invalid term", status.HTTP_400_BAD_REQUEST)
        return _to_uuid(term.academic_year_id)
    current = await get_current_term(db, tenant_id)
    return _to_uuid(current.academic_year_id) if current else None


# --- Resolution ---
async def get_fee_resolution(
    db: AsyncSession,
    tenant_id: UUID,
    fee_item_id: UUID,
    academic_year_id: Optional[UUID] = None,
    term_id: Optional[UUID] = None,
) -> FeeResolutionResponse:
    fee_model = await get_fee_model(db, tenant_id, fee_item_id)
    if not fee_model:
        raise ServiceError("Fee item not found", status.HTTP_404_NOT_FOUND)
    target_year_id = await resolve_target_year(db, tenant_id, academic_year_id, term_id)
    years = await load_years(db, tenant_id)
    fee = fee_to_snapshot(fee_model)

    discount = None
    if fee.is_discount:
        # discount nets depend on the linked fee's own adjustments
        fees = await load_fees(db, tenant_id)
        adjustments = await load_adjustments(db, tenant_id)
        resolution = resolve_discount(fee, fees, adjustments, years, target_year_id)
        if resolution is not None:
            discount = DiscountResolutionResponse(
                linked_fee_id=resolution.linked_fee_id,
                linked_amount=resolution.linked_amount,
                net_amount=resolution.net_amount,
            )
    else:
        adjustments = await load_adjustments(db, tenant_id, fee.id)

    applied = applicable_adjustments(fee.id, target_year_id, adjustments, index_years(years))
    return FeeResolutionResponse(
        fee_item_id=fee.id,
        academic_year_id=target_year_id,
        base_amount=fee.money.signed,
        resolved_amount=resolve_amount(fee, target_year_id, adjustments, years),
        is_active=is_active(fee, target_year_id, years),
        applied_adjustments=[
            AppliedAdjustment(
                id=adj.id,
                adjustment_type=adj.adjustment_type,
                amount=adj.amount,
                effective_period_type=adj.effective_period_type,
                created_at=adj.created_at,
            )
            for adj in applied
        ],
        discount=discount,
    )


async def get_fee_schedule(
    db: AsyncSession,
    tenant_id: UUID,
    academic_year_id: Optional[UUID] = None,
    term_id: Optional[UUID] = None,
    class_id: Optional[UUID] = None,
    section: Optional[str] = None,
) -> FeeScheduleResponse:
    target_year_id = await resolve_target_year(db, tenant_id, academic_year_id, term_id)
    if target_year_id is None:
        return FeeScheduleResponse(academic_year_id=None, groups=[])
    groups = build_fee_schedule(
        await load_fees(db, tenant_id),
        await load_adjustments(db, tenant_id),
        await load_years(db, tenant_id),
        target_year_id,
        term_id=term_id,
        class_id=class_id,
        section=section,
    )
    return FeeScheduleResponse(
        academic_year_id=target_year_id,
        groups=[
            TermFeeGroupResponse(
                term_id=group.term.id,
                term_name=group.term.name,
                position=group.term.position,
                is_current=group.term.is_current,
                items=[
                    FeeScheduleItem(
                        fee_item_id=row.fee.id,
                        name=row.fee.name,
                        category=row.fee.category,
                        base_amount=row.fee.money.signed,
                        resolved_amount=row.resolved_amount,
                        is_active=row.is_active,
                    )
                    for row in group.rows
                ],
            )
            for group in groups
        ],
    )


async def list_resolved_discounts(
    db: AsyncSession,
    tenant_id: UUID,
    academic_year_id: Optional[UUID] = None,
    term_id: Optional[UUID] = None,
) -> List[ResolvedDiscountItem]:
    """Every discount with the net amount of its linked fee. Unlinked discounts carry no net."""
    target_year_id = await resolve_target_year(db, tenant_id, academic_year_id, term_id)
    fees = await load_fees(db, tenant_id)
    names = {fee.id: fee.name for fee in fees}
    rows = list_discount_rows(fees, await load_adjustments(db, tenant_id), await load_years(db, tenant_id), target_year_id)
    return [
        ResolvedDiscountItem(
            discount_id=row.discount.id,
            name=row.discount.name,
            discount_amount=row.discount.money.amount,
            is_active=row.is_active,
            linked_fee_id=row.resolution.linked_fee_id if row.resolution else None,
            linked_fee_name=names.get(row.resolution.linked_fee_id) if row.resolution else None,
            linked_amount=row.resolution.linked_amount if row.resolution else None,
            net_amount=row.resolution.net_amount if row.resolution else None,
        )
        for row in rows
    ]
