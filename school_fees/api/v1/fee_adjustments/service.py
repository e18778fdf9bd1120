"""Fee adjustment ledger service. Append-only: entries are created and listed, never edited."""

import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_fees.api.v1.academic_years.service import require_year_span
from school_fees.api.v1.fee_items.service import get_fee_model
from school_fees.api.v1.fees.audit_service import log_fee_audit
from school_fees.core.enums import EffectivePeriodType, FeeCategory
from school_fees.core.exceptions import ServiceError
from school_fees.core.models import FeeAdjustment

from .schemas import FeeAdjustmentCreate, FeeAdjustmentResponse

logger = logging.getLogger(__name__)


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _to_response(adj: FeeAdjustment) -> FeeAdjustmentResponse:
    return FeeAdjustmentResponse(
        id=_to_uuid(adj.id),
        tenant_id=_to_uuid(adj.tenant_id),
        fee_item_id=_to_uuid(adj.fee_item_id),
        adjustment_type=adj.adjustment_type,
        amount=_to_decimal(adj.amount),
        effective_period_type=adj.effective_period_type,
        start_year_id=_to_uuid(adj.start_year_id),
        end_year_id=_to_uuid(adj.end_year_id),
        reason=adj.reason,
        adjusted_by=_to_uuid(adj.adjusted_by),
        created_at=adj.created_at,
    )


async def create_fee_adjustment(
    db: AsyncSession,
    tenant_id: UUID,
    payload: FeeAdjustmentCreate,
    actor_id: UUID,
) -> FeeAdjustmentResponse:
    fee = await get_fee_model(db, tenant_id, payload.fee_item_id)
    if not fee:
        raise ServiceError("Fee item not found", status.HTTP_404_NOT_FOUND)
    if fee.category == FeeCategory.DISCOUNT.value:
        raise ServiceError("Discounts cannot be adjusted; edit the discount amount instead", status.HTTP_400_BAD_REQUEST)

    start_year_id = payload.start_year_id
    if payload.effective_period_type == EffectivePeriodType.specific_year and fee.academic_year_id is not None:
        # a fee scoped to one year can only be adjusted for that year
        start_year_id = fee.academic_year_id
    if start_year_id is None:
        raise ServiceError("Please select the effective start year", status.HTTP_400_BAD_REQUEST)
    await require_year_span(db, tenant_id, start_year_id, payload.end_year_id)

    adj = FeeAdjustment(
        tenant_id=tenant_id,
        fee_item_id=fee.id,
        adjustment_type=payload.adjustment_type.value,
        amount=payload.amount,
        effective_period_type=payload.effective_period_type.value,
        start_year_id=start_year_id,
        end_year_id=payload.end_year_id,
        reason=(payload.reason or "").strip() or None,
        adjusted_by=actor_id,
    )
    db.add(adj)
    await db.flush()
    await log_fee_audit(
        db, tenant_id, "fee_adjustments", adj.id,
        "ADJUST", None,
        {
            "fee_item_id": str(fee.id),
            "adjustment_type": adj.adjustment_type,
            "amount": str(payload.amount),
            "effective_period_type": adj.effective_period_type,
            "start_year_id": str(start_year_id),
            "end_year_id": str(payload.end_year_id) if payload.end_year_id else None,
        },
        actor_id,
    )
    await db.commit()
    await db.refresh(adj)
    return _to_response(adj)


async def list_adjustment_models(
    db: AsyncSession,
    tenant_id: UUID,
    fee_item_id: Optional[UUID] = None,
) -> List[FeeAdjustment]:
    """Ledger rows in insertion order (oldest first)."""
    stmt = select(FeeAdjustment).where(FeeAdjustment.tenant_id == tenant_id)
    if fee_item_id is not None:
        stmt = stmt.where(FeeAdjustment.fee_item_id == fee_item_id)
    stmt = stmt.order_by(FeeAdjustment.created_at)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_fee_adjustments(
    db: AsyncSession,
    tenant_id: UUID,
    fee_item_id: Optional[UUID] = None,
) -> List[FeeAdjustmentResponse]:
    return [_to_response(adj) for adj in await list_adjustment_models(db, tenant_id, fee_item_id)]
