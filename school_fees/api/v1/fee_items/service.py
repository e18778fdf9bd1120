"""Fee item service layer: fee items, discounts and the disablement ledger. Every mutation is audited."""

import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from school_fees.api.v1.academic_years.service import get_term, get_year, require_year_span
from school_fees.api.v1.fees.audit_service import log_fee_audit
from school_fees.core.enums import (
    AudienceType,
    Direction,
    DisableAction,
    DisableType,
    FeeCategory,
    FeeStatus,
)
from school_fees.core.exceptions import ServiceError
from school_fees.core.models import FeeAdjustment, FeeDisableEvent, FeeItem

from .schemas import (
    DiscountCreate,
    DiscountUpdate,
    FeeDisableEventResponse,
    FeeDisableRequest,
    FeeEnableRequest,
    FeeItemCreate,
    FeeItemResponse,
    FeeItemUpdate,
)

logger = logging.getLogger(__name__)


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _signed(fee: FeeItem) -> Decimal:
    amount = _to_decimal(fee.amount)
    return -amount if fee.direction == Direction.credit.value else amount


def _to_response(fee: FeeItem) -> FeeItemResponse:
    return FeeItemResponse(
        id=_to_uuid(fee.id),
        tenant_id=_to_uuid(fee.tenant_id),
        name=fee.name,
        amount=_to_decimal(fee.amount),
        direction=fee.direction,
        signed_amount=_signed(fee),
        category=fee.category,
        description=fee.description,
        academic_year_id=_to_uuid(fee.academic_year_id),
        term_id=_to_uuid(fee.term_id),
        class_fee_type=fee.class_fee_type,
        class_ids=[_to_uuid(c) for c in (fee.class_ids or [])],
        section_fee_type=fee.section_fee_type,
        section=fee.section,
        is_required=fee.is_required,
        is_recurring=fee.is_recurring,
        frequency=fee.frequency,
        is_assignment_fee=fee.is_assignment_fee,
        linked_fee_id=_to_uuid(fee.linked_fee_id),
        status=fee.status,
        disable_type=fee.disable_type,
        disable_start_year_id=_to_uuid(fee.disable_start_year_id),
        disable_end_year_id=_to_uuid(fee.disable_end_year_id),
        created_at=fee.created_at,
        updated_at=fee.updated_at,
    )


def _event_to_response(ev: FeeDisableEvent) -> FeeDisableEventResponse:
    return FeeDisableEventResponse(
        id=_to_uuid(ev.id),
        fee_item_id=_to_uuid(ev.fee_item_id),
        action=ev.action,
        reason=ev.reason,
        disable_type=ev.disable_type,
        start_year_id=_to_uuid(ev.start_year_id),
        end_year_id=_to_uuid(ev.end_year_id),
        performed_by=_to_uuid(ev.performed_by),
        created_at=ev.created_at,
    )


def _audit_snapshot(fee: FeeItem) -> dict:
    return {
        "name": fee.name,
        "amount": str(_to_decimal(fee.amount)),
        "direction": fee.direction,
        "category": fee.category,
        "academic_year_id": str(fee.academic_year_id) if fee.academic_year_id else None,
        "term_id": str(fee.term_id) if fee.term_id else None,
        "linked_fee_id": str(fee.linked_fee_id) if fee.linked_fee_id else None,
        "status": fee.status,
    }


async def get_fee_model(
    db: AsyncSession,
    tenant_id: UUID,
    fee_item_id: UUID,
) -> Optional[FeeItem]:
    result = await db.execute(
        select(FeeItem).where(
            FeeItem.id == fee_item_id,
            FeeItem.tenant_id == tenant_id,
        )
    )
    return result.scalar_one_or_none()


async def _get_fee_or_404(db: AsyncSession, tenant_id: UUID, fee_item_id: UUID) -> FeeItem:
    fee = await get_fee_model(db, tenant_id, fee_item_id)
    if not fee:
        raise ServiceError("Fee item not found", status.HTTP_404_NOT_FOUND)
    return fee


async def _resolve_calendar_scope(
    db: AsyncSession,
    tenant_id: UUID,
    academic_year_id: Optional[UUID],
    term_id: Optional[UUID],
) -> Optional[UUID]:
    """Validate an optional year/term scope. A term alone implies its year. Returns the year id."""
    if term_id is not None:
        term = await get_term(db, tenant_id, term_id)
        if not term:
            raise ServiceError("Invalid term", status.HTTP_400_BAD_REQUEST)
        if academic_year_id is not None and term.academic_year_id != academic_year_id:
            raise ServiceError("Term does not belong to the academic year", status.HTTP_400_BAD_REQUEST)
        return term.academic_year_id
    if academic_year_id is not None:
        ay = await get_year(db, tenant_id, academic_year_id)
        if not ay:
            raise ServiceError("Invalid academic year", status.HTTP_400_BAD_REQUEST)
    return academic_year_id


def _apply_fee_rules(fee: FeeItem) -> None:
    """Normalise targeting/recurrence fields. Assignment fees apply to everyone, once, with no calendar scope."""
    if fee.is_assignment_fee:
        fee.academic_year_id = None
        fee.term_id = None
        fee.class_fee_type = AudienceType.all.value
        fee.section_fee_type = AudienceType.all.value
        fee.is_required = True
        fee.is_recurring = False
        fee.frequency = None
    if fee.class_fee_type != AudienceType.specific.value:
        fee.class_ids = None
    elif not fee.class_ids:
        raise ServiceError("Select at least one class for a class-specific fee", status.HTTP_400_BAD_REQUEST)
    if fee.section_fee_type != AudienceType.specific.value:
        fee.section = None
    elif not fee.section:
        raise ServiceError("Select a section for a section-specific fee", status.HTTP_400_BAD_REQUEST)
    if not fee.is_recurring:
        fee.frequency = None


# --- Fee items ---
async def create_fee_item(
    db: AsyncSession,
    tenant_id: UUID,
    payload: FeeItemCreate,
    actor_id: UUID,
) -> FeeItemResponse:
    academic_year_id = payload.academic_year_id
    if not payload.is_assignment_fee:
        academic_year_id = await _resolve_calendar_scope(db, tenant_id, payload.academic_year_id, payload.term_id)
    fee = FeeItem(
        tenant_id=tenant_id,
        name=payload.name.strip(),
        amount=payload.amount,
        direction=Direction.charge.value,
        category=payload.category.value,
        description=(payload.description or "").strip() or None,
        academic_year_id=academic_year_id,
        term_id=payload.term_id,
        class_fee_type=payload.class_fee_type.value,
        class_ids=[str(c) for c in payload.class_ids] or None,
        section_fee_type=payload.section_fee_type.value,
        section=payload.section.value if payload.section else None,
        is_required=payload.is_required,
        is_recurring=payload.is_recurring,
        frequency=payload.frequency.value if payload.frequency else None,
        is_assignment_fee=payload.is_assignment_fee,
        status=FeeStatus.active.value,
    )
    _apply_fee_rules(fee)
    db.add(fee)
    await db.flush()
    await log_fee_audit(db, tenant_id, "fee_items", fee.id, "CREATE", None, _audit_snapshot(fee), actor_id)
    await db.commit()
    await db.refresh(fee)
    return _to_response(fee)


async def list_fee_items(
    db: AsyncSession,
    tenant_id: UUID,
    category: Optional[FeeCategory] = None,
    academic_year_id: Optional[UUID] = None,
    status_filter: Optional[FeeStatus] = None,
) -> List[FeeItemResponse]:
    stmt = select(FeeItem).where(FeeItem.tenant_id == tenant_id)
    if category is not None:
        stmt = stmt.where(FeeItem.category == category.value)
    if academic_year_id is not None:
        stmt = stmt.where(FeeItem.academic_year_id == academic_year_id)
    if status_filter is not None:
        stmt = stmt.where(FeeItem.status == status_filter.value)
    stmt = stmt.order_by(FeeItem.name)
    result = await db.execute(stmt)
    return [_to_response(fee) for fee in result.scalars().all()]


async def get_fee_item(
    db: AsyncSession,
    tenant_id: UUID,
    fee_item_id: UUID,
) -> Optional[FeeItemResponse]:
    fee = await get_fee_model(db, tenant_id, fee_item_id)
    return _to_response(fee) if fee else None


async def update_fee_item(
    db: AsyncSession,
    tenant_id: UUID,
    fee_item_id: UUID,
    payload: FeeItemUpdate,
    actor_id: UUID,
) -> FeeItemResponse:
    fee = await _get_fee_or_404(db, tenant_id, fee_item_id)
    if fee.category == FeeCategory.DISCOUNT.value:
        raise ServiceError("Use the discounts endpoint to edit a discount", status.HTTP_400_BAD_REQUEST)
    old = _audit_snapshot(fee)
    data = payload.model_dump(exclude_unset=True)
    if "academic_year_id" in data or "term_id" in data:
        term_id = data.get("term_id", fee.term_id)
        year_id = data.get("academic_year_id", fee.academic_year_id)
        if "term_id" in data and "academic_year_id" not in data and term_id is not None:
            year_id = None
        fee.academic_year_id = await _resolve_calendar_scope(db, tenant_id, year_id, term_id)
        fee.term_id = term_id
    if payload.name is not None:
        fee.name = payload.name.strip()
    if payload.amount is not None:
        fee.amount = payload.amount
    if payload.category is not None:
        fee.category = payload.category.value
    if payload.class_fee_type is not None:
        fee.class_fee_type = payload.class_fee_type.value
    if payload.class_ids is not None:
        fee.class_ids = [str(c) for c in payload.class_ids] or None
    if payload.section_fee_type is not None:
        fee.section_fee_type = payload.section_fee_type.value
    if payload.section is not None:
        fee.section = payload.section.value
    if payload.is_required is not None:
        fee.is_required = payload.is_required
    if payload.is_recurring is not None:
        fee.is_recurring = payload.is_recurring
    if payload.frequency is not None:
        fee.frequency = payload.frequency.value
    if payload.description is not None:
        fee.description = payload.description.strip() or None
    _apply_fee_rules(fee)
    await log_fee_audit(db, tenant_id, "fee_items", fee.id, "UPDATE", old, _audit_snapshot(fee), actor_id)
    await db.commit()
    await db.refresh(fee)
    return _to_response(fee)


async def delete_fee_item(
    db: AsyncSession,
    tenant_id: UUID,
    fee_item_id: UUID,
    actor_id: UUID,
) -> None:
    """Delete a fee item with its adjustment and disablement ledgers. Discounts linked to it become unlinked."""
    fee = await _get_fee_or_404(db, tenant_id, fee_item_id)
    old = _audit_snapshot(fee)
    await db.execute(delete(FeeAdjustment).where(FeeAdjustment.fee_item_id == fee.id))
    await db.execute(delete(FeeDisableEvent).where(FeeDisableEvent.fee_item_id == fee.id))
    await db.execute(
        update(FeeItem)
        .where(FeeItem.tenant_id == tenant_id, FeeItem.linked_fee_id == fee.id)
        .values(linked_fee_id=None)
    )
    await db.delete(fee)
    await log_fee_audit(db, tenant_id, "fee_items", fee_item_id, "DELETE", old, None, actor_id)
    await db.commit()


# --- Discounts ---
async def _require_discountable_fee(db: AsyncSession, tenant_id: UUID, linked_fee_id: UUID) -> FeeItem:
    linked = await get_fee_model(db, tenant_id, linked_fee_id)
    if not linked:
        raise ServiceError("Linked fee item not found", status.HTTP_400_BAD_REQUEST)
    if linked.category == FeeCategory.DISCOUNT.value:
        raise ServiceError("A discount cannot be linked to another discount", status.HTTP_400_BAD_REQUEST)
    if linked.status != FeeStatus.active.value:
        raise ServiceError("Cannot link a discount to a disabled fee item", status.HTTP_400_BAD_REQUEST)
    return linked


async def create_discount(
    db: AsyncSession,
    tenant_id: UUID,
    payload: DiscountCreate,
    actor_id: UUID,
) -> FeeItemResponse:
    if payload.linked_fee_id is not None:
        await _require_discountable_fee(db, tenant_id, payload.linked_fee_id)
    discount = FeeItem(
        tenant_id=tenant_id,
        name=payload.name.strip(),
        amount=abs(payload.amount),
        direction=Direction.credit.value,
        category=FeeCategory.DISCOUNT.value,
        description=(payload.description or "").strip() or None,
        class_fee_type=AudienceType.all.value,
        section_fee_type=AudienceType.all.value,
        is_required=False,
        is_recurring=False,
        is_assignment_fee=False,
        linked_fee_id=payload.linked_fee_id,
        status=FeeStatus.active.value,
    )
    db.add(discount)
    await db.flush()
    await log_fee_audit(
        db, tenant_id, "fee_items", discount.id, "CREATE", None, _audit_snapshot(discount), actor_id
    )
    await db.commit()
    await db.refresh(discount)
    return _to_response(discount)


async def update_discount(
    db: AsyncSession,
    tenant_id: UUID,
    discount_id: UUID,
    payload: DiscountUpdate,
    actor_id: UUID,
) -> FeeItemResponse:
    discount = await _get_fee_or_404(db, tenant_id, discount_id)
    if discount.category != FeeCategory.DISCOUNT.value:
        raise ServiceError("Fee item is not a discount", status.HTTP_400_BAD_REQUEST)
    old = _audit_snapshot(discount)
    if payload.name is not None:
        discount.name = payload.name.strip()
    if payload.amount is not None:
        discount.amount = abs(payload.amount)
    if payload.description is not None:
        discount.description = payload.description.strip() or None
    if payload.unlink:
        discount.linked_fee_id = None
    elif payload.linked_fee_id is not None and payload.linked_fee_id != discount.linked_fee_id:
        await _require_discountable_fee(db, tenant_id, payload.linked_fee_id)
        discount.linked_fee_id = payload.linked_fee_id
    await log_fee_audit(
        db, tenant_id, "fee_items", discount.id, "UPDATE", old, _audit_snapshot(discount), actor_id
    )
    await db.commit()
    await db.refresh(discount)
    return _to_response(discount)


# --- Disablement ledger ---
async def disable_fee_item(
    db: AsyncSession,
    tenant_id: UUID,
    fee_item_id: UUID,
    payload: FeeDisableRequest,
    actor_id: UUID,
) -> FeeItemResponse:
    """Append a disable event and rewrite the current disable state in one transaction.
    Disabling an already disabled fee replaces its scope.
    """
    fee = await _get_fee_or_404(db, tenant_id, fee_item_id)
    if payload.start_year_id is not None:
        await require_year_span(db, tenant_id, payload.start_year_id, payload.end_year_id)
    old = {
        "status": fee.status,
        "disable_type": fee.disable_type,
        "start_year_id": str(fee.disable_start_year_id) if fee.disable_start_year_id else None,
        "end_year_id": str(fee.disable_end_year_id) if fee.disable_end_year_id else None,
    }
    event = FeeDisableEvent(
        tenant_id=tenant_id,
        fee_item_id=fee.id,
        action=DisableAction.disable.value,
        reason=payload.reason.strip(),
        disable_type=payload.disable_type.value,
        start_year_id=payload.start_year_id,
        end_year_id=payload.end_year_id,
        performed_by=actor_id,
    )
    db.add(event)
    fee.status = FeeStatus.disabled.value
    fee.disable_type = payload.disable_type.value
    fee.disable_start_year_id = payload.start_year_id
    fee.disable_end_year_id = payload.end_year_id
    await log_fee_audit(
        db, tenant_id, "fee_items", fee.id, "DISABLE", old,
        {
            "status": fee.status,
            "disable_type": fee.disable_type,
            "start_year_id": str(payload.start_year_id) if payload.start_year_id else None,
            "end_year_id": str(payload.end_year_id) if payload.end_year_id else None,
            "reason": event.reason,
        },
        actor_id,
    )
    await db.commit()
    await db.refresh(fee)
    logger.info("Fee item disabled (%s)", fee.disable_type, extra={"fee_item_id": fee.id})
    return _to_response(fee)


async def enable_fee_item(
    db: AsyncSession,
    tenant_id: UUID,
    fee_item_id: UUID,
    payload: FeeEnableRequest,
    actor_id: UUID,
) -> FeeItemResponse:
    """Append an enable event and reset the current disable state to active."""
    fee = await _get_fee_or_404(db, tenant_id, fee_item_id)
    if fee.status == FeeStatus.active.value:
        raise ServiceError("Fee item is already active", status.HTTP_400_BAD_REQUEST)
    old = {"status": fee.status, "disable_type": fee.disable_type}
    db.add(
        FeeDisableEvent(
            tenant_id=tenant_id,
            fee_item_id=fee.id,
            action=DisableAction.enable.value,
            reason=payload.reason.strip() or "Fee re-enabled by user.",
            disable_type=DisableType.immediate_indefinite.value,
            performed_by=actor_id,
        )
    )
    fee.status = FeeStatus.active.value
    fee.disable_type = None
    fee.disable_start_year_id = None
    fee.disable_end_year_id = None
    await log_fee_audit(
        db, tenant_id, "fee_items", fee.id, "ENABLE", old, {"status": fee.status}, actor_id
    )
    await db.commit()
    await db.refresh(fee)
    return _to_response(fee)


async def list_disable_history(
    db: AsyncSession,
    tenant_id: UUID,
    fee_item_id: UUID,
) -> List[FeeDisableEventResponse]:
    """Disable/enable events of a fee item, oldest first."""
    await _get_fee_or_404(db, tenant_id, fee_item_id)
    result = await db.execute(
        select(FeeDisableEvent)
        .where(
            FeeDisableEvent.tenant_id == tenant_id,
            FeeDisableEvent.fee_item_id == fee_item_id,
        )
        .order_by(FeeDisableEvent.created_at, FeeDisableEvent.id)
    )
    return [_event_to_response(ev) for ev in result.scalars().all()]
