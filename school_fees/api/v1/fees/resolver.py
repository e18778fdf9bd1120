"""
Fee amount resolution: effective amount, active status and discount net for an academic year.

Pure and synchronous. Works on immutable snapshots built by the service layer, holds no state,
never touches the database and never raises: a missing reference degrades to the base amount,
to "entry does not apply", or to None for discounts.

Year ordering uses YearSnapshot.sequence_number only.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from pydantic import BaseModel, field_validator

from school_fees.core.enums import (
    AdjustmentType,
    Direction,
    DisableAction,
    DisableType,
    EffectivePeriodType,
    FeeCategory,
    FeeStatus,
)

logger = logging.getLogger(__name__)


class Money(BaseModel):
    """Unsigned magnitude plus an explicit direction."""

    amount: Decimal
    direction: Direction = Direction.charge

    class Config:
        frozen = True

    @field_validator("amount")
    @classmethod
    def _magnitude(cls, value: Decimal) -> Decimal:
        return abs(value)

    @property
    def signed(self) -> Decimal:
        return self.amount if self.direction == Direction.charge else -self.amount

    @classmethod
    def charge(cls, amount) -> "Money":
        return cls(amount=Decimal(str(amount)), direction=Direction.charge)

    @classmethod
    def credit(cls, amount) -> "Money":
        return cls(amount=Decimal(str(amount)), direction=Direction.credit)


class TermSnapshot(BaseModel):
    id: UUID
    name: str
    position: int
    is_current: bool = False

    class Config:
        frozen = True


class YearSnapshot(BaseModel):
    id: UUID
    name: str
    sequence_number: int
    is_locked: bool = False
    terms: Tuple[TermSnapshot, ...] = ()

    class Config:
        frozen = True


class AdjustmentSnapshot(BaseModel):
    id: UUID
    fee_item_id: UUID
    adjustment_type: str
    amount: Decimal
    effective_period_type: str
    start_year_id: UUID
    end_year_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        frozen = True


class DisableEntry(BaseModel):
    """One row of a disable history as kept by older records (latest entry wins)."""

    action: DisableAction = DisableAction.disable
    disable_type: str
    start_year_id: Optional[UUID] = None
    end_year_id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    class Config:
        frozen = True


class ActivityState(BaseModel):
    """Current disable state of a fee item. The only input the active-status check reads."""

    is_active: bool = True
    disable_type: Optional[str] = None
    start_year_id: Optional[UUID] = None
    end_year_id: Optional[UUID] = None

    class Config:
        frozen = True

    @classmethod
    def from_history(cls, status: str, history: Sequence[DisableEntry]) -> "ActivityState":
        """Derive the current state from a status flag and its disable history.

        status is authoritative: an active fee stays active whatever the trail says. For a
        disabled fee only the latest entry counts; earlier disable/enable cycles are history.
        """
        if status != FeeStatus.disabled:
            return cls()
        if not history:
            return cls(is_active=False)
        latest = history[-1]
        if latest.action == DisableAction.enable:
            # status says disabled but the trail ends in an enable; status wins
            return cls(is_active=False)
        return cls(
            is_active=False,
            disable_type=latest.disable_type,
            start_year_id=latest.start_year_id,
            end_year_id=latest.end_year_id,
        )


class FeeSnapshot(BaseModel):
    id: UUID
    name: str
    money: Money
    category: str
    state: ActivityState = ActivityState()
    linked_fee_id: Optional[UUID] = None
    academic_year_id: Optional[UUID] = None
    term_id: Optional[UUID] = None
    class_fee_type: str = "all"
    class_ids: Tuple[UUID, ...] = ()
    section_fee_type: str = "all"
    section: Optional[str] = None
    is_assignment_fee: bool = False

    class Config:
        frozen = True

    @property
    def is_discount(self) -> bool:
        return self.category == FeeCategory.DISCOUNT


class DiscountResolution(BaseModel):
    linked_fee_id: UUID
    linked_amount: Decimal
    net_amount: Decimal

    class Config:
        frozen = True


def index_years(all_years: Iterable[YearSnapshot]) -> Dict[UUID, YearSnapshot]:
    return {year.id: year for year in all_years}


def scope_applies(
    period_type: Optional[str],
    start_year_id: Optional[UUID],
    end_year_id: Optional[UUID],
    target_year_id: Optional[UUID],
    years_by_id: Mapping[UUID, YearSnapshot],
) -> bool:
    """Whether a temporally scoped entry covers the target year.

    specific_year matches on identity; the other two compare sequence numbers. Unknown types and
    years that do not resolve never apply.
    """
    target = years_by_id.get(target_year_id) if target_year_id is not None else None
    if target is None:
        return False
    start = years_by_id.get(start_year_id) if start_year_id is not None else None
    if start is None:
        return False

    if period_type == EffectivePeriodType.specific_year:
        return target_year_id == start_year_id
    if period_type == EffectivePeriodType.from_year_onwards:
        return target.sequence_number >= start.sequence_number
    if period_type == EffectivePeriodType.year_range:
        end = years_by_id.get(end_year_id) if end_year_id is not None else None
        if end is None:
            return False
        return start.sequence_number <= target.sequence_number <= end.sequence_number
    return False


def applicable_adjustments(
    fee_id: UUID,
    target_year_id: Optional[UUID],
    all_adjustments: Iterable[AdjustmentSnapshot],
    years_by_id: Mapping[UUID, YearSnapshot],
) -> List[AdjustmentSnapshot]:
    """Adjustments of one fee valid for the target year, oldest first (ties keep ledger order)."""
    selected = [
        adj
        for adj in all_adjustments
        if adj.fee_item_id == fee_id
        and scope_applies(
            adj.effective_period_type,
            adj.start_year_id,
            adj.end_year_id,
            target_year_id,
            years_by_id,
        )
    ]
    selected.sort(key=lambda adj: adj.created_at)
    return selected


def resolve_amount(
    fee: FeeSnapshot,
    target_year_id: Optional[UUID],
    all_adjustments: Iterable[AdjustmentSnapshot],
    all_years: Iterable[YearSnapshot],
) -> Decimal:
    """Base amount with every applicable adjustment folded on in chronological order.

    Later adjustments compound on the running total. The result is not clamped and may go
    negative.
    """
    amount = fee.money.signed
    if target_year_id is None:
        return amount
    years_by_id = index_years(all_years)
    if target_year_id not in years_by_id:
        logger.debug("Target year %s not found; using base amount of fee %s", target_year_id, fee.id)
        return amount

    for adj in applicable_adjustments(fee.id, target_year_id, all_adjustments, years_by_id):
        if adj.adjustment_type == AdjustmentType.increase:
            amount += adj.amount
        elif adj.adjustment_type == AdjustmentType.decrease:
            amount -= adj.amount
    return amount


def is_active(
    fee: FeeSnapshot,
    target_year_id: Optional[UUID],
    all_years: Iterable[YearSnapshot],
) -> bool:
    """Whether the fee applies in the target year, read from its current disable state."""
    state = fee.state
    if state.is_active:
        return True
    if state.disable_type in (DisableType.from_year_onwards, DisableType.year_range):
        years_by_id = index_years(all_years)
        if target_year_id not in years_by_id or state.start_year_id not in years_by_id:
            logger.debug("Disable scope of fee %s does not resolve for year %s", fee.id, target_year_id)
        return not scope_applies(
            state.disable_type,
            state.start_year_id,
            state.end_year_id,
            target_year_id,
            years_by_id,
        )
    # immediate_indefinite, or a disabled fee with no recorded scope
    return False


def resolve_discount(
    discount: FeeSnapshot,
    all_fees: Iterable[FeeSnapshot],
    all_adjustments: Iterable[AdjustmentSnapshot],
    all_years: Iterable[YearSnapshot],
    target_year_id: Optional[UUID],
) -> Optional[DiscountResolution]:
    """Net amount of the linked fee after the discount. None when the discount is not linked."""
    if not discount.is_discount or discount.linked_fee_id is None:
        return None
    linked_fee = next((fee for fee in all_fees if fee.id == discount.linked_fee_id), None)
    if linked_fee is None:
        logger.debug("Discount %s links to missing fee %s", discount.id, discount.linked_fee_id)
        return None
    linked_amount = resolve_amount(linked_fee, target_year_id, all_adjustments, all_years)
    return DiscountResolution(
        linked_fee_id=linked_fee.id,
        linked_amount=linked_amount,
        net_amount=linked_amount - discount.money.amount,
    )
