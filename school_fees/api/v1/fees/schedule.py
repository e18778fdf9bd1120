"""Per-term fee schedule for one academic year, built on the resolver."""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel

from school_fees.core.enums import AudienceType

from .resolver import (
    AdjustmentSnapshot,
    DiscountResolution,
    FeeSnapshot,
    TermSnapshot,
    YearSnapshot,
    is_active,
    resolve_amount,
    resolve_discount,
)


class FeeScheduleRow(BaseModel):
    fee: FeeSnapshot
    resolved_amount: Decimal
    is_active: bool


class TermFeeGroup(BaseModel):
    term: TermSnapshot
    rows: List[FeeScheduleRow]


class DiscountRow(BaseModel):
    discount: FeeSnapshot
    is_active: bool
    resolution: Optional[DiscountResolution] = None


def targets_audience(fee: FeeSnapshot, class_id: Optional[UUID] = None, section: Optional[str] = None) -> bool:
    """Whether the fee's class/section targeting admits the given class and section."""
    if fee.is_assignment_fee:
        return True
    if class_id is not None and fee.class_fee_type == AudienceType.specific and class_id not in fee.class_ids:
        return False
    if section is not None and fee.section_fee_type == AudienceType.specific and fee.section != section:
        return False
    return True


def build_fee_schedule(
    fees: Iterable[FeeSnapshot],
    adjustments: Iterable[AdjustmentSnapshot],
    years: Iterable[YearSnapshot],
    target_year_id: UUID,
    *,
    term_id: Optional[UUID] = None,
    class_id: Optional[UUID] = None,
    section: Optional[str] = None,
) -> List[TermFeeGroup]:
    """
    Group the general fees of a year by term, each row carrying its resolved amount and status.
    Every term of the year gets a group. Fees with no term land in the current term, or the
    first term when none is current. Discounts and assignment fees are not part of the schedule.
    """
    years = list(years)
    adjustments = list(adjustments)
    year = next((y for y in years if y.id == target_year_id), None)
    if year is None or not year.terms:
        return []

    terms = sorted(year.terms, key=lambda t: t.position)
    fallback_term = next((t for t in terms if t.is_current), terms[0])
    groups: Dict[UUID, List[FeeScheduleRow]] = {t.id: [] for t in terms}

    for fee in fees:
        if fee.is_discount or fee.is_assignment_fee:
            continue
        if fee.academic_year_id is not None and fee.academic_year_id != target_year_id:
            continue
        if fee.term_id is not None and fee.term_id not in groups:
            continue
        if not targets_audience(fee, class_id=class_id, section=section):
            continue
        bucket = fee.term_id if fee.term_id is not None else fallback_term.id
        groups[bucket].append(
            FeeScheduleRow(
                fee=fee,
                resolved_amount=resolve_amount(fee, target_year_id, adjustments, years),
                is_active=is_active(fee, target_year_id, years),
            )
        )

    result = []
    for term in terms:
        if term_id is not None and term.id != term_id:
            continue
        rows = sorted(groups[term.id], key=lambda row: row.fee.name.lower())
        result.append(TermFeeGroup(term=term, rows=rows))
    return result


def list_discount_rows(
    fees: Iterable[FeeSnapshot],
    adjustments: Iterable[AdjustmentSnapshot],
    years: Iterable[YearSnapshot],
    target_year_id: Optional[UUID],
) -> List[DiscountRow]:
    fees = list(fees)
    adjustments = list(adjustments)
    years = list(years)
    rows = [
        DiscountRow(
            discount=fee,
            is_active=is_active(fee, target_year_id, years),
            resolution=resolve_discount(fee, fees, adjustments, years, target_year_id),
        )
        for fee in fees
        if fee.is_discount
    ]
    rows.sort(key=lambda row: row.discount.name.lower())
    return rows
