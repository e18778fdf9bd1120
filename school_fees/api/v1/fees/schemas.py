"""Fee resolution schemas: resolved amounts, fee schedule and discount nets."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from school_fees.core.enums import AdjustmentType, EffectivePeriodType, FeeCategory


class AppliedAdjustment(BaseModel):
    id: UUID
    adjustment_type: AdjustmentType
    amount: Decimal
    effective_period_type: EffectivePeriodType
    created_at: datetime


class DiscountResolutionResponse(BaseModel):
    linked_fee_id: UUID
    linked_amount: Decimal
    net_amount: Decimal


class FeeResolutionResponse(BaseModel):
    """Amount owed for one fee item in one academic year."""

    fee_item_id: UUID
    academic_year_id: Optional[UUID] = None
    base_amount: Decimal
    resolved_amount: Decimal
    is_active: bool
    applied_adjustments: List[AppliedAdjustment] = Field(default_factory=list)
    discount: Optional[DiscountResolutionResponse] = None


class FeeScheduleItem(BaseModel):
    fee_item_id: UUID
    name: str
    category: FeeCategory
    base_amount: Decimal
    resolved_amount: Decimal
    is_active: bool


class TermFeeGroupResponse(BaseModel):
    term_id: UUID
    term_name: str
    position: int
    is_current: bool
    items: List[FeeScheduleItem]


class FeeScheduleResponse(BaseModel):
    """General fees of a year grouped by term."""

    academic_year_id: Optional[UUID] = None
    groups: List[TermFeeGroupResponse]


class ResolvedDiscountItem(BaseModel):
    discount_id: UUID
    name: str
    discount_amount: Decimal
    is_active: bool
    linked_fee_id: Optional[UUID] = None
    linked_fee_name: Optional[str] = None
    linked_amount: Optional[Decimal] = None
    net_amount: Optional[Decimal] = None
