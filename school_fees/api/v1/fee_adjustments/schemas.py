"""Fee adjustment schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from school_fees.core.enums import AdjustmentType, EffectivePeriodType


class FeeAdjustmentCreate(BaseModel):
    fee_item_id: UUID
    adjustment_type: AdjustmentType
    amount: Decimal = Field(..., gt=0, description="Always positive; the sign comes from adjustment_type")
    effective_period_type: EffectivePeriodType = EffectivePeriodType.specific_year
    start_year_id: Optional[UUID] = Field(
        None,
        description="Defaults to the fee item's own academic year for specific_year",
    )
    end_year_id: Optional[UUID] = None
    reason: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def validate_period(self) -> "FeeAdjustmentCreate":
        if self.effective_period_type == EffectivePeriodType.year_range:
            if self.end_year_id is None:
                raise ValueError("end_year_id is required for year_range")
        elif self.end_year_id is not None:
            raise ValueError("end_year_id is only allowed for year_range")
        if self.effective_period_type != EffectivePeriodType.specific_year and self.start_year_id is None:
            raise ValueError("start_year_id is required")
        return self


class FeeAdjustmentResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    fee_item_id: UUID
    adjustment_type: AdjustmentType
    amount: Decimal
    effective_period_type: EffectivePeriodType
    start_year_id: UUID
    end_year_id: Optional[UUID] = None
    reason: Optional[str] = None
    adjusted_by: UUID
    created_at: datetime

    class Config:
        from_attributes = True
