"""Fee item, discount and disablement schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from school_fees.core.enums import (
    AudienceType,
    DisableAction,
    DisableType,
    Direction,
    FeeCategory,
    FeeFrequency,
    FeeSection,
    FeeStatus,
)


# --- Fee items ---
class FeeItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    amount: Decimal = Field(..., ge=0)
    category: FeeCategory
    academic_year_id: Optional[UUID] = None
    term_id: Optional[UUID] = None
    class_fee_type: AudienceType = AudienceType.all
    class_ids: List[UUID] = Field(default_factory=list)
    section_fee_type: AudienceType = AudienceType.all
    section: Optional[FeeSection] = None
    is_required: bool = True
    is_recurring: bool = False
    frequency: Optional[FeeFrequency] = None
    is_assignment_fee: bool = False
    description: Optional[str] = None

    @field_validator("category")
    @classmethod
    def reject_discount_category(cls, value: FeeCategory) -> FeeCategory:
        if value == FeeCategory.DISCOUNT:
            raise ValueError("Discounts are created through the discounts endpoint")
        return value


class FeeItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    amount: Optional[Decimal] = Field(None, ge=0)
    category: Optional[FeeCategory] = None
    academic_year_id: Optional[UUID] = None
    term_id: Optional[UUID] = None
    class_fee_type: Optional[AudienceType] = None
    class_ids: Optional[List[UUID]] = None
    section_fee_type: Optional[AudienceType] = None
    section: Optional[FeeSection] = None
    is_required: Optional[bool] = None
    is_recurring: Optional[bool] = None
    frequency: Optional[FeeFrequency] = None
    description: Optional[str] = None

    @field_validator("category")
    @classmethod
    def reject_discount_category(cls, value: Optional[FeeCategory]) -> Optional[FeeCategory]:
        if value == FeeCategory.DISCOUNT:
            raise ValueError("A fee item cannot be turned into a discount")
        return value


class FeeItemResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    name: str
    amount: Decimal
    direction: Direction
    signed_amount: Decimal
    category: FeeCategory
    description: Optional[str] = None
    academic_year_id: Optional[UUID] = None
    term_id: Optional[UUID] = None
    class_fee_type: AudienceType
    class_ids: List[UUID] = Field(default_factory=list)
    section_fee_type: AudienceType
    section: Optional[FeeSection] = None
    is_required: bool
    is_recurring: bool
    frequency: Optional[FeeFrequency] = None
    is_assignment_fee: bool
    linked_fee_id: Optional[UUID] = None
    status: FeeStatus
    disable_type: Optional[DisableType] = None
    disable_start_year_id: Optional[UUID] = None
    disable_end_year_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# --- Discounts ---
class DiscountCreate(BaseModel):
    """Discount amount is a magnitude; it is always stored as a credit."""

    name: str = Field(..., min_length=1, max_length=150)
    amount: Decimal = Field(..., gt=0)
    linked_fee_id: Optional[UUID] = None
    description: Optional[str] = None


class DiscountUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    amount: Optional[Decimal] = Field(None, gt=0)
    linked_fee_id: Optional[UUID] = None
    unlink: bool = Field(False, description="Remove the link to the discounted fee")
    description: Optional[str] = None


# --- Disable / enable ---
class FeeDisableRequest(BaseModel):
    reason: str = Field(..., max_length=500)
    disable_type: DisableType = DisableType.immediate_indefinite
    start_year_id: Optional[UUID] = None
    end_year_id: Optional[UUID] = None

    @model_validator(mode="after")
    def validate_scope(self) -> "FeeDisableRequest":
        if not self.reason.strip():
            raise ValueError("A reason is required to disable a fee item")
        if self.disable_type == DisableType.immediate_indefinite:
            self.start_year_id = None
            self.end_year_id = None
        elif self.disable_type == DisableType.from_year_onwards:
            if self.start_year_id is None:
                raise ValueError("start_year_id is required for from_year_onwards")
            self.end_year_id = None
        elif self.start_year_id is None or self.end_year_id is None:
            raise ValueError("start_year_id and end_year_id are required for year_range")
        return self


class FeeEnableRequest(BaseModel):
    reason: str = Field("Fee re-enabled by user.", max_length=500)


class FeeDisableEventResponse(BaseModel):
    id: UUID
    fee_item_id: UUID
    action: DisableAction
    reason: str
    disable_type: DisableType
    start_year_id: Optional[UUID] = None
    end_year_id: Optional[UUID] = None
    performed_by: UUID
    created_at: datetime

    class Config:
        from_attributes = True
