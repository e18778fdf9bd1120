from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class TermCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50, description="e.g. Term 1")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: bool = False

    @model_validator(mode="after")
    def validate_dates(self) -> "TermCreate":
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class AcademicYearCreate(BaseModel):
    """Create academic year with its terms (in order). name must be unique per tenant."""

    name: str = Field(..., min_length=1, max_length=50, description="e.g. 2024")
    sequence_number: Optional[int] = Field(
        None,
        description="Ordering key between years. Defaults to the name when the name is an integer.",
    )
    terms: List[TermCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_single_current_term(self) -> "AcademicYearCreate":
        if sum(1 for t in self.terms if t.is_current) > 1:
            raise ValueError("At most one term can be current")
        return self


class AcademicYearUpdate(BaseModel):
    """Update academic year. Only allowed when the year is not locked."""

    name: Optional[str] = Field(None, min_length=1, max_length=50)
    sequence_number: Optional[int] = None


class TermResponse(BaseModel):
    id: UUID
    academic_year_id: UUID
    name: str
    position: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: bool

    class Config:
        from_attributes = True


class AcademicYearResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    name: str
    sequence_number: int
    is_locked: bool
    terms: List[TermResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
