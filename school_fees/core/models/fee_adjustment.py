"""Fee adjustment ledger: append-only signed changes on top of a fee item's base amount."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Text, Uuid

from school_fees.db.session import Base


class FeeAdjustment(Base):
    """One increase/decrease of a fee item, valid for a span of academic years."""

    __tablename__ = "fee_adjustments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_fee_adjustment_amount_positive"),
        CheckConstraint(
            "adjustment_type IN ('increase','decrease')",
            name="chk_fee_adjustment_type",
        ),
        CheckConstraint(
            "effective_period_type IN ('specific_year','from_year_onwards','year_range')",
            name="chk_fee_adjustment_period_type",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    fee_item_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("fee_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    adjustment_type = Column(String(20), nullable=False)
    # Always positive; sign comes from adjustment_type
    amount = Column(Numeric(12, 2), nullable=False)
    effective_period_type = Column(String(30), nullable=False)
    start_year_id = Column(Uuid(as_uuid=True), ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False)
    end_year_id = Column(Uuid(as_uuid=True), ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=True)
    reason = Column(Text, nullable=True)
    adjusted_by = Column(Uuid(as_uuid=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
