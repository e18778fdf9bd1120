"""Fee item: a priced, audience-scoped charge, or a credit for the Discount category."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Text, Uuid

from school_fees.db.session import Base


class FeeItem(Base):
    """
    Tenant-scoped fee item. amount is an unsigned magnitude; direction says whether it is a
    charge or a credit (Discount category only).

    status/disable_type/disable_start_year_id/disable_end_year_id form the current
    disable-state record. It is rewritten on every disable/enable action; the full trail
    lives in fee_disable_events.
    """

    __tablename__ = "fee_items"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="chk_fee_item_amount_unsigned"),
        CheckConstraint("direction IN ('charge','credit')", name="chk_fee_item_direction"),
        CheckConstraint("status IN ('active','disabled')", name="chk_fee_item_status"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    direction = Column(String(10), nullable=False, default="charge")
    category = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)

    academic_year_id = Column(Uuid(as_uuid=True), ForeignKey("academic_years.id", ondelete="SET NULL"), nullable=True)
    term_id = Column(Uuid(as_uuid=True), ForeignKey("terms.id", ondelete="SET NULL"), nullable=True)

    # Audience targeting
    class_fee_type = Column(String(20), nullable=False, default="all")  # all | specific
    class_ids = Column(JSON, nullable=True)
    section_fee_type = Column(String(20), nullable=False, default="all")  # all | specific
    section = Column(String(20), nullable=True)  # Day | Boarding

    is_required = Column(Boolean, nullable=False, default=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    frequency = Column(String(20), nullable=True)  # Termly | Yearly | Once
    is_assignment_fee = Column(Boolean, nullable=False, default=False)
    linked_fee_id = Column(Uuid(as_uuid=True), ForeignKey("fee_items.id", ondelete="SET NULL"), nullable=True)

    # Current disable state
    status = Column(String(20), nullable=False, default="active")
    disable_type = Column(String(30), nullable=True)
    disable_start_year_id = Column(Uuid(as_uuid=True), ForeignKey("academic_years.id", ondelete="SET NULL"), nullable=True)
    disable_end_year_id = Column(Uuid(as_uuid=True), ForeignKey("academic_years.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
