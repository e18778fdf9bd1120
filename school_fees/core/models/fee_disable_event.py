"""Disablement ledger: immutable trail of disable/enable actions on a fee item."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid

from school_fees.db.session import Base


class FeeDisableEvent(Base):
    """Append-only. The current state lives on FeeItem; rows here are never rewritten."""

    __tablename__ = "fee_disable_events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    fee_item_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("fee_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action = Column(String(20), nullable=False)  # disable | enable
    reason = Column(Text, nullable=False)
    disable_type = Column(String(30), nullable=False)
    start_year_id = Column(Uuid(as_uuid=True), ForeignKey("academic_years.id", ondelete="SET NULL"), nullable=True)
    end_year_id = Column(Uuid(as_uuid=True), ForeignKey("academic_years.id", ondelete="SET NULL"), nullable=True)
    performed_by = Column(Uuid(as_uuid=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
