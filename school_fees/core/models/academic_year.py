import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from school_fees.db.session import Base


class AcademicYear(Base):
    """
    Academic year per tenant (school). Ordering between years always uses sequence_number,
    never the display name. Locked years are read-only: no new adjustments or disablements
    may start in them.
    """

    __tablename__ = "academic_years"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_academic_year_tenant_name"),
        UniqueConstraint("tenant_id", "sequence_number", name="uq_academic_year_tenant_sequence"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    name = Column(String(50), nullable=False)  # e.g. "2024"
    sequence_number = Column(Integer, nullable=False)
    is_locked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    terms = relationship(
        "Term",
        back_populates="academic_year",
        order_by="Term.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
