from school_fees.core.models.academic_year import AcademicYear
from school_fees.core.models.term import Term
from school_fees.core.models.fee_item import FeeItem
from school_fees.core.models.fee_adjustment import FeeAdjustment
from school_fees.core.models.fee_disable_event import FeeDisableEvent
from school_fees.core.models.fee_audit_log import FeeAuditLog

__all__ = [
    "AcademicYear",
    "Term",
    "FeeItem",
    "FeeAdjustment",
    "FeeDisableEvent",
    "FeeAuditLog",
]
