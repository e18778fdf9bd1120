from enum import Enum


class FeeCategory(str, Enum):
    TUITION = "Tuition Fee"
    UNIFORM = "Uniform Fee"
    ACTIVITY = "Activity Fee"
    TRANSPORT = "Transport Fee"
    BOARDING = "Boarding Fee"
    DEVELOPMENT = "Development Fee"
    EXAMINATION = "Examination Fee"
    OTHER = "Other Fee"
    DISCOUNT = "Discount"


class FeeFrequency(str, Enum):
    TERMLY = "Termly"
    YEARLY = "Yearly"
    ONCE = "Once"


class FeeStatus(str, Enum):
    active = "active"
    disabled = "disabled"


class Direction(str, Enum):
    """Whether an amount is owed by the pupil (charge) or given back (credit)."""

    charge = "charge"
    credit = "credit"


class AudienceType(str, Enum):
    all = "all"
    specific = "specific"


class FeeSection(str, Enum):
    DAY = "Day"
    BOARDING = "Boarding"


class AdjustmentType(str, Enum):
    increase = "increase"
    decrease = "decrease"


class EffectivePeriodType(str, Enum):
    specific_year = "specific_year"
    from_year_onwards = "from_year_onwards"
    year_range = "year_range"


class DisableType(str, Enum):
    immediate_indefinite = "immediate_indefinite"
    from_year_onwards = "from_year_onwards"
    year_range = "year_range"


class DisableAction(str, Enum):
    disable = "disable"
    enable = "enable"
