import enum
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal


class RecordStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def round_rating(total: float, count: int) -> float:
    """Mean rounded half-up to one decimal; 0 when there is nothing to average."""
    if count == 0:
        return 0.0
    mean = Decimal(str(total)) / Decimal(count)
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
