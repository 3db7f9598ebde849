import logging
import uuid
import threading
from dataclasses import fields, is_dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_EVEN
from enum import Enum
from typing import Any, Optional, Union

from dateutil.relativedelta import relativedelta

from core.exceptions import OperationCancelledError

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare against tz-aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def months_ago(months: int, now: Optional[datetime] = None) -> datetime:
    """Calendar-month offset, clamping the day (e.g. Aug 31 -> Feb 28)."""
    return (now or utc_now()) - relativedelta(months=months)


def to_decimal(value: Union[Decimal, int, float, str, None]) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.1 as Decimal("0.1") instead of its binary expansion
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places, ties to even."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_EVEN)


def check_cancelled(stop_event: Optional[threading.Event], where: str = "") -> None:
    """Raise OperationCancelledError if the caller's stop event is set."""
    if stop_event is not None and stop_event.is_set():
        logger.info(f"Operation cancelled{f' during {where}' if where else ''}")
        raise OperationCancelledError(f"Cancelled{f' during {where}' if where else ''}")


def to_jsonable(value: Any) -> Any:
    """Convert DTO field values into JSON-safe primitives.

    Enums become their canonical string, Decimals become strings (no float
    rounding), datetimes become ISO-8601 and UUIDs become strings.
    """
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    return value
