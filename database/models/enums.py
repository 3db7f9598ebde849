"""
Closed sets of named states shared across the marketplace read model.

Each enum is stored and serialized by its canonical string value
("Open", "Above Market", ...). Parsing an unknown string raises
InvalidEnumValueError instead of guessing.
"""

from enum import Enum

from sqlalchemy import Enum as SAEnum

from core.exceptions import InvalidEnumValueError


class _StrEnum(str, Enum):

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            needle = value.strip().lower()
            for member in cls:
                if member.value.lower() == needle or member.name.lower() == needle:
                    return member
        raise InvalidEnumValueError(cls.__name__, value)

    def __str__(self) -> str:
        return self.value


class JobStatus(_StrEnum):
    DRAFT = 'Draft'
    OPEN = 'Open'
    QUOTED = 'Quoted'
    ACCEPTED = 'Accepted'
    IN_PROGRESS = 'InProgress'
    COMPLETED = 'Completed'
    CANCELLED = 'Cancelled'


class QuoteStatus(_StrEnum):
    PENDING = 'Pending'
    ACCEPTED = 'Accepted'
    REJECTED = 'Rejected'
    WITHDRAWN = 'Withdrawn'
    EXPIRED = 'Expired'


class PaymentStatus(_StrEnum):
    PENDING = 'Pending'
    HELD = 'Held'
    RELEASED = 'Released'
    REFUNDED = 'Refunded'
    FAILED = 'Failed'


class VerificationStatus(_StrEnum):
    PENDING = 'Pending'
    VERIFIED = 'Verified'
    REJECTED = 'Rejected'
    EXPIRED = 'Expired'


class SubscriptionTier(_StrEnum):
    STARTER = 'Starter'
    PROFESSIONAL = 'Professional'
    BUSINESS = 'Business'


class ScoreRating(_StrEnum):
    EXCELLENT = 'Excellent'
    GOOD = 'Good'
    FAIR = 'Fair'
    LOW = 'Low'


class PriceRating(_StrEnum):
    PREMIUM = 'Premium'
    ABOVE_MARKET = 'Above Market'
    AT_MARKET = 'At Market'
    BELOW_MARKET = 'Below Market'
    BUDGET = 'Budget'
    UNKNOWN = 'Unknown'


def enum_column_type(enum_cls, name: str):
    """SQLAlchemy column type storing the enum's canonical string value."""
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
