from .base import Base
from .enums import (
    JobStatus, QuoteStatus, PaymentStatus, VerificationStatus,
    SubscriptionTier, ScoreRating, PriceRating
)
from .user import User
from .tradie import TradieProfile, TradieLicence, Subscription
from .job import TradeCategory, Job, JobQuote
from .customer import Review, Milestone, Payment, CustomerQuality
from .lead_score import LeadScore

__all__ = [
    'Base',
    'JobStatus',
    'QuoteStatus',
    'PaymentStatus',
    'VerificationStatus',
    'SubscriptionTier',
    'ScoreRating',
    'PriceRating',
    'User',
    'TradieProfile',
    'TradieLicence',
    'Subscription',
    'TradeCategory',
    'Job',
    'JobQuote',
    'Review',
    'Milestone',
    'Payment',
    'CustomerQuality',
    'LeadScore',
]
