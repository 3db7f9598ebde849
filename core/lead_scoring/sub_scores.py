#!/usr/bin/env python3
"""
Sub-score Calculations - the five dimensions of a lead score.

Each function is pure and returns an integer band score:
- Distance (0-25): how close the job is to the tradie's home coordinate
- Budget match (5-25): job budget vs the tradie's preferred job size
- Skill match (8-25): licence, prior accepted work, subscription tier
- Customer quality (0-15): completion, payment reliability, responsiveness
- Urgency (2-10): days until the preferred start date

Bands are fixed constants so scores stay comparable across deployments
and every point can be explained back to the tradie.
"""

from datetime import datetime
from decimal import Decimal
from typing import AbstractSet, Any, Optional
import logging

from database.models import (
    CustomerQuality, Job, SubscriptionTier, TradieProfile, VerificationStatus
)
from core.utils import as_utc, to_decimal

logger = logging.getLogger(__name__)

MAX_DISTANCE_SCORE = 25
MAX_BUDGET_SCORE = 25
MAX_SKILL_SCORE = 25
MAX_CUSTOMER_QUALITY_SCORE = 15
MAX_URGENCY_SCORE = 10

# (upper bound in km, points); checked before the radius-relative bands
DISTANCE_BANDS_KM = ((5, 25), (10, 22), (15, 18), (20, 15))
# (fraction of service radius, points)
DISTANCE_BANDS_RADIUS = ((0.5, 12), (1.0, 8), (1.5, 4))

BUDGET_NO_PREFERENCE = 15
BUDGET_NOT_STATED = 10
BUDGET_IN_RANGE = 25
# (minimum ratio, points); ratio is always <= 1
BUDGET_RATIO_BANDS = ((Decimal("0.75"), 18), (Decimal("0.5"), 12))
BUDGET_FAR_OUT = 5

SKILL_LICENSED = 25
SKILL_EXPERIENCED = 18
SKILL_TIER_POINTS = {
    SubscriptionTier.BUSINESS: 15,
    SubscriptionTier.PROFESSIONAL: 12,
}
SKILL_BASELINE = 8

CUSTOMER_NEUTRAL = 8
COMPLETION_NO_HISTORY = 3
COMPLETION_BANDS = ((Decimal("0.9"), 6), (Decimal("0.75"), 5), (Decimal("0.5"), 3))
COMPLETION_FLOOR = 1
PAYMENT_BANDS = (
    (Decimal("0.95"), 5), (Decimal("0.85"), 4), (Decimal("0.7"), 3), (Decimal("0.5"), 2)
)
# (max hours, points)
RESPONSE_BANDS = ((2, 4), (6, 3), (24, 2), (48, 1))

URGENCY_FLEXIBLE = 3
URGENCY_NO_DATE = 5
# (max days until start, points)
URGENCY_BANDS = ((1, 10), (3, 8), (7, 6), (14, 4), (30, 3))
URGENCY_FLOOR = 2


def calculate_distance_score(distance_km: float, service_radius_km: float) -> int:
    """Absolute bands first, then bands relative to the service radius."""
    for max_km, points in DISTANCE_BANDS_KM:
        if distance_km <= max_km:
            return points

    for fraction, points in DISTANCE_BANDS_RADIUS:
        if distance_km <= service_radius_km * fraction:
            return points

    return 0


def _job_budget(job: Job) -> Decimal:
    if job.budget_max is not None:
        return to_decimal(job.budget_max)
    if job.budget_min is not None:
        return to_decimal(job.budget_min)
    return Decimal("0")


def _ratio_points(ratio: Decimal) -> int:
    for min_ratio, points in BUDGET_RATIO_BANDS:
        if ratio >= min_ratio:
            return points
    return BUDGET_FAR_OUT


def calculate_budget_match_score(job: Job, tradie: TradieProfile) -> int:
    """
    Compare the job's budget with the tradie's preferred job-size window.

    The job budget is budget_max, falling back to budget_min. A missing
    lower bound means 0 and a missing upper bound means unbounded. Outside
    the window the score depends on how far off the budget is, measured
    as a ratio <= 1 on whichever side it falls.
    """
    pref_min = tradie.preferred_job_size_min
    pref_max = tradie.preferred_job_size_max

    if pref_min is None and pref_max is None:
        return BUDGET_NO_PREFERENCE

    job_budget = _job_budget(job)
    if job_budget <= 0:
        return BUDGET_NOT_STATED

    min_pref = to_decimal(pref_min) if pref_min is not None else Decimal("0")
    max_pref = to_decimal(pref_max) if pref_max is not None else None

    if job_budget >= min_pref and (max_pref is None or job_budget <= max_pref):
        return BUDGET_IN_RANGE

    if job_budget < min_pref:
        return _ratio_points(job_budget / min_pref)

    return _ratio_points(max_pref / job_budget)


def has_valid_licence(tradie: TradieProfile, trade_category_id: Any, now: datetime) -> bool:
    """Verified licence in the category that has not expired (no expiry counts as valid)."""
    for licence in tradie.licences or []:
        if licence.trade_category_id != trade_category_id:
            continue
        if licence.verification_status != VerificationStatus.VERIFIED:
            continue
        expiry = as_utc(licence.expiry_date)
        if expiry is None or expiry > now:
            return True
    return False


def calculate_skill_match_score(
    job: Job,
    tradie: TradieProfile,
    experienced_category_ids: AbstractSet[Any],
    now: datetime
) -> int:
    if has_valid_licence(tradie, job.trade_category_id, now):
        return SKILL_LICENSED

    if job.trade_category_id in experienced_category_ids:
        return SKILL_EXPERIENCED

    tier = tradie.subscription_tier
    if tier is not None:
        return SKILL_TIER_POINTS.get(SubscriptionTier.parse(tier), SKILL_BASELINE)

    return SKILL_BASELINE


def _completion_points(quality: CustomerQuality) -> int:
    total = quality.total_jobs_posted or 0
    if total <= 0:
        return COMPLETION_NO_HISTORY

    rate = Decimal(quality.jobs_completed or 0) / Decimal(total)
    for min_rate, points in COMPLETION_BANDS:
        if rate >= min_rate:
            return points
    return COMPLETION_FLOOR


def _payment_points(quality: CustomerQuality) -> int:
    reliability = to_decimal(quality.payment_reliability_score)
    for min_reliability, points in PAYMENT_BANDS:
        if reliability >= min_reliability:
            return points
    return 0


def _response_points(quality: CustomerQuality) -> int:
    hours = quality.average_response_time_hours or 0.0
    for max_hours, points in RESPONSE_BANDS:
        if hours <= max_hours:
            return points
    return 0


def calculate_customer_quality_score(customer_quality: Optional[CustomerQuality]) -> int:
    """Neutral score for unknown customers, otherwise the sum of three parts capped at 15."""
    if customer_quality is None:
        return CUSTOMER_NEUTRAL

    score = (
        _completion_points(customer_quality)
        + _payment_points(customer_quality)
        + _response_points(customer_quality)
    )
    return min(score, MAX_CUSTOMER_QUALITY_SCORE)


def calculate_urgency_score(job: Job, now: datetime) -> int:
    start = as_utc(job.preferred_start_date)
    if start is None:
        return URGENCY_FLEXIBLE if job.is_flexible_dates else URGENCY_NO_DATE

    days_until_start = (start - now).total_seconds() / 86400
    for max_days, points in URGENCY_BANDS:
        if days_until_start <= max_days:
            return points
    return URGENCY_FLOOR
