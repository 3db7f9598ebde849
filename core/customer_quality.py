#!/usr/bin/env python3
"""
Customer Quality Aggregation - rebuilds a customer's reputation summary.

The summary is derived entirely from the customer's jobs, the reviews they
have given, the payments on their jobs' milestones and how quickly they
respond to quotes. Every field is overwritten on each aggregation so the
row never mixes values from different points in time.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional
import logging

from database.models import (
    CustomerQuality, Job, JobQuote, JobStatus, Payment, PaymentStatus, Review
)
from core.utils import as_utc, round_money, to_decimal, to_jsonable, utc_now

logger = logging.getLogger(__name__)

# New customers get the benefit of the doubt
DEFAULT_PAYMENT_RELIABILITY = Decimal("1.00")

QUALITY_NEW = "New"
QUALITY_EXCELLENT = "Excellent"
QUALITY_GOOD = "Good"
QUALITY_FAIR = "Fair"


@dataclass
class CustomerQualitySummaryDTO:
    """Reputation summary of a job's customer, as shown next to a lead."""
    total_jobs_posted: int
    jobs_completed: int
    jobs_cancelled: int
    completion_rate: Decimal
    payment_reliability_score: Decimal
    average_response_time_hours: float
    quality_rating: str  # "Excellent", "Good", "Fair" or "New"

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)


def _average_response_hours(responded_quotes: Iterable[JobQuote]) -> float:
    durations = []
    for quote in responded_quotes:
        created = as_utc(quote.created_at)
        responded = as_utc(quote.responded_at)
        if created is None or responded is None:
            continue
        durations.append((responded - created).total_seconds() / 3600)

    if not durations:
        return 0.0
    return sum(durations) / len(durations)


class CustomerQualityAggregator:
    """Recomputes every CustomerQuality field from raw marketplace history."""

    def aggregate(
        self,
        customer_quality: CustomerQuality,
        jobs: Iterable[Job],
        reviews: Iterable[Review],
        payments: Iterable[Payment],
        responded_quotes: Iterable[JobQuote] = (),
        now: Optional[datetime] = None
    ) -> CustomerQuality:
        jobs = list(jobs)
        reviews = list(reviews)
        payments = list(payments)

        customer_quality.total_jobs_posted = len(jobs)
        customer_quality.jobs_completed = sum(1 for j in jobs if j.status == JobStatus.COMPLETED)
        customer_quality.jobs_cancelled = sum(1 for j in jobs if j.status == JobStatus.CANCELLED)

        budgets = [to_decimal(j.budget_max) for j in jobs if j.budget_max is not None]
        customer_quality.average_job_value = (
            round_money(sum(budgets) / len(budgets)) if budgets else Decimal("0.00")
        )

        customer_quality.total_reviews_given = len(reviews)
        customer_quality.average_rating_given = (
            round_money(Decimal(sum(r.rating for r in reviews)) / len(reviews))
            if reviews else Decimal("0.00")
        )

        released = sum(1 for p in payments if p.status == PaymentStatus.RELEASED)
        customer_quality.payment_reliability_score = (
            round_money(Decimal(released) / len(payments))
            if payments else DEFAULT_PAYMENT_RELIABILITY
        )

        customer_quality.average_response_time_hours = _average_response_hours(responded_quotes)
        customer_quality.last_calculated_at = now or utc_now()

        logger.debug(
            f"Customer {customer_quality.customer_id}: {customer_quality.total_jobs_posted} jobs, "
            f"{customer_quality.jobs_completed} completed, "
            f"reliability={customer_quality.payment_reliability_score}"
        )
        return customer_quality


def completion_rate(customer_quality: CustomerQuality) -> Decimal:
    total = customer_quality.total_jobs_posted or 0
    if total <= 0:
        return Decimal("0")
    return Decimal(customer_quality.jobs_completed or 0) / Decimal(total)


def quality_rating(customer_quality: CustomerQuality) -> str:
    if not customer_quality.total_jobs_posted:
        return QUALITY_NEW

    rate = completion_rate(customer_quality)
    reliability = to_decimal(customer_quality.payment_reliability_score)

    if rate >= Decimal("0.9") and reliability >= Decimal("0.9"):
        return QUALITY_EXCELLENT
    if rate >= Decimal("0.7") and reliability >= Decimal("0.7"):
        return QUALITY_GOOD
    return QUALITY_FAIR


def summarize(customer_quality: CustomerQuality) -> CustomerQualitySummaryDTO:
    return CustomerQualitySummaryDTO(
        total_jobs_posted=customer_quality.total_jobs_posted or 0,
        jobs_completed=customer_quality.jobs_completed or 0,
        jobs_cancelled=customer_quality.jobs_cancelled or 0,
        completion_rate=round_money(completion_rate(customer_quality)),
        payment_reliability_score=to_decimal(customer_quality.payment_reliability_score),
        average_response_time_hours=customer_quality.average_response_time_hours or 0.0,
        quality_rating=quality_rating(customer_quality),
    )
