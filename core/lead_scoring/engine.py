#!/usr/bin/env python3
"""
Lead Scoring Engine - deterministic 0-100 score of one open job for one tradie.

Total = distance (25) + budget match (25) + skill match (25)
      + customer quality (15) + urgency (10).

The engine performs no I/O: the tradie snapshot carries its licences and
subscription, and the caller resolves customer quality and the set of
categories the tradie has had quotes accepted in.
"""

from datetime import datetime
from typing import AbstractSet, Any, List, Optional
import logging

from database.models import CustomerQuality, Job, LeadScore, ScoreRating, TradieProfile
from core.geo import distance_km as great_circle_km
from core.utils import utc_now
from core.lead_scoring import sub_scores

logger = logging.getLogger(__name__)

# (minimum total, rating), highest first
RATING_BANDS = (
    (80, ScoreRating.EXCELLENT),
    (60, ScoreRating.GOOD),
    (40, ScoreRating.FAIR),
)


class LeadScoringEngine:
    """Computes lead scores, ratings and plain-language explanations."""

    def calculate_score(
        self,
        job: Job,
        tradie: TradieProfile,
        customer_quality: Optional[CustomerQuality] = None,
        experienced_category_ids: AbstractSet[Any] = frozenset(),
        now: Optional[datetime] = None
    ) -> LeadScore:
        """Score a job for a tradie. Returns an unsaved LeadScore row."""
        now = now or utc_now()

        distance = great_circle_km(tradie.latitude, tradie.longitude, job.latitude, job.longitude)

        distance_score = sub_scores.calculate_distance_score(distance, tradie.service_radius_km)
        budget_score = sub_scores.calculate_budget_match_score(job, tradie)
        skill_score = sub_scores.calculate_skill_match_score(job, tradie, experienced_category_ids, now)
        customer_score = sub_scores.calculate_customer_quality_score(customer_quality)
        urgency_score = sub_scores.calculate_urgency_score(job, now)

        total = distance_score + budget_score + skill_score + customer_score + urgency_score

        logger.debug(
            f"Job {job.id}: distance={distance_score} budget={budget_score} "
            f"skill={skill_score} customer={customer_score} urgency={urgency_score} "
            f"total={total} ({distance:.1f}km)"
        )

        return LeadScore(
            job_id=job.id,
            tradie_id=tradie.user_id,
            distance_score=distance_score,
            budget_match_score=budget_score,
            skill_match_score=skill_score,
            customer_quality_score=customer_score,
            urgency_score=urgency_score,
            total_score=total,
            distance_km=distance,
            calculated_at=now,
        )

    @staticmethod
    def get_score_rating(total_score: int) -> ScoreRating:
        for min_total, rating in RATING_BANDS:
            if total_score >= min_total:
                return rating
        return ScoreRating.LOW

    @staticmethod
    def get_score_explanations(score: LeadScore) -> List[str]:
        """
        One sentence per dimension, taken from the highest band the sub-score
        reaches. Dimensions with no matching band contribute nothing.
        Order: distance, budget, skill, customer, urgency.
        """
        explanations = []
        km = f"{score.distance_km:.1f}km away"

        if score.distance_score >= 22:
            explanations.append(f"Very close to you ({km})")
        elif score.distance_score >= 15:
            explanations.append(f"Within easy reach ({km})")
        elif score.distance_score >= 8:
            explanations.append(f"Moderate distance ({km})")
        elif score.distance_score > 0:
            explanations.append(f"Edge of service area ({km})")

        if score.budget_match_score >= 22:
            explanations.append("Budget perfectly matches your preferences")
        elif score.budget_match_score >= 15:
            explanations.append("Budget close to your preferred range")
        elif score.budget_match_score >= 10:
            explanations.append("Budget outside your typical range")

        if score.skill_match_score >= 22:
            explanations.append("You're licensed for this trade category")
        elif score.skill_match_score >= 15:
            explanations.append("You have experience in this category")

        if score.customer_quality_score >= 12:
            explanations.append("Reliable customer with good history")
        elif score.customer_quality_score >= 8:
            explanations.append("Customer has decent track record")
        elif score.customer_quality_score < 5:
            explanations.append("Customer has limited history")

        if score.urgency_score >= 8:
            explanations.append("Urgent job - quick response may help")
        elif score.urgency_score >= 5:
            explanations.append("Job needed within the week")

        return explanations
