#!/usr/bin/env python3
"""
Lead Scoring Service - keeps a tradie's materialized lead scores current.

A recalculation replaces the tradie's whole score set in one transaction:
the caller's unit of work commits the bulk delete and the inserts together,
and any exception (including cancellation) rolls both back.

Also serves the read side: paged scored leads with rating-band stats, and
the detailed score of a single job.
"""

from datetime import datetime
from typing import Any, Callable, ContextManager, List, Optional, Tuple
import logging
import threading

from database.models import CustomerQuality, Job, JobStatus, LeadScore, ScoreRating, TradieProfile
from database.repository import MarketplaceRepository
from core.config_loader import LeadScoringConfig
from core.exceptions import OperationCancelledError
from core.geo import distance_km, is_within_eligibility
from core.utils import check_cancelled, utc_now
from core.customer_quality import CustomerQualityAggregator, summarize
from core.lead_scoring.engine import LeadScoringEngine
from core.lead_scoring.dto import (
    LeadScoreDetailDTO, LeadScoringStats, ScoredLeadDTO, ScoredLeadsPage
)

logger = logging.getLogger(__name__)

DESCRIPTION_PREVIEW_LENGTH = 200

# rating -> (min total inclusive, max total exclusive)
RATING_FILTERS = {
    ScoreRating.EXCELLENT: (80, None),
    ScoreRating.GOOD: (60, 80),
    ScoreRating.FAIR: (40, 60),
    ScoreRating.LOW: (None, 40),
}


def _preview(text: Optional[str]) -> str:
    text = text or ""
    if len(text) > DESCRIPTION_PREVIEW_LENGTH:
        return text[:DESCRIPTION_PREVIEW_LENGTH] + "..."
    return text


def _rating_bounds(
    rating: Optional[str],
    min_score: Optional[int]
) -> Tuple[Optional[int], Optional[int]]:
    """Combine the min_score filter with a rating band into one total-score range."""
    min_total, max_total = (None, None)
    if rating:
        min_total, max_total = RATING_FILTERS[ScoreRating.parse(rating)]

    if min_score is not None:
        min_total = min_score if min_total is None else max(min_total, min_score)

    return min_total, max_total


def build_stats(totals: List[int]) -> LeadScoringStats:
    if not totals:
        return LeadScoringStats()

    return LeadScoringStats(
        excellent_leads=sum(1 for t in totals if t >= 80),
        good_leads=sum(1 for t in totals if 60 <= t < 80),
        fair_leads=sum(1 for t in totals if 40 <= t < 60),
        low_leads=sum(1 for t in totals if t < 40),
        average_score=sum(totals) / len(totals),
    )


class LeadScoringService:
    """
    Orchestrates lead score recalculation and lead queries for one unit of work.

    The repository must be bound to the session of the enclosing unit of
    work; this service flushes but never commits.
    """

    def __init__(
        self,
        repo: MarketplaceRepository,
        config: Optional[LeadScoringConfig] = None,
        engine: Optional[LeadScoringEngine] = None,
        aggregator: Optional[CustomerQualityAggregator] = None
    ):
        self.repo = repo
        self.config = config or LeadScoringConfig()
        self.engine = engine or LeadScoringEngine()
        self.aggregator = aggregator or CustomerQualityAggregator()

    def _eligible_jobs(self, tradie: TradieProfile, jobs: List[Job]) -> List[Job]:
        eligible = []
        for job in jobs:
            distance = distance_km(tradie.latitude, tradie.longitude, job.latitude, job.longitude)
            if is_within_eligibility(distance, tradie.service_radius_km, self.config.eligibility_radius_factor):
                eligible.append(job)
        return eligible

    def _is_materializable(self, tradie: TradieProfile, job: Job, distance: float) -> bool:
        """Only open jobs inside the eligibility window are stored as LeadScore rows."""
        return job.status == JobStatus.OPEN and is_within_eligibility(
            distance, tradie.service_radius_km, self.config.eligibility_radius_factor
        )

    def recalculate_all_scores_for_tradie(
        self,
        tradie_id: Any,
        stop_event: Optional[threading.Event] = None,
        now: Optional[datetime] = None
    ) -> int:
        """Replace every stored score of the tradie. Returns the number of scores written.

        A tradie without a profile is a no-op returning 0.
        """
        now = now or utc_now()

        check_cancelled(stop_event, "tradie lookup")
        # Row lock queues concurrent recalculations of the same tradie
        tradie = self.repo.tradies.get_profile_by_user_id(tradie_id, for_update=True)
        if tradie is None:
            logger.info(f"No tradie profile for {tradie_id}; skipping recalculation")
            return 0

        check_cancelled(stop_event, "open job lookup")
        open_jobs = self.repo.jobs.get_open_jobs()
        eligible_jobs = self._eligible_jobs(tradie, open_jobs)

        check_cancelled(stop_event, "score deletion")
        deleted = self.repo.lead_scores.delete_for_tradie(tradie_id)

        check_cancelled(stop_event, "scoring inputs prefetch")
        qualities = self.repo.customers.get_qualities_for_customers(
            {job.customer_id for job in eligible_jobs}
        )
        experienced_category_ids = self.repo.quotes.get_accepted_category_ids_for_tradie(tradie_id)

        scores = [
            self.engine.calculate_score(
                job,
                tradie,
                customer_quality=qualities.get(job.customer_id),
                experienced_category_ids=experienced_category_ids,
                now=now
            )
            for job in eligible_jobs
        ]

        check_cancelled(stop_event, "score insert")
        self.repo.lead_scores.add_all(scores)
        self.repo.flush()

        logger.info(
            f"Recalculated {len(scores)} lead scores for tradie {tradie_id} "
            f"({len(open_jobs)} open jobs, {deleted} previous scores replaced)"
        )
        return len(scores)

    def recalculate_customer_quality(
        self,
        customer_id: Any,
        stop_event: Optional[threading.Event] = None,
        now: Optional[datetime] = None
    ) -> Optional[CustomerQuality]:
        """Rebuild the customer's quality row, creating it if absent. None for unknown customers."""
        check_cancelled(stop_event, "customer lookup")
        customer = self.repo.customers.get_user(customer_id)
        if customer is None:
            logger.info(f"No user {customer_id}; skipping customer quality")
            return None

        check_cancelled(stop_event, "customer history lookup")
        jobs = self.repo.jobs.get_jobs_for_customer(customer_id)
        reviews = self.repo.customers.get_reviews_given(customer_id)
        payments = self.repo.customers.get_payments_for_customer(customer_id)
        responded_quotes = self.repo.quotes.get_responded_quotes_for_customer(customer_id)

        quality = self.repo.customers.get_quality(customer_id)
        check_cancelled(stop_event, "customer quality write")
        if quality is None:
            quality = self.repo.customers.add_quality(CustomerQuality(customer_id=customer_id))

        self.aggregator.aggregate(quality, jobs, reviews, payments, responded_quotes, now=now or utc_now())
        self.repo.flush()

        logger.info(f"Recalculated customer quality for {customer_id}")
        return quality

    def _to_lead_dto(self, score: LeadScore, job: Job, quality: Optional[CustomerQuality]) -> ScoredLeadDTO:
        category = job.trade_category
        return ScoredLeadDTO(
            job_id=job.id,
            title=job.title or "",
            description=_preview(job.description),
            trade_category=category.name if category is not None else "",
            trade_category_icon=(category.icon or "") if category is not None else "",
            budget_min=job.budget_min,
            budget_max=job.budget_max,
            suburb_name=job.suburb_name or "",
            postcode=job.postcode,
            preferred_start_date=job.preferred_start_date,
            is_flexible_dates=bool(job.is_flexible_dates),
            customer_name=job.customer.first_name if job.customer is not None else "",
            quote_count=len(job.quotes or []),
            created_at=job.created_at,
            total_score=score.total_score,
            distance_score=score.distance_score,
            budget_match_score=score.budget_match_score,
            skill_match_score=score.skill_match_score,
            customer_quality_score=score.customer_quality_score,
            urgency_score=score.urgency_score,
            distance_km=round(score.distance_km, 1),
            score_rating=self.engine.get_score_rating(score.total_score),
            customer_quality=summarize(quality) if quality is not None else None,
        )

    def get_scored_leads(
        self,
        tradie_id: Any,
        page: int = 1,
        page_size: Optional[int] = None,
        min_score: Optional[int] = None,
        rating: Optional[str] = None,
        trade_category_id: Any = None,
        refresh: bool = False,
        stop_event: Optional[threading.Event] = None
    ) -> Optional[ScoredLeadsPage]:
        """
        Page of the tradie's scored open leads, best first.

        Scores are recalculated first when `refresh` is set or the tradie has
        none stored yet. Raises InvalidEnumValueError for an unknown rating.
        """
        min_total, max_total = _rating_bounds(rating, min_score)
        page = max(page, 1)
        page_size = page_size if page_size and page_size > 0 else self.config.default_page_size

        check_cancelled(stop_event, "tradie lookup")
        tradie = self.repo.tradies.get_profile_by_user_id(tradie_id)
        if tradie is None:
            return None

        if refresh or (self.config.refresh_when_empty and not self.repo.lead_scores.has_scores(tradie_id)):
            self.recalculate_all_scores_for_tradie(tradie_id, stop_event=stop_event)

        check_cancelled(stop_event, "scored lead query")
        rows, total_count = self.repo.lead_scores.get_scored_open_leads(
            tradie_id,
            min_total=min_total,
            max_total_exclusive=max_total,
            trade_category_id=trade_category_id,
            offset=(page - 1) * page_size,
            limit=page_size
        )
        qualities = self.repo.customers.get_qualities_for_customers(
            {job.customer_id for _, job in rows}
        )

        leads = [self._to_lead_dto(score, job, qualities.get(job.customer_id)) for score, job in rows]
        stats = build_stats(self.repo.lead_scores.get_open_job_totals(tradie_id))

        return ScoredLeadsPage(
            leads=leads,
            total_count=total_count,
            page=page,
            page_size=page_size,
            stats=stats,
        )

    def get_job_score(
        self,
        tradie_id: Any,
        job_id: Any,
        stop_event: Optional[threading.Event] = None,
        now: Optional[datetime] = None
    ) -> Optional[LeadScoreDetailDTO]:
        """Stored score of one job, computed on first request.

        A computed score is persisted only when the job is Open and inside the
        eligibility window, so stored rows match what a full recalculation writes.
        """
        check_cancelled(stop_event, "tradie lookup")
        tradie = self.repo.tradies.get_profile_by_user_id(tradie_id)
        if tradie is None:
            return None

        job = self.repo.jobs.get_by_id(job_id)
        if job is None:
            return None

        score = self.repo.lead_scores.get_score(tradie_id, job_id)
        if score is None:
            check_cancelled(stop_event, "job score calculation")
            score = self.engine.calculate_score(
                job,
                tradie,
                customer_quality=self.repo.customers.get_quality(job.customer_id),
                experienced_category_ids=self.repo.quotes.get_accepted_category_ids_for_tradie(tradie_id),
                now=now or utc_now()
            )
            if self._is_materializable(tradie, job, score.distance_km):
                self.repo.lead_scores.add(score)
                self.repo.flush()
                logger.debug(f"Persisted new score {score.total_score} for tradie {tradie_id}, job {job_id}")
            else:
                logger.debug(f"Job {job_id} is not an eligible lead for tradie {tradie_id}; score not stored")

        return LeadScoreDetailDTO(
            job_id=score.job_id,
            total_score=score.total_score,
            distance_score=score.distance_score,
            budget_match_score=score.budget_match_score,
            skill_match_score=score.skill_match_score,
            customer_quality_score=score.customer_quality_score,
            urgency_score=score.urgency_score,
            distance_km=round(score.distance_km, 1),
            score_rating=self.engine.get_score_rating(score.total_score),
            score_explanations=self.engine.get_score_explanations(score),
        )


def recalculate_all_tradies(
    uow_factory: Callable[[], ContextManager[MarketplaceRepository]],
    config: Optional[LeadScoringConfig] = None,
    stop_event: Optional[threading.Event] = None
) -> int:
    """
    Recalculate every tradie, each in its own unit of work.

    A failure for one tradie is logged and does not affect the others;
    cancellation stops the sweep and propagates. Returns the total number
    of scores written.
    """
    with uow_factory() as repo:
        tradie_ids = repo.tradies.get_all_tradie_user_ids()

    logger.info(f"Recalculating lead scores for {len(tradie_ids)} tradies")

    total_scores = 0
    failures = 0
    for tradie_id in tradie_ids:
        check_cancelled(stop_event, "tradie sweep")
        try:
            with uow_factory() as repo:
                service = LeadScoringService(repo, config)
                total_scores += service.recalculate_all_scores_for_tradie(tradie_id, stop_event=stop_event)
        except OperationCancelledError:
            raise
        except Exception as e:
            failures += 1
            logger.error(f"Failed to recalculate scores for tradie {tradie_id}: {e}", exc_info=True)

    logger.info(
        f"Scheduled recalculation finished: {total_scores} scores for "
        f"{len(tradie_ids) - failures} tradies ({failures} failed)"
    )
    return total_scores
