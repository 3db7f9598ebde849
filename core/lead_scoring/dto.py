"""Data Transfer Objects for the lead scoring service.

Built from ORM rows while the unit of work is still open so callers can
use them after the session closes. ``to_dict()`` gives a JSON-safe view.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from database.models import ScoreRating
from core.utils import to_jsonable
from core.customer_quality import CustomerQualitySummaryDTO


@dataclass
class ScoredLeadDTO:
    """An open job with its score for one tradie."""
    job_id: Any
    title: str
    description: str
    trade_category: str
    trade_category_icon: str
    budget_min: Optional[Decimal]
    budget_max: Optional[Decimal]
    suburb_name: str
    postcode: Optional[str]
    preferred_start_date: Optional[datetime]
    is_flexible_dates: bool
    customer_name: str
    quote_count: int
    created_at: Optional[datetime]
    total_score: int
    distance_score: int
    budget_match_score: int
    skill_match_score: int
    customer_quality_score: int
    urgency_score: int
    distance_km: float
    score_rating: ScoreRating
    customer_quality: Optional[CustomerQualitySummaryDTO] = None

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)


@dataclass
class LeadScoringStats:
    """Rating-band counts over all of a tradie's open-job scores."""
    excellent_leads: int = 0
    good_leads: int = 0
    fair_leads: int = 0
    low_leads: int = 0
    average_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)


@dataclass
class ScoredLeadsPage:
    leads: List[ScoredLeadDTO]
    total_count: int
    page: int
    page_size: int
    stats: LeadScoringStats = field(default_factory=LeadScoringStats)

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)


@dataclass
class LeadScoreDetailDTO:
    """Score breakdown of one job for one tradie, with explanations."""
    job_id: Any
    total_score: int
    distance_score: int
    budget_match_score: int
    skill_match_score: int
    customer_quality_score: int
    urgency_score: int
    distance_km: float
    score_rating: ScoreRating
    score_explanations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)
