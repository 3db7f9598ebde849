import logging
from typing import List, Optional, Any, Tuple
from sqlalchemy import select, delete, func
from sqlalchemy.orm import joinedload, selectinload

from database.models import LeadScore, Job, JobStatus
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class LeadScoreRepository(BaseRepository):
    def delete_for_tradie(self, tradie_id: Any) -> int:
        """Delete every stored score of a tradie. Returns the number of rows removed."""
        stmt = delete(LeadScore).where(LeadScore.tradie_id == tradie_id)
        result = self.db.execute(stmt, execution_options={"synchronize_session": False})
        return result.rowcount or 0

    def add_all(self, scores: List[LeadScore]) -> None:
        self.db.add_all(scores)

    def add(self, score: LeadScore) -> LeadScore:
        self.db.add(score)
        return score

    def has_scores(self, tradie_id: Any) -> bool:
        stmt = select(LeadScore.id).where(LeadScore.tradie_id == tradie_id).limit(1)
        return self.db.execute(stmt).first() is not None

    def get_score(self, tradie_id: Any, job_id: Any) -> Optional[LeadScore]:
        stmt = select(LeadScore).where(
            LeadScore.tradie_id == tradie_id,
            LeadScore.job_id == job_id
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_scores_for_tradie(self, tradie_id: Any) -> List[LeadScore]:
        stmt = select(LeadScore).where(LeadScore.tradie_id == tradie_id).order_by(LeadScore.job_id)
        return list(self.db.execute(stmt).scalars().all())

    def get_scored_open_leads(
        self,
        tradie_id: Any,
        min_total: Optional[int] = None,
        max_total_exclusive: Optional[int] = None,
        trade_category_id: Any = None,
        offset: int = 0,
        limit: int = 10
    ) -> Tuple[List[Tuple[LeadScore, Job]], int]:
        """Page of (score, job) pairs on open jobs, best first, plus the unpaged count."""
        filters = [
            LeadScore.tradie_id == tradie_id,
            Job.status == JobStatus.OPEN,
        ]
        if min_total is not None:
            filters.append(LeadScore.total_score >= min_total)
        if max_total_exclusive is not None:
            filters.append(LeadScore.total_score < max_total_exclusive)
        if trade_category_id is not None:
            filters.append(Job.trade_category_id == trade_category_id)

        count_stmt = (
            select(func.count(LeadScore.id))
            .join(Job, LeadScore.job_id == Job.id)
            .where(*filters)
        )
        total_count = self.db.execute(count_stmt).scalar_one()

        page_stmt = (
            select(LeadScore, Job)
            .join(Job, LeadScore.job_id == Job.id)
            .where(*filters)
            .options(
                joinedload(Job.trade_category),
                joinedload(Job.customer),
                selectinload(Job.quotes)
            )
            .order_by(LeadScore.total_score.desc(), Job.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = [(score, job) for score, job in self.db.execute(page_stmt).unique().all()]
        return rows, total_count

    def get_open_job_totals(self, tradie_id: Any) -> List[int]:
        stmt = (
            select(LeadScore.total_score)
            .join(Job, LeadScore.job_id == Job.id)
            .where(
                LeadScore.tradie_id == tradie_id,
                Job.status == JobStatus.OPEN
            )
        )
        return list(self.db.execute(stmt).scalars().all())
