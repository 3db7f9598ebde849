import logging
from typing import List, Optional, Any
from sqlalchemy import select

from database.models import Job, JobStatus, TradeCategory
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class JobRepository(BaseRepository):
    def get_by_id(self, job_id: Any) -> Optional[Job]:
        stmt = select(Job).where(Job.id == job_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_open_jobs(self) -> List[Job]:
        stmt = select(Job).where(Job.status == JobStatus.OPEN).order_by(Job.created_at.desc())
        return list(self.db.execute(stmt).scalars().all())

    def get_jobs_for_customer(self, customer_id: Any) -> List[Job]:
        stmt = select(Job).where(Job.customer_id == customer_id)
        return list(self.db.execute(stmt).scalars().all())

    def get_trade_category(self, trade_category_id: Any) -> Optional[TradeCategory]:
        stmt = select(TradeCategory).where(TradeCategory.id == trade_category_id)
        return self.db.execute(stmt).scalar_one_or_none()
