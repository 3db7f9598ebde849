import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Any, Set
from sqlalchemy import select, or_
from sqlalchemy.orm import joinedload

from database.models import Job, JobQuote, JobStatus, QuoteStatus
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class QuoteRepository(BaseRepository):
    def get_by_id(self, quote_id: Any) -> Optional[JobQuote]:
        """Quote with its job and the job's trade category loaded, or None."""
        stmt = (
            select(JobQuote)
            .options(joinedload(JobQuote.job).joinedload(Job.trade_category))
            .where(JobQuote.id == quote_id)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_accepted_category_ids_for_tradie(self, tradie_id: Any) -> Set[Any]:
        """Trade categories in which the tradie has had a quote accepted."""
        stmt = (
            select(Job.trade_category_id)
            .join(JobQuote, JobQuote.job_id == Job.id)
            .where(
                JobQuote.tradie_id == tradie_id,
                JobQuote.status == QuoteStatus.ACCEPTED
            )
            .distinct()
        )
        return set(self.db.execute(stmt).scalars().all())

    def get_benchmark_prices(
        self,
        trade_category_id: Any,
        since: datetime,
        postcode_prefix: Optional[str] = None
    ) -> List[Decimal]:
        """Prices of accepted quotes (or quotes on completed jobs) in a category.

        Optionally narrowed to jobs whose postcode starts with postcode_prefix.
        """
        stmt = (
            select(JobQuote.labour_cost + JobQuote.materials_cost)
            .join(Job, JobQuote.job_id == Job.id)
            .where(
                Job.trade_category_id == trade_category_id,
                or_(
                    JobQuote.status == QuoteStatus.ACCEPTED,
                    Job.status == JobStatus.COMPLETED
                ),
                JobQuote.created_at >= since
            )
        )

        if postcode_prefix:
            stmt = stmt.where(
                Job.postcode.isnot(None),
                Job.postcode.startswith(postcode_prefix, autoescape=True)
            )

        return [Decimal(price) for price in self.db.execute(stmt).scalars().all()]

    def get_recent_quotes_for_tradie(self, tradie_id: Any, since: datetime) -> List[JobQuote]:
        """A tradie's quotes created since `since`, newest first."""
        stmt = (
            select(JobQuote)
            .options(joinedload(JobQuote.job).joinedload(Job.trade_category))
            .where(
                JobQuote.tradie_id == tradie_id,
                JobQuote.created_at >= since
            )
            .order_by(JobQuote.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_responded_quotes_for_customer(self, customer_id: Any) -> List[JobQuote]:
        """Quotes on the customer's jobs that the customer has accepted or rejected."""
        stmt = (
            select(JobQuote)
            .join(Job, JobQuote.job_id == Job.id)
            .where(
                Job.customer_id == customer_id,
                JobQuote.responded_at.isnot(None)
            )
        )
        return list(self.db.execute(stmt).scalars().all())
