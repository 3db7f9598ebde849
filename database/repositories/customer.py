import logging
from typing import Dict, List, Optional, Any, Iterable
from sqlalchemy import select

from database.models import User, Review, Payment, Milestone, Job, CustomerQuality
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class CustomerRepository(BaseRepository):
    def get_user(self, user_id: Any) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_reviews_given(self, customer_id: Any) -> List[Review]:
        stmt = select(Review).where(Review.reviewer_id == customer_id)
        return list(self.db.execute(stmt).scalars().all())

    def get_payments_for_customer(self, customer_id: Any) -> List[Payment]:
        """Payments on milestones of any job the customer posted."""
        stmt = (
            select(Payment)
            .join(Milestone, Payment.milestone_id == Milestone.id)
            .join(Job, Milestone.job_id == Job.id)
            .where(Job.customer_id == customer_id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_quality(self, customer_id: Any) -> Optional[CustomerQuality]:
        stmt = select(CustomerQuality).where(CustomerQuality.customer_id == customer_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_qualities_for_customers(self, customer_ids: Iterable[Any]) -> Dict[Any, CustomerQuality]:
        """Batch lookup keyed by customer id; customers without a row are absent."""
        ids = set(customer_ids)
        if not ids:
            return {}

        stmt = select(CustomerQuality).where(CustomerQuality.customer_id.in_(ids))
        rows = self.db.execute(stmt).scalars().all()
        return {row.customer_id: row for row in rows}

    def add_quality(self, quality: CustomerQuality) -> CustomerQuality:
        self.db.add(quality)
        return quality
