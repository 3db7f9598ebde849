import logging

from sqlalchemy.orm import Session

from database.repositories import (
    JobRepository,
    TradieRepository,
    QuoteRepository,
    CustomerRepository,
    LeadScoreRepository,
)

logger = logging.getLogger(__name__)


class MarketplaceRepository:
    """Facade over the per-aggregate repositories, all bound to one Session.

    Services take a MarketplaceRepository and reach the aggregate they need
    through an attribute, e.g. ``repo.lead_scores.delete_for_tradie(...)``.
    Because every sub-repository shares the Session, a single commit covers
    all of their writes.
    """

    def __init__(self, db: Session):
        self.db = db
        self.jobs = JobRepository(db)
        self.tradies = TradieRepository(db)
        self.quotes = QuoteRepository(db)
        self.customers = CustomerRepository(db)
        self.lead_scores = LeadScoreRepository(db)

    def flush(self) -> None:
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
