import contextlib
import logging

from database.database import SessionLocal
from database.repository import MarketplaceRepository

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def marketplace_uow(session_factory=None):
    """Per-unit-of-work transaction scope.

    Yields a MarketplaceRepository bound to a fresh Session. Commits on
    success, rolls back on exception (including OperationCancelledError),
    always closes.

    Usage:
        with marketplace_uow() as repo:
            LeadScoringService(repo).recalculate_all_scores_for_tradie(user_id)
        # commit happens automatically on successful exit
    """
    session = (session_factory or SessionLocal)()
    try:
        repo = MarketplaceRepository(session)
        yield repo
        session.commit()
    except Exception:
        logger.debug("Rolling back unit of work")
        session.rollback()
        raise
    finally:
        session.close()
