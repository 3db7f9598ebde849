import logging

from sqlalchemy import create_engine

from database.models import Base
from database.database import DATABASE_URL, engine as default_engine

logger = logging.getLogger(__name__)


def init_db(database_url=None, engine=None):
    """Create every marketplace table that does not exist yet."""
    if engine is None:
        if database_url and database_url != DATABASE_URL:
            engine = create_engine(database_url, pool_pre_ping=True)
        else:
            engine = default_engine
    Base.metadata.create_all(engine)
    logger.info(f"Created tables: {', '.join(sorted(Base.metadata.tables))}")
