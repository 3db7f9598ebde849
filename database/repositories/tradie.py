import logging
from typing import List, Optional, Any
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from database.models import TradieProfile
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class TradieRepository(BaseRepository):
    def get_profile_by_user_id(self, user_id: Any, for_update: bool = False) -> Optional[TradieProfile]:
        """Tradie profile with licences and subscription loaded, or None.

        With for_update the profile row is locked (SELECT ... FOR UPDATE) until
        the transaction ends.
        """
        stmt = (
            select(TradieProfile)
            .options(
                selectinload(TradieProfile.licences),
                selectinload(TradieProfile.subscription)
            )
            .where(TradieProfile.user_id == user_id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def get_all_tradie_user_ids(self) -> List[Any]:
        stmt = select(TradieProfile.user_id).order_by(TradieProfile.user_id)
        return list(self.db.execute(stmt).scalars().all())
