import uuid

from sqlalchemy import Column, Text, TIMESTAMP, Index
from sqlalchemy.sql import text as sql_text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .base import Base


class User(Base):
    """
    Marketplace account. Customers post jobs, tradies submit quotes.

    Owned by the account-management collaborator; read-only here.
    """
    __tablename__ = 'users'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(Text, nullable=False, unique=True)
    first_name = Column(Text, nullable=False, default='')
    last_name = Column(Text, nullable=False, default='')
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))

    tradie_profile = relationship("TradieProfile", back_populates="user", uselist=False)

    __table_args__ = (
        Index('idx_users_email', 'email'),
    )
