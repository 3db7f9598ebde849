import uuid

from sqlalchemy import Column, Text, TIMESTAMP, ForeignKey, Integer, Numeric, Float, CheckConstraint, Index
from sqlalchemy.sql import text as sql_text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .base import Base
from .enums import SubscriptionTier, VerificationStatus, enum_column_type


class TradieProfile(Base):
    """
    Service-provider profile: home coordinate, service radius and
    preferred job-size window.

    Mutated by the profile-management collaborator; read-only to scoring.
    """
    __tablename__ = 'tradie_profile'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    service_radius_km = Column(Integer, nullable=False, default=25)

    preferred_job_size_min = Column(Numeric(18, 2))
    preferred_job_size_max = Column(Numeric(18, 2))

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))

    user = relationship("User", back_populates="tradie_profile")
    licences = relationship("TradieLicence", back_populates="tradie_profile", cascade="all, delete-orphan")
    subscription = relationship("Subscription", back_populates="tradie_profile", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint('service_radius_km > 0', name='ck_tradie_profile_radius_positive'),
    )

    @property
    def subscription_tier(self):
        return self.subscription.tier if self.subscription is not None else None


class TradieLicence(Base):
    """Trade licence held by a tradie for one trade category."""
    __tablename__ = 'tradie_licence'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tradie_profile_id = Column(UUID(as_uuid=True), ForeignKey('tradie_profile.id', ondelete='CASCADE'), nullable=False)
    trade_category_id = Column(UUID(as_uuid=True), ForeignKey('trade_category.id', ondelete='CASCADE'), nullable=False)

    licence_number = Column(Text, nullable=False, default='')
    verification_status = Column(
        enum_column_type(VerificationStatus, 'verification_status'),
        nullable=False,
        default=VerificationStatus.PENDING
    )
    expiry_date = Column(TIMESTAMP(timezone=True))

    tradie_profile = relationship("TradieProfile", back_populates="licences")

    __table_args__ = (
        Index('idx_tradie_licence_profile_category', 'tradie_profile_id', 'trade_category_id'),
    )


class Subscription(Base):
    """Paid visibility tier of a tradie (at most one per profile)."""
    __tablename__ = 'subscription'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tradie_profile_id = Column(UUID(as_uuid=True), ForeignKey('tradie_profile.id', ondelete='CASCADE'), nullable=False, unique=True)
    tier = Column(enum_column_type(SubscriptionTier, 'subscription_tier'), nullable=False, default=SubscriptionTier.STARTER)

    tradie_profile = relationship("TradieProfile", back_populates="subscription")
