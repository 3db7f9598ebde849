import uuid

from sqlalchemy import Column, Integer, Float, Numeric, TIMESTAMP, ForeignKey, CheckConstraint, Index
from sqlalchemy.sql import text as sql_text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .base import Base
from .enums import PaymentStatus, enum_column_type


class Review(Base):
    __tablename__ = 'review'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_id = Column(UUID(as_uuid=True), ForeignKey('job.id', ondelete='CASCADE'), nullable=False)
    reviewer_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    reviewee_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    rating = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))

    __table_args__ = (
        CheckConstraint('rating BETWEEN 1 AND 5', name='ck_review_rating_range'),
        Index('idx_review_reviewer', 'reviewer_id'),
    )


class Milestone(Base):
    __tablename__ = 'milestone'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_id = Column(UUID(as_uuid=True), ForeignKey('job.id', ondelete='CASCADE'), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False, default=0)

    job = relationship("Job", back_populates="milestones")
    payment = relationship("Payment", back_populates="milestone", uselist=False)


class Payment(Base):
    __tablename__ = 'payment'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    milestone_id = Column(UUID(as_uuid=True), ForeignKey('milestone.id', ondelete='CASCADE'), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False, default=0)
    status = Column(enum_column_type(PaymentStatus, 'payment_status'), nullable=False, default=PaymentStatus.PENDING)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))

    milestone = relationship("Milestone", back_populates="payment")


class CustomerQuality(Base):
    """
    Cached reputation summary for one customer.

    Created lazily on the first aggregation and fully overwritten on every
    recalculation; never patched field by field.
    """
    __tablename__ = 'customer_quality'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id = Column(UUID(as_uuid=True), nullable=False, unique=True)

    total_jobs_posted = Column(Integer, nullable=False, default=0)
    jobs_completed = Column(Integer, nullable=False, default=0)
    jobs_cancelled = Column(Integer, nullable=False, default=0)
    average_job_value = Column(Numeric(18, 2), nullable=False, default=0)
    payment_reliability_score = Column(Numeric(5, 2), nullable=False, default=1)
    average_response_time_hours = Column(Float, nullable=False, default=0.0)
    total_reviews_given = Column(Integer, nullable=False, default=0)
    average_rating_given = Column(Numeric(3, 2), nullable=False, default=0)
    last_calculated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))

    __table_args__ = (
        Index('idx_customer_quality_customer', 'customer_id'),
    )
