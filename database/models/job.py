import uuid

from sqlalchemy import Column, Text, TIMESTAMP, ForeignKey, Boolean, Numeric, Float, Index
from sqlalchemy.sql import text as sql_text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .base import Base
from .enums import JobStatus, QuoteStatus, enum_column_type


class TradeCategory(Base):
    __tablename__ = 'trade_category'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    icon = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)


class Job(Base):
    """
    A customer's job posting.

    Lifecycle: Draft -> Open -> Quoted -> Accepted -> InProgress -> Completed | Cancelled.
    Only Open jobs are scored as leads.
    """
    __tablename__ = 'job'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    trade_category_id = Column(UUID(as_uuid=True), ForeignKey('trade_category.id'), nullable=False)

    title = Column(Text, nullable=False, default='')
    description = Column(Text, nullable=False, default='')
    status = Column(enum_column_type(JobStatus, 'job_status'), nullable=False, default=JobStatus.DRAFT)

    budget_min = Column(Numeric(18, 2))
    budget_max = Column(Numeric(18, 2))
    preferred_start_date = Column(TIMESTAMP(timezone=True))
    is_flexible_dates = Column(Boolean, nullable=False, default=False)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    suburb_name = Column(Text, nullable=False, default='')
    postcode = Column(Text)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))

    trade_category = relationship("TradeCategory")
    customer = relationship("User")
    quotes = relationship("JobQuote", back_populates="job", cascade="all, delete-orphan")
    milestones = relationship("Milestone", back_populates="job", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_job_status', 'status'),
        Index('idx_job_customer', 'customer_id'),
        Index('idx_job_category_postcode', 'trade_category_id', 'postcode'),
    )


class JobQuote(Base):
    """A tradie's priced quote for a job. Price is labour plus materials."""
    __tablename__ = 'job_quote'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_id = Column(UUID(as_uuid=True), ForeignKey('job.id', ondelete='CASCADE'), nullable=False)
    tradie_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)

    status = Column(enum_column_type(QuoteStatus, 'quote_status'), nullable=False, default=QuoteStatus.PENDING)
    labour_cost = Column(Numeric(18, 2), nullable=False, default=0)
    materials_cost = Column(Numeric(18, 2), nullable=False, default=0)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))
    # When the customer accepted or rejected the quote
    responded_at = Column(TIMESTAMP(timezone=True))

    job = relationship("Job", back_populates="quotes")

    __table_args__ = (
        Index('idx_job_quote_tradie_created', 'tradie_id', 'created_at'),
        Index('idx_job_quote_job', 'job_id'),
    )

    @property
    def total_cost(self):
        return (self.labour_cost or 0) + (self.materials_cost or 0)
