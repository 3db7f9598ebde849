import uuid

from sqlalchemy import Column, Integer, Float, TIMESTAMP, ForeignKey, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.sql import text as sql_text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .base import Base


class LeadScore(Base):
    """
    Score of one open job for one tradie.

    Tracks:
    - Five sub-scores (distance, budget match, skill match, customer quality, urgency)
    - Total score, always the sum of the sub-scores (0-100)
    - Great-circle distance between tradie and job

    A tradie's full set of rows is deleted and regenerated in one transaction,
    so every row is consistent with job/tradie state as of calculated_at.
    """
    __tablename__ = 'lead_score'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_id = Column(UUID(as_uuid=True), ForeignKey('job.id', ondelete='CASCADE'), nullable=False)
    tradie_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)

    total_score = Column(Integer, nullable=False, default=0)
    distance_score = Column(Integer, nullable=False, default=0)
    budget_match_score = Column(Integer, nullable=False, default=0)
    skill_match_score = Column(Integer, nullable=False, default=0)
    customer_quality_score = Column(Integer, nullable=False, default=0)
    urgency_score = Column(Integer, nullable=False, default=0)

    distance_km = Column(Float, nullable=False, default=0.0)
    calculated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=sql_text("timezone('UTC', now())"))

    job = relationship("Job")

    __table_args__ = (
        UniqueConstraint('tradie_id', 'job_id', name='uq_lead_score_tradie_job'),
        CheckConstraint('total_score BETWEEN 0 AND 100', name='ck_lead_score_total_range'),
        Index('idx_lead_score_total', 'total_score'),
        Index('idx_lead_score_calculated', 'calculated_at'),
    )

    @property
    def sub_scores(self):
        return (
            self.distance_score,
            self.budget_match_score,
            self.skill_match_score,
            self.customer_quality_score,
            self.urgency_score,
        )
