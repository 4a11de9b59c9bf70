"""
ScreeningResult model for storing one screened resume.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, JSON, CheckConstraint, UniqueConstraint
from sqlalchemy.sql import func
from app.db.base import Base


class ScreeningResult(Base):
    """
    Written once per processed resume and never updated afterwards.

    Shortlisting is recorded on the ScreeningJob, not here.
    """
    __tablename__ = "screening_results"

    id = Column(Integer, primary_key=True, index=True)
    screening_job_id = Column(Integer, ForeignKey("screening_jobs.id"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("screening_tasks.id"), nullable=True)

    candidate_id = Column(String, nullable=False, index=True)
    candidate_email = Column(String, nullable=True)
    resume_filename = Column(String, nullable=True)

    match_percentage = Column(Integer, nullable=False, index=True)
    skills_matched = Column(JSON, nullable=False, default=list)
    skills_missing = Column(JSON, nullable=False, default=list)
    strengths = Column(JSON, nullable=False, default=list)
    improvement_areas = Column(JSON, nullable=False, default=list)
    recommendations = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint('screening_job_id', 'candidate_id', name='uq_screening_results_job_candidate'),
        CheckConstraint('match_percentage >= 0 AND match_percentage <= 100', name='ck_screening_results_match'),
        Index('idx_screening_results_job_match', 'screening_job_id', 'match_percentage'),
    )

    def __repr__(self):
        return f"<ScreeningResult(id={self.id}, candidate='{self.candidate_id}', match={self.match_percentage})>"
