"""
ScreeningJob model: one batch of resumes screened against one job posting.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, JSON, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base

JOB_PENDING = "pending"
JOB_PROCESSING = "processing"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"
JOB_CANCELLED = "cancelled"
JOB_TERMINAL_STATUSES = (JOB_COMPLETED, JOB_FAILED, JOB_CANCELLED)


class ScreeningJob(Base):
    """
    Created on batch upload with status pending.

    processed_count counts tasks that reached done or failed; once it equals
    total_resumes the job is completed (failed when no task succeeded).
    """
    __tablename__ = "screening_jobs"

    id = Column(Integer, primary_key=True, index=True)
    employer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    job_id = Column(Integer, ForeignKey("job_postings.id"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=JOB_PENDING, index=True)
    total_resumes = Column(Integer, nullable=False)
    processed_count = Column(Integer, nullable=False, default=0)
    failed_count = Column(Integer, nullable=False, default=0)
    shortlisted_candidates = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    job_posting = relationship("JobPosting", backref="screening_jobs")

    __table_args__ = (
        CheckConstraint('total_resumes >= 1 AND total_resumes <= 500', name='ck_screening_jobs_total_resumes'),
        CheckConstraint('processed_count >= 0 AND processed_count <= total_resumes', name='ck_screening_jobs_processed'),
        Index('idx_screening_jobs_employer_created', 'employer_id', 'created_at'),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in JOB_TERMINAL_STATUSES

    def __repr__(self):
        return f"<ScreeningJob(id={self.id}, status='{self.status}', {self.processed_count}/{self.total_resumes})>"
