"""
ScreeningTask model: the unit of queued work, one per uploaded resume.
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, LargeBinary, Index
from sqlalchemy.sql import func
from app.db.base import Base

TASK_QUEUED = "queued"
TASK_RUNNING = "running"
TASK_DONE = "done"
TASK_FAILED = "failed"
TASK_CANCELLED = "cancelled"


class ScreeningTask(Base):
    __tablename__ = "screening_tasks"

    id = Column(Integer, primary_key=True, index=True)
    screening_job_id = Column(Integer, ForeignKey("screening_jobs.id"), nullable=False, index=True)
    filename = Column(String, nullable=False)
    content = Column(LargeBinary, nullable=True)  # cleared once the task is done
    status = Column(String(20), nullable=False, default=TASK_QUEUED, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_screening_tasks_job_status', 'screening_job_id', 'status'),
    )

    def __repr__(self):
        return f"<ScreeningTask(id={self.id}, job={self.screening_job_id}, status='{self.status}')>"
