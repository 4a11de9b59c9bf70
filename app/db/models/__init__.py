"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.

All models must be imported here to be included in database migrations and table creation.
"""
from app.db.models.user import User
from app.db.models.job_posting import JobPosting
from app.db.models.screening_job import ScreeningJob
from app.db.models.screening_task import ScreeningTask
from app.db.models.screening_result import ScreeningResult

__all__ = [
    "User",
    "JobPosting",
    "ScreeningJob",
    "ScreeningTask",
    "ScreeningResult",
]
