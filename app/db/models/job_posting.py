"""
JobPosting model: an employer's open position and the skills it asks for.
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base


class JobPosting(Base):
    """
    JobPosting model.

    required_skills drive the match percentage; nice_to_have_skills only widen
    the vocabulary used when pulling skills out of a resume.
    """
    __tablename__ = "job_postings"

    id = Column(Integer, primary_key=True, index=True)
    employer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    location = Column(String, nullable=True)
    required_skills = Column(JSON, nullable=False, default=list)
    nice_to_have_skills = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    employer = relationship("User", backref="job_postings")

    __table_args__ = (
        Index('idx_job_postings_employer_created', 'employer_id', 'created_at'),
    )

    def __repr__(self):
        return f"<JobPosting(id={self.id}, title='{self.title}')>"
