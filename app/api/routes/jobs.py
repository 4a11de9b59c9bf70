"""
Job posting endpoints.

Employers publish the postings, with their required skills, that resume
batches are screened against.
"""
import logging
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db, require_employer
from app.core.errors import NotFoundError
from app.db.models.user import User
from app.db.models.job_posting import JobPosting
from app.schemas.job import (
    JobPostingCreate,
    JobPostingResponse,
    JobPostingListResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["Jobs"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=JobPostingResponse)
def create_job_posting(
    job_data: JobPostingCreate,
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db)
):
    """
    Create a job posting owned by the authenticated employer.
    """
    posting = JobPosting(
        employer_id=employer.id,
        title=job_data.title,
        description=job_data.description,
        location=job_data.location,
        required_skills=job_data.required_skills,
        nice_to_have_skills=job_data.nice_to_have_skills,
    )

    try:
        db.add(posting)
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Failed to create job posting", exc_info=True)
        raise
    db.refresh(posting)

    logger.info(
        f"Job posting created: job_id={posting.id}, employer_id={employer.id}, "
        f"required_skills={len(posting.required_skills)}"
    )
    return JobPostingResponse.model_validate(posting)


@router.get("", status_code=status.HTTP_200_OK, response_model=JobPostingListResponse)
def list_job_postings(
    search: str = Query(None, description="Search in title and description"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize", description="Items per page"),
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db)
):
    """
    List the employer's job postings, newest first.
    """
    query = db.query(JobPosting).filter(JobPosting.employer_id == employer.id)

    if search:
        search_term = f"%{search}%"
        query = query.filter(
            JobPosting.title.ilike(search_term) | JobPosting.description.ilike(search_term)
        )

    total = query.count()
    offset = (page - 1) * page_size
    postings = query.order_by(JobPosting.created_at.desc(), JobPosting.id.desc()).offset(offset).limit(page_size).all()

    return JobPostingListResponse(
        jobs=[JobPostingResponse.model_validate(p) for p in postings],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{job_id}", status_code=status.HTTP_200_OK, response_model=JobPostingResponse)
def get_job_posting(
    job_id: int,
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db)
):
    """
    Get a job posting by ID. Returns 404 if it belongs to another employer.
    """
    posting = db.query(JobPosting).filter(
        JobPosting.id == job_id,
        JobPosting.employer_id == employer.id
    ).first()

    if not posting:
        raise NotFoundError("Job posting not found")

    return JobPostingResponse.model_validate(posting)
