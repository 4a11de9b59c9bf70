"""
Screening service: batch creation, result queries, analytics and shortlist.

Functions take the request's database session; background work goes through
the ScreeningTaskQueue.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.core.config import (
    MODERATE_MATCH_THRESHOLD,
    SCREENING_MAX_BATCH_SIZE,
    STRONG_MATCH_THRESHOLD,
)
from app.core.errors import NotFoundError, ValidationError
from app.db.models.job_posting import JobPosting
from app.db.models.screening_job import JOB_PENDING, ScreeningJob
from app.db.models.screening_result import ScreeningResult
from app.db.models.screening_task import TASK_QUEUED, ScreeningTask
from app.db.models.user import User
from app.schemas.screening import (
    RESULT_STATUS_COMPLETED,
    RESULT_STATUS_SHORTLISTED,
    MatchDistribution,
    ScreeningAnalyticsResponse,
    ScreeningFilter,
    ScreeningResultResponse,
)
from app.services.matching_service import categorize_match

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "match": ScreeningResult.match_percentage,
    "created": ScreeningResult.created_at,
    "candidate": ScreeningResult.candidate_id,
}


def get_owned_job_posting(db: Session, employer: User, job_id: int) -> JobPosting:
    posting = db.query(JobPosting).filter(
        JobPosting.id == job_id,
        JobPosting.employer_id == employer.id
    ).first()
    if not posting:
        raise NotFoundError("Job posting not found")
    return posting


def get_screening_job(db: Session, employer: User, screening_job_id: int) -> ScreeningJob:
    """Fetch a screening job owned by the employer; other employers' jobs look missing."""
    job = db.query(ScreeningJob).filter(
        ScreeningJob.id == screening_job_id,
        ScreeningJob.employer_id == employer.id
    ).first()
    if not job:
        raise NotFoundError("Screening job not found")
    return job


def create_screening_job(
    db: Session,
    employer: User,
    job_id: int,
    resumes: Sequence[Tuple[str, bytes]],
) -> Tuple[ScreeningJob, List[int]]:
    """
    Create a pending ScreeningJob with one queued ScreeningTask per resume.

    Args:
        db: Database session
        employer: Authenticated employer
        job_id: Job posting the resumes are screened against
        resumes: (filename, PDF bytes) pairs, already filtered to PDFs

    Returns:
        The job and the ids of its tasks, ready to enqueue
    """
    if not resumes:
        raise ValidationError("At least 1 resume required")
    if len(resumes) > SCREENING_MAX_BATCH_SIZE:
        raise ValidationError(f"Maximum {SCREENING_MAX_BATCH_SIZE} resumes per batch")

    posting = get_owned_job_posting(db, employer, job_id)

    try:
        job = ScreeningJob(
            employer_id=employer.id,
            job_id=posting.id,
            status=JOB_PENDING,
            total_resumes=len(resumes),
            processed_count=0,
            failed_count=0,
            shortlisted_candidates=[],
        )
        db.add(job)
        db.flush()

        tasks = [
            ScreeningTask(
                screening_job_id=job.id,
                filename=filename,
                content=content,
                status=TASK_QUEUED,
                attempts=0,
            )
            for filename, content in resumes
        ]
        db.add_all(tasks)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(job)
    task_ids = [task.id for task in tasks]
    logger.info(
        f"Screening job created: screening_job_id={job.id}, employer_id={employer.id}, "
        f"job_id={posting.id}, resumes={len(task_ids)}"
    )
    return job, task_ids


def list_screening_jobs(db: Session, employer: User, limit: int, offset: int) -> Tuple[List[ScreeningJob], int]:
    query = db.query(ScreeningJob).filter(ScreeningJob.employer_id == employer.id)
    total = query.count()
    jobs = query.order_by(ScreeningJob.created_at.desc(), ScreeningJob.id.desc()).offset(offset).limit(limit).all()
    return jobs, total


def list_screening_tasks(db: Session, job: ScreeningJob) -> List[ScreeningTask]:
    return db.query(ScreeningTask).filter(
        ScreeningTask.screening_job_id == job.id
    ).order_by(ScreeningTask.id.asc()).all()


def _filtered_results_query(db: Session, job: ScreeningJob, filters: ScreeningFilter):
    query = db.query(ScreeningResult).filter(ScreeningResult.screening_job_id == job.id)

    if filters.min_match_percentage is not None:
        query = query.filter(ScreeningResult.match_percentage >= filters.min_match_percentage)

    shortlist = list(job.shortlisted_candidates or [])
    if filters.status == RESULT_STATUS_SHORTLISTED:
        query = query.filter(ScreeningResult.candidate_id.in_(shortlist))
    elif filters.status == RESULT_STATUS_COMPLETED and shortlist:
        query = query.filter(ScreeningResult.candidate_id.not_in(shortlist))

    return query


def _is_ranked_order(filters: ScreeningFilter) -> bool:
    return filters.sort_by is None or (filters.sort_by == "match" and filters.sort_desc)


def query_screening_results(
    db: Session,
    job: ScreeningJob,
    filters: ScreeningFilter,
    paginate: bool = True,
) -> Tuple[List[ScreeningResult], int]:
    """
    Filtered, ordered results and the total under the same filters.

    Default order is match percentage descending. Id ascending is always the
    last sort key so identical requests return identical pages.
    """
    query = _filtered_results_query(db, job, filters)
    total = query.count()

    if filters.sort_by is None:
        order = [ScreeningResult.match_percentage.desc()]
    else:
        column = SORT_COLUMNS[filters.sort_by]
        order = [column.desc() if filters.sort_desc else column.asc()]
    order.append(ScreeningResult.id.asc())

    query = query.order_by(*order)
    if paginate:
        query = query.offset(filters.offset).limit(filters.limit)
    return query.all(), total


def to_result_response(result: ScreeningResult, shortlist: Sequence[str], rank: Optional[int] = None) -> ScreeningResultResponse:
    return ScreeningResultResponse(
        id=result.id,
        candidate_id=result.candidate_id,
        candidate_email=result.candidate_email,
        resume_filename=result.resume_filename,
        match_percentage=result.match_percentage,
        match_level=categorize_match(result.match_percentage),
        skills_matched=list(result.skills_matched or []),
        skills_missing=list(result.skills_missing or []),
        strengths=list(result.strengths or []),
        improvement_areas=list(result.improvement_areas or []),
        recommendations=list(result.recommendations or []),
        status=RESULT_STATUS_SHORTLISTED if result.candidate_id in shortlist else RESULT_STATUS_COMPLETED,
        rank=rank,
        created_at=result.created_at,
    )


def get_screening_results(
    db: Session,
    job: ScreeningJob,
    filters: ScreeningFilter,
) -> Tuple[List[ScreeningResultResponse], int]:
    rows, total = query_screening_results(db, job, filters)
    shortlist = set(job.shortlisted_candidates or [])
    ranked = _is_ranked_order(filters)
    results = [
        to_result_response(row, shortlist, rank=filters.offset + index + 1 if ranked else None)
        for index, row in enumerate(rows)
    ]
    logger.debug(f"Screening results read: screening_job_id={job.id}, total={total}, returned={len(results)}")
    return results, total


def _percent_of(count: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(count / total * 100)


def get_screening_analytics(db: Session, job: ScreeningJob) -> ScreeningAnalyticsResponse:
    """
    Bucket counts over the job's results.

    strong >= STRONG_MATCH_THRESHOLD, moderate >= MODERATE_MATCH_THRESHOLD,
    weak below that. A job with no results reports zeros.
    """
    pct = ScreeningResult.match_percentage
    row = db.query(
        func.count(ScreeningResult.id),
        func.avg(pct),
        func.max(pct),
        func.min(pct),
        func.count(case((pct >= STRONG_MATCH_THRESHOLD, 1))),
        func.count(case(((pct >= MODERATE_MATCH_THRESHOLD) & (pct < STRONG_MATCH_THRESHOLD), 1))),
        func.count(case((pct < MODERATE_MATCH_THRESHOLD, 1))),
    ).filter(ScreeningResult.screening_job_id == job.id).one()

    total, average, maximum, minimum, strong, moderate, weak = row
    total = int(total or 0)

    return ScreeningAnalyticsResponse(
        screening_job_id=job.id,
        total_screened=total,
        average_match=round(float(average), 1) if total else 0.0,
        max_match=int(maximum) if total else None,
        min_match=int(minimum) if total else None,
        strong_matches=int(strong or 0),
        moderate_matches=int(moderate or 0),
        weak_matches=int(weak or 0),
        distribution=MatchDistribution(
            strong=_percent_of(int(strong or 0), total),
            moderate=_percent_of(int(moderate or 0), total),
            weak=_percent_of(int(weak or 0), total),
        ),
    )


def save_shortlist(db: Session, job: ScreeningJob, candidate_ids: List[str]) -> ScreeningJob:
    """Replace the job's shortlist. Every id must belong to one of the job's results."""
    if candidate_ids:
        known = {
            candidate_id for (candidate_id,) in db.query(ScreeningResult.candidate_id).filter(
                ScreeningResult.screening_job_id == job.id,
                ScreeningResult.candidate_id.in_(candidate_ids)
            ).all()
        }
        unknown = [c for c in candidate_ids if c not in known]
        if unknown:
            raise ValidationError(f"Unknown candidate ids for this screening job: {', '.join(unknown[:10])}")

    try:
        job.shortlisted_candidates = list(candidate_ids)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(job)

    logger.info(f"Shortlist saved: screening_job_id={job.id}, candidates={len(candidate_ids)}")
    return job


def delete_screening_job(db: Session, queue, job: ScreeningJob) -> None:
    """Cancel queued work, then remove results, tasks and the job together."""
    screening_job_id = job.id
    queue.cancel(screening_job_id)

    try:
        db.query(ScreeningResult).filter(
            ScreeningResult.screening_job_id == screening_job_id
        ).delete(synchronize_session=False)
        db.query(ScreeningTask).filter(
            ScreeningTask.screening_job_id == screening_job_id
        ).delete(synchronize_session=False)
        db.query(ScreeningJob).filter(
            ScreeningJob.id == screening_job_id
        ).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Failed to delete screening job {screening_job_id}", exc_info=True)
        raise

    logger.info(f"Screening job deleted: screening_job_id={screening_job_id}")
