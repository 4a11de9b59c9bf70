"""
Screening endpoints.

Employers upload a batch of resume PDFs against one of their job postings,
poll the job, then read results, analytics, shortlist and export.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db, get_screening_queue, require_employer
from app.core.config import SCREENING_MAX_BATCH_SIZE, SCREENING_MAX_FILE_SIZE
from app.core.errors import PayloadTooLargeError, ValidationError
from app.db.models.user import User
from app.schemas.screening import (
    ScreeningActionResponse,
    ScreeningAnalyticsResponse,
    ScreeningExportResponse,
    ScreeningFilter,
    ScreeningJobListResponse,
    ScreeningJobResponse,
    ScreeningResultsPage,
    ScreeningTaskResponse,
    ShortlistRequest,
    ShortlistResponse,
)
from app.services import screening_service
from app.services.export_service import EXPORT_FORMATS, export_filename, results_to_csv, results_to_json
from app.services.screening_queue import ScreeningTaskQueue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/screening", tags=["Screening"])

PDF_CONTENT_TYPE = "application/pdf"


def _parse_job_id(raw: Optional[str]) -> int:
    if raw is None or not str(raw).strip():
        raise ValidationError("Job ID is required")
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValidationError("Invalid job ID")


def _require_screening_job_id(screening_job_id: Optional[int]) -> int:
    if screening_job_id is None:
        raise ValidationError("Invalid screening job ID")
    return screening_job_id


@router.get("", response_model=ScreeningJobListResponse)
def list_screening_jobs(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db)
):
    """List the employer's screening jobs, newest first."""
    jobs, total = screening_service.list_screening_jobs(db, employer, limit, offset)
    return ScreeningJobListResponse(
        jobs=[ScreeningJobResponse.from_job(job) for job in jobs],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + limit < total,
    )


@router.post("/batch-upload", status_code=status.HTTP_202_ACCEPTED, response_model=ScreeningJobResponse)
def upload_batch(
    resumes: Optional[List[UploadFile]] = File(None, description="Resume PDFs"),
    job_id_form: Optional[str] = Form(None, alias="jobId"),
    job_id_query: Optional[str] = Query(None, alias="jobId"),
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db),
    queue: ScreeningTaskQueue = Depends(get_screening_queue)
):
    """
    Upload resumes and start screening them in the background.

    Returns 202 immediately; poll GET /api/screening/{id} for progress.
    Files that are not PDFs are ignored.
    """
    job_id = _parse_job_id(job_id_form if job_id_form is not None else job_id_query)

    files = [f for f in (resumes or []) if f is not None and f.filename]
    if not files:
        raise ValidationError("At least 1 resume required")
    if len(files) > SCREENING_MAX_BATCH_SIZE:
        raise ValidationError(f"Maximum {SCREENING_MAX_BATCH_SIZE} resumes per batch")

    pdf_files = [f for f in files if f.content_type == PDF_CONTENT_TYPE]
    if not pdf_files:
        raise ValidationError("Only PDF files are supported")

    payloads = []
    for upload in pdf_files:
        content = upload.file.read()
        if len(content) > SCREENING_MAX_FILE_SIZE:
            raise PayloadTooLargeError(
                f"File too large: {upload.filename} (max {SCREENING_MAX_FILE_SIZE // (1024 * 1024)}MB per file)"
            )
        payloads.append((upload.filename, content))

    logger.info(
        f"Screening batch upload: employer_id={employer.id}, job_id={job_id}, "
        f"files={len(files)}, pdfs={len(payloads)}"
    )

    job, task_ids = screening_service.create_screening_job(db, employer, job_id, payloads)
    queue.enqueue(task_ids)

    return ScreeningJobResponse.from_job(job)


@router.get("/results", response_model=ScreeningResultsPage)
def get_results(
    screening_job_id: Optional[int] = Query(None, alias="screeningJobId"),
    min_match: Optional[int] = Query(None, alias="minMatch", ge=0, le=100),
    result_status: Optional[str] = Query(None, alias="status", pattern="^(completed|shortlisted)$"),
    sort_by: Optional[str] = Query(None, alias="sortBy", pattern="^(match|created|candidate)$"),
    sort_desc: bool = Query(False, alias="sortDesc"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db)
):
    """Paginated, filterable results of one screening job."""
    job = screening_service.get_screening_job(db, employer, _require_screening_job_id(screening_job_id))
    filters = ScreeningFilter(
        min_match_percentage=min_match,
        status=result_status,
        sort_by=sort_by,
        sort_desc=sort_desc,
        limit=limit,
        offset=offset,
    )

    results, total = screening_service.get_screening_results(db, job, filters)
    return ScreeningResultsPage(
        results=results,
        total=total,
        limit=filters.limit,
        offset=filters.offset,
        has_more=filters.offset + filters.limit < total,
    )


@router.get("/analytics", response_model=ScreeningAnalyticsResponse)
def get_analytics(
    screening_job_id: Optional[int] = Query(None, alias="screeningJobId"),
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db)
):
    """Match bucket counts and distribution for one screening job."""
    job = screening_service.get_screening_job(db, employer, _require_screening_job_id(screening_job_id))
    return screening_service.get_screening_analytics(db, job)


@router.put("/shortlist", response_model=ShortlistResponse)
def save_shortlist(
    request: ShortlistRequest,
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db)
):
    """Replace the shortlist of a screening job."""
    job = screening_service.get_screening_job(db, employer, request.screening_job_id)
    job = screening_service.save_shortlist(db, job, request.candidate_ids)
    return ShortlistResponse(
        job=ScreeningJobResponse.from_job(job),
        message=f"{len(request.candidate_ids)} candidates shortlisted",
    )


@router.get("/{screening_job_id}", response_model=ScreeningJobResponse)
def get_status(
    screening_job_id: int,
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db)
):
    """Progress of a screening job."""
    job = screening_service.get_screening_job(db, employer, screening_job_id)
    return ScreeningJobResponse.from_job(job)


@router.get("/{screening_job_id}/tasks", response_model=List[ScreeningTaskResponse])
def get_tasks(
    screening_job_id: int,
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db)
):
    """Per-resume task records of a screening job."""
    job = screening_service.get_screening_job(db, employer, screening_job_id)
    return [ScreeningTaskResponse.model_validate(task) for task in screening_service.list_screening_tasks(db, job)]


@router.get("/{screening_job_id}/export")
def export_results(
    screening_job_id: int,
    export_format: str = Query("json", alias="format"),
    min_match: Optional[int] = Query(None, alias="minMatch", ge=0, le=100),
    result_status: Optional[str] = Query(None, alias="status", pattern="^(completed|shortlisted)$"),
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db)
):
    """Export results as a CSV attachment or JSON document."""
    export_format = export_format.lower()
    if export_format not in EXPORT_FORMATS:
        raise ValidationError("Export format must be csv or json")

    job = screening_service.get_screening_job(db, employer, screening_job_id)
    filters = ScreeningFilter(min_match_percentage=min_match, status=result_status)
    rows, _ = screening_service.query_screening_results(db, job, filters, paginate=False)
    shortlist = set(job.shortlisted_candidates or [])
    results = [screening_service.to_result_response(row, shortlist) for row in rows]

    logger.info(f"Exporting screening results: screening_job_id={job.id}, format={export_format}, rows={len(results)}")

    if export_format == "csv":
        return Response(
            content=results_to_csv(results),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{export_filename(job.id)}"'},
        )

    export = results_to_json(results)
    return Response(
        content=export.model_dump_json(by_alias=True),
        media_type="application/json",
    )


@router.post("/{screening_job_id}/cancel", response_model=ScreeningActionResponse)
def cancel_screening(
    screening_job_id: int,
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db),
    queue: ScreeningTaskQueue = Depends(get_screening_queue)
):
    """Stop resumes that have not started yet."""
    job = screening_service.get_screening_job(db, employer, screening_job_id)
    cancelled = queue.cancel(job.id)
    db.refresh(job)
    return ScreeningActionResponse(screening_job_id=job.id, affected_tasks=cancelled, status=job.status)


@router.post("/{screening_job_id}/retry", response_model=ScreeningActionResponse)
def retry_screening(
    screening_job_id: int,
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db),
    queue: ScreeningTaskQueue = Depends(get_screening_queue)
):
    """Re-queue the resumes that failed."""
    job = screening_service.get_screening_job(db, employer, screening_job_id)
    task_ids = queue.retry_failed(job.id)
    db.refresh(job)
    return ScreeningActionResponse(screening_job_id=job.id, affected_tasks=len(task_ids), status=job.status)


@router.delete("/{screening_job_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_screening(
    screening_job_id: int,
    employer: User = Depends(require_employer),
    db: Session = Depends(get_db),
    queue: ScreeningTaskQueue = Depends(get_screening_queue)
):
    """Delete a screening job with its tasks and results."""
    job = screening_service.get_screening_job(db, employer, screening_job_id)
    screening_service.delete_screening_job(db, queue, job)
    return None
