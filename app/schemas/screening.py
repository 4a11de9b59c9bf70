"""
Pydantic schemas for screening endpoints.

Fields are snake_case in Python and camelCase on the wire.
"""
from typing import Optional, List, Literal
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

RESULT_STATUS_COMPLETED = "completed"
RESULT_STATUS_SHORTLISTED = "shortlisted"

SortBy = Literal["match", "created", "candidate"]
ResultStatus = Literal["completed", "shortlisted"]


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ScreeningFilter(CamelModel):
    """Filters for reading screening results."""
    min_match_percentage: Optional[int] = Field(None, ge=0, le=100, description="Lowest match percentage to include")
    status: Optional[ResultStatus] = Field(None, description="completed or shortlisted")
    sort_by: Optional[SortBy] = Field(None, description="match, created or candidate")
    sort_desc: bool = Field(False, description="Sort descending when sort_by is set")
    limit: int = Field(20, ge=1, le=100, description="Page size")
    offset: int = Field(0, ge=0, description="Rows to skip")


class ScreeningJobResponse(CamelModel):
    """Summary of a screening job."""
    screening_job_id: int
    job_id: int
    status: str
    total_resumes: int
    processed_count: int
    failed_count: int = 0
    shortlisted_candidates: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_job(cls, job) -> "ScreeningJobResponse":
        return cls(
            screening_job_id=job.id,
            job_id=job.job_id,
            status=job.status,
            total_resumes=job.total_resumes,
            processed_count=job.processed_count,
            failed_count=job.failed_count or 0,
            shortlisted_candidates=list(job.shortlisted_candidates or []),
            created_at=job.created_at,
            updated_at=job.updated_at,
        )


class ScreeningJobListResponse(CamelModel):
    jobs: List[ScreeningJobResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


class ScreeningTaskResponse(CamelModel):
    """One resume's processing record."""
    id: int
    filename: str
    status: str
    attempts: int
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ScreeningResultResponse(CamelModel):
    """One screened resume."""
    id: int
    candidate_id: str
    candidate_email: Optional[str] = None
    resume_filename: Optional[str] = None
    match_percentage: int = Field(..., ge=0, le=100)
    match_level: str
    skills_matched: List[str] = Field(default_factory=list)
    skills_missing: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    improvement_areas: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    status: ResultStatus = RESULT_STATUS_COMPLETED
    rank: Optional[int] = None
    created_at: Optional[datetime] = None


class ScreeningResultsPage(CamelModel):
    results: List[ScreeningResultResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


class MatchDistribution(CamelModel):
    strong: int = 0
    moderate: int = 0
    weak: int = 0


class ScreeningAnalyticsResponse(CamelModel):
    """Bucketed match statistics for one screening job."""
    screening_job_id: int
    total_screened: int
    average_match: float
    max_match: Optional[int] = None
    min_match: Optional[int] = None
    strong_matches: int
    moderate_matches: int
    weak_matches: int
    distribution: MatchDistribution


class ShortlistRequest(CamelModel):
    screening_job_id: int = Field(..., description="Screening job to shortlist from")
    candidate_ids: List[str] = Field(default_factory=list, max_length=500, description="Candidate ids to keep")

    @field_validator("candidate_ids")
    @classmethod
    def unique_ids(cls, v: List[str]) -> List[str]:
        cleaned, seen = [], set()
        for candidate_id in v:
            candidate_id = candidate_id.strip()
            if not candidate_id:
                raise ValueError("Candidate ids must not be empty")
            if candidate_id not in seen:
                cleaned.append(candidate_id)
                seen.add(candidate_id)
        return cleaned


class ShortlistResponse(CamelModel):
    job: ScreeningJobResponse
    message: str


class ScreeningActionResponse(CamelModel):
    """Result of cancel/retry."""
    screening_job_id: int
    affected_tasks: int
    status: str


class ScreeningExportResponse(CamelModel):
    results: List[ScreeningResultResponse]
    total: int
    exported_at: datetime
