"""
Pydantic schemas for job posting endpoints.
"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


def _clean_skills(skills: List[str]) -> List[str]:
    """Strip blanks and case-insensitive duplicates, keeping the first spelling."""
    cleaned, seen = [], set()
    for skill in skills:
        skill = " ".join(skill.split())
        if skill and skill.lower() not in seen:
            cleaned.append(skill)
            seen.add(skill.lower())
    return cleaned


class JobPostingCreate(BaseModel):
    """Schema for creating a job posting."""
    title: str = Field(..., description="Job title", min_length=1, max_length=255)
    description: str = Field("", description="Full job description", max_length=20000)
    location: Optional[str] = Field(None, description="Job location", max_length=255)
    required_skills: List[str] = Field(default_factory=list, description="Skills every candidate needs", max_length=100)
    nice_to_have_skills: List[str] = Field(default_factory=list, description="Optional skills", max_length=100)

    @field_validator("required_skills", "nice_to_have_skills")
    @classmethod
    def normalize_skills(cls, v: List[str]) -> List[str]:
        return _clean_skills(v)

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "title": "Backend Engineer",
                "description": "Build and run our hiring platform APIs.",
                "location": "Remote",
                "requiredSkills": ["Python", "PostgreSQL", "Docker"],
                "niceToHaveSkills": ["Kubernetes"]
            }
        }


class JobPostingResponse(BaseModel):
    """Schema for job posting response."""
    id: int = Field(..., description="Job posting ID")
    employer_id: int = Field(..., description="Employer who owns the posting")
    title: str
    description: str
    location: Optional[str] = None
    required_skills: List[str] = Field(default_factory=list)
    nice_to_have_skills: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class JobPostingListResponse(BaseModel):
    """Schema for list of job postings response."""
    jobs: List[JobPostingResponse] = Field(..., description="List of job postings")
    total: int = Field(..., description="Total number of job postings")
    page: int = Field(1, description="Current page number")
    page_size: int = Field(20, description="Number of items per page")

    class Config:
        alias_generator = to_camel
        populate_by_name = True
