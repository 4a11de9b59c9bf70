"""
Resume screening analysis.

Combines the rule-based skill match with free-text feedback from the LLM.
Uses the configured LLMProvider if available, otherwise falls back to
deterministic content built from the skill match.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from app.core.config import OPENAI_MODEL
from app.llm.provider import LLMProvider
from app.services.matching_service import (
    MATCH_MODERATE,
    MATCH_STRONG,
    calculate_match_percentage,
    categorize_match,
    match_skills,
)

logger = logging.getLogger(__name__)

RESUME_TEXT_LIMIT = 6000
DESCRIPTION_LIMIT = 2000

SYSTEM_PROMPT = """You are an experienced technical recruiter screening resumes for a job opening.
Be specific, factual and concise. Base every statement on the resume text provided."""

ANALYSIS_PROMPT_TEMPLATE = """Job title: {job_title}

Job description:
{job_description}

Required skills: {required_skills}
Skills found in the resume that match: {matched_skills}
Required skills not found in the resume: {missing_skills}

Resume:
{resume_text}

Analyze how well this candidate fits the job and return JSON with exactly these keys:
- "strengths": array of up to 3 short strings
- "improvement_areas": array of up to 3 short strings
- "recommendations": array of up to 3 short strings for the hiring team

Return ONLY valid JSON, no markdown or extra text."""

FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class AIAnalysis(BaseModel):
    """Shape the LLM must return."""
    strengths: List[str] = Field(default_factory=list)
    improvement_areas: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


@dataclass
class ScreeningAnalysis:
    match_percentage: int
    skills_matched: List[str] = field(default_factory=list)
    skills_missing: List[str] = field(default_factory=list)
    strengths: List[str] = field(default_factory=list)
    improvement_areas: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    used_ai: bool = False


def parse_ai_analysis(content: str) -> Optional[AIAnalysis]:
    """Parse the model's reply; None when it is not the expected JSON object."""
    cleaned = FENCE_RE.sub("", content.strip()).strip()
    try:
        payload = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(payload, dict):
        return None
    # older prompts used "gaps" for improvement areas
    if "improvement_areas" not in payload and "gaps" in payload:
        payload["improvement_areas"] = payload["gaps"]
    try:
        analysis = AIAnalysis.model_validate(payload)
    except PydanticValidationError:
        return None
    return AIAnalysis(
        strengths=[s.strip() for s in analysis.strengths if s.strip()][:5],
        improvement_areas=[s.strip() for s in analysis.improvement_areas if s.strip()][:5],
        recommendations=[s.strip() for s in analysis.recommendations if s.strip()][:5],
    )


def fallback_analysis(matched: Sequence[str], missing: Sequence[str], percentage: int) -> AIAnalysis:
    """Deterministic feedback used when the LLM is unavailable or unusable."""
    if matched:
        strengths = [f"Demonstrates required skill: {skill}" for skill in matched[:3]]
    else:
        strengths = ["No required skills identified in the resume"]

    if missing:
        improvement_areas = [f"No evidence of required skill: {skill}" for skill in missing[:3]]
    else:
        improvement_areas = ["Covers all required skills"]

    bucket = categorize_match(percentage)
    if bucket == MATCH_STRONG:
        recommendations = ["Advance to interview"]
    elif bucket == MATCH_MODERATE:
        recommendations = ["Consider for a screening call"]
        if missing:
            recommendations.append(f"Probe experience with {', '.join(missing[:3])}")
    else:
        recommendations = ["Not a strong fit for the required skills"]

    return AIAnalysis(
        strengths=strengths,
        improvement_areas=improvement_areas,
        recommendations=recommendations,
    )


class ResumeScreener:
    """Screens one resume against a job posting."""

    def __init__(self, provider: Optional[LLMProvider] = None, model: str = OPENAI_MODEL):
        self.provider = provider
        self.model = model
        if provider is None:
            logger.info("No LLM provider configured - screening uses rule-based feedback")

    def screen(
        self,
        resume_text: str,
        candidate_skills: Sequence[str],
        job_title: str,
        job_description: str,
        required_skills: Sequence[str],
    ) -> ScreeningAnalysis:
        matched, missing = match_skills(candidate_skills, required_skills)
        percentage = calculate_match_percentage(len(matched), len(matched) + len(missing))

        ai = self._ask_model(resume_text, job_title, job_description, required_skills, matched, missing)
        used_ai = ai is not None
        if ai is None:
            ai = fallback_analysis(matched, missing, percentage)

        return ScreeningAnalysis(
            match_percentage=percentage,
            skills_matched=matched,
            skills_missing=missing,
            strengths=ai.strengths,
            improvement_areas=ai.improvement_areas,
            recommendations=ai.recommendations,
            used_ai=used_ai,
        )

    def _ask_model(
        self,
        resume_text: str,
        job_title: str,
        job_description: str,
        required_skills: Sequence[str],
        matched: Sequence[str],
        missing: Sequence[str],
    ) -> Optional[AIAnalysis]:
        if self.provider is None:
            return None

        prompt = ANALYSIS_PROMPT_TEMPLATE.format(
            job_title=job_title,
            job_description=(job_description or "")[:DESCRIPTION_LIMIT],
            required_skills=", ".join(required_skills) or "none listed",
            matched_skills=", ".join(matched) or "none",
            missing_skills=", ".join(missing) or "none",
            resume_text=resume_text[:RESUME_TEXT_LIMIT],
        )

        try:
            response = self.provider.chat(
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                model=self.model,
                temperature=0.3,
                max_tokens=800,
            )
        except Exception as e:
            logger.warning(f"LLM analysis unavailable, using fallback: {type(e).__name__}: {e}")
            return None

        analysis = parse_ai_analysis(response.content)
        if analysis is None:
            logger.warning("LLM analysis was not valid JSON, using fallback")
            return None

        logger.debug(
            f"LLM analysis done: model={response.model}, tokens_in={response.tokens_in}, "
            f"tokens_out={response.tokens_out}, cost=${response.cost_estimate:.5f}"
        )
        return analysis
