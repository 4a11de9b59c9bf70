"""
Skill matching between a resume and a job posting.
"""
from typing import Iterable, List, Optional, Sequence, Tuple

from app.core.config import STRONG_MATCH_THRESHOLD, MODERATE_MATCH_THRESHOLD
from app.services.resume_parser import skill_pattern

MATCH_STRONG = "strong"
MATCH_MODERATE = "moderate"
MATCH_WEAK = "weak"


def _normalize(skill: str) -> str:
    return " ".join(skill.lower().split())


def find_matching_skill(required: str, candidate_skills: Sequence[str]) -> Optional[str]:
    """
    The candidate skill credited for a required skill.

    An exact (case-insensitive) match wins over a candidate skill that
    contains the required one as a whole token, e.g. "Python" beats
    "Python scripting". Letters inside another word do not count, so "Go"
    is not found in "Django".
    """
    target = _normalize(required)
    if not target:
        return None

    pattern = skill_pattern(target)
    partial = None
    for skill in candidate_skills:
        normalized = _normalize(skill)
        if normalized == target:
            return skill
        if partial is None and pattern.search(normalized):
            partial = skill
    return partial


def match_skills(candidate_skills: Iterable[str], required_skills: Iterable[str]) -> Tuple[List[str], List[str]]:
    """
    Split required skills into (matched, missing), both in posting order.
    """
    candidates = [s for s in candidate_skills if s and s.strip()]
    matched, missing = [], []
    seen = set()

    for required in required_skills:
        key = _normalize(required)
        if not key or key in seen:
            continue
        seen.add(key)
        if find_matching_skill(required, candidates) is not None:
            matched.append(required)
        else:
            missing.append(required)

    return matched, missing


def calculate_match_percentage(matched_count: int, required_count: int) -> int:
    """Share of required skills matched, as an integer in [0, 100]."""
    if required_count <= 0:
        return 0
    percentage = round(matched_count / required_count * 100)
    return max(0, min(100, percentage))


def categorize_match(percentage: float) -> str:
    if percentage >= STRONG_MATCH_THRESHOLD:
        return MATCH_STRONG
    if percentage >= MODERATE_MATCH_THRESHOLD:
        return MATCH_MODERATE
    return MATCH_WEAK


def rank_candidates(candidates: Iterable[Tuple[str, int]]) -> List[dict]:
    """1-based ranks by score descending; equal scores keep their input order."""
    ordered = sorted(candidates, key=lambda item: -item[1])
    return [
        {"rank": index + 1, "candidate_id": candidate_id, "score": score}
        for index, (candidate_id, score) in enumerate(ordered)
    ]
