"""
Tests for skill matching and match buckets.
"""
import pytest

from app.services.matching_service import (
    MATCH_MODERATE,
    MATCH_STRONG,
    MATCH_WEAK,
    calculate_match_percentage,
    categorize_match,
    find_matching_skill,
    match_skills,
    rank_candidates,
)


def test_match_skills_case_insensitive():
    matched, missing = match_skills(["python", "DOCKER"], ["Python", "Docker", "PostgreSQL"])
    assert matched == ["Python", "Docker"]
    assert missing == ["PostgreSQL"]


def test_match_skills_keeps_posting_order_and_skips_duplicates():
    matched, missing = match_skills(["Go", "SQL"], ["SQL", "Rust", "sql", "Go"])
    assert matched == ["SQL", "Go"]
    assert missing == ["Rust"]


def test_exact_match_preferred_over_substring():
    assert find_matching_skill("Python", ["Python scripting", "python"]) == "python"
    assert find_matching_skill("Python", ["Python scripting"]) == "Python scripting"
    assert find_matching_skill("Java", ["Kotlin"]) is None


def test_blank_required_skill_never_matches():
    assert find_matching_skill("  ", ["Python"]) is None


@pytest.mark.parametrize("matched,required,expected", [
    (3, 3, 100),
    (2, 3, 67),
    (1, 3, 33),
    (0, 5, 0),
    (0, 0, 0),
    (7, 5, 100),
])
def test_calculate_match_percentage(matched, required, expected):
    assert calculate_match_percentage(matched, required) == expected


@pytest.mark.parametrize("percentage,bucket", [
    (100, MATCH_STRONG),
    (80, MATCH_STRONG),
    (79, MATCH_MODERATE),
    (50, MATCH_MODERATE),
    (49, MATCH_WEAK),
    (0, MATCH_WEAK),
])
def test_categorize_match_boundaries(percentage, bucket):
    assert categorize_match(percentage) == bucket


def test_rank_candidates_is_stable_for_ties():
    ranked = rank_candidates([("a", 50), ("b", 90), ("c", 50)])
    assert [(r["rank"], r["candidate_id"]) for r in ranked] == [(1, "b"), (2, "a"), (3, "c")]


def test_letters_inside_another_word_do_not_match():
    matched, missing = match_skills(["Django", "React", "Docker"], ["Go", "C"])
    assert matched == []
    assert missing == ["Go", "C"]


def test_whole_token_inside_phrase_matches():
    assert find_matching_skill("SQL", ["PostgreSQL", "SQL tuning"]) == "SQL tuning"
    assert find_matching_skill("C++", ["Modern C++ (17)"]) == "Modern C++ (17)"
    assert find_matching_skill("Go", ["Golang"]) is None


def test_resume_without_required_skills_scores_zero():
    from app.services.resume_analysis_service import ResumeScreener
    from app.services.resume_parser import parse_resume

    profile = parse_resume("Skills: Django, React", ["Go", "C"])
    result = ResumeScreener(provider=None).screen("", profile.skills, "Dev", "", ["Go", "C"])
    assert result.skills_matched == []
    assert result.match_percentage == 0
