"""
Resume parsing: PDF text extraction and skill/contact extraction.
"""
import hashlib
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import fitz  # pymupdf

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
SKILLS_HEADER_RE = re.compile(r"^\s*(?:technical\s+|key\s+|core\s+)?(?:skills|competencies)\b\s*[:\-]?\s*(.*)$", re.IGNORECASE)
SECTION_HEADER_RE = re.compile(
    r"^\s*(experience|work history|employment|education|projects|certifications|summary|objective|contact|references|languages|interests)\b",
    re.IGNORECASE,
)
SKILL_SPLIT_RE = re.compile(r"[,;|•·\n]")

COMMON_SKILLS = [
    "Python", "Java", "JavaScript", "TypeScript", "Go", "Rust", "C", "C++", "C#", "Ruby", "PHP",
    "Kotlin", "Swift", "Scala", "SQL", "PostgreSQL", "MySQL", "MongoDB", "Redis",
    "React", "Angular", "Vue", "Node.js", "Django", "Flask", "FastAPI", "Spring", ".NET",
    "Docker", "Kubernetes", "Terraform", "AWS", "Azure", "GCP", "Linux", "Git", "CI/CD",
    "GraphQL", "REST", "Kafka", "Spark", "Pandas", "NumPy", "TensorFlow", "PyTorch",
    "Machine Learning", "Data Analysis", "Agile", "Scrum",
]


class ResumeParseError(Exception):
    """Raised when a resume file cannot be turned into text."""


@dataclass
class ResumeProfile:
    text: str
    email: Optional[str] = None
    skills: List[str] = field(default_factory=list)


def extract_text_from_pdf(content: bytes) -> str:
    """
    Extract plain text from PDF bytes.

    Raises:
        ResumeParseError: if the bytes are not a readable PDF or contain no text
    """
    try:
        with fitz.open(stream=content, filetype="pdf") as doc:
            text = "".join(page.get_text() for page in doc)
    except Exception as e:
        raise ResumeParseError(f"Unreadable PDF: {e}") from e

    if not text.strip():
        raise ResumeParseError("PDF contains no extractable text")
    return text


def extract_email(text: str) -> Optional[str]:
    match = EMAIL_RE.search(text)
    return match.group(0).lower() if match else None


def skill_pattern(skill: str) -> re.Pattern:
    # word characters, '+' and '#' count as part of a skill token
    return re.compile(r"(?<![\w+#])" + re.escape(skill) + r"(?![\w+#])", re.IGNORECASE)


def extract_skills(text: str, vocabulary: Iterable[str]) -> List[str]:
    """Return the vocabulary entries that appear in the text as whole tokens."""
    found = []
    seen = set()
    for skill in vocabulary:
        skill = skill.strip()
        key = skill.lower()
        if not skill or key in seen:
            continue
        if skill_pattern(skill).search(text):
            found.append(skill)
            seen.add(key)
    return found


def extract_skills_section(text: str) -> List[str]:
    """Items listed under a 'Skills:' header, up to the next section header or blank line."""
    lines = text.splitlines()
    collected = []
    in_section = False

    for line in lines:
        if not in_section:
            header = SKILLS_HEADER_RE.match(line)
            if header:
                in_section = True
                if header.group(1):
                    collected.append(header.group(1))
            continue

        if not line.strip() or SECTION_HEADER_RE.match(line):
            break
        collected.append(line)

    items = []
    for chunk in collected:
        for item in SKILL_SPLIT_RE.split(chunk):
            item = item.strip(" \t-*")
            if 1 <= len(item) <= 40:
                items.append(item)
    return items


def candidate_id_for(email: Optional[str], content: bytes) -> str:
    """Stable candidate identifier: the email when known, else a digest of the file."""
    if email:
        return email.lower()
    return f"resume-{hashlib.sha256(content).hexdigest()[:12]}"


def parse_resume(text: str, vocabulary: Iterable[str] = ()) -> ResumeProfile:
    """
    Build a ResumeProfile from resume text.

    Skills come from the given vocabulary (usually the job posting's skills)
    plus COMMON_SKILLS, followed by anything listed in a skills section.
    """
    vocab = list(vocabulary) + COMMON_SKILLS
    skills = extract_skills(text, vocab)

    seen = {s.lower() for s in skills}
    for item in extract_skills_section(text):
        if item.lower() not in seen:
            skills.append(item)
            seen.add(item.lower())

    profile = ResumeProfile(text=text, email=extract_email(text), skills=skills)
    logger.debug(f"Resume parsed: email={'yes' if profile.email else 'no'}, skills={len(profile.skills)}")
    return profile
