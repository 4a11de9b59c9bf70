"""
Shared fixtures: an isolated SQLite database per test, a TestClient wired to
it, users with bearer tokens and in-memory resume PDFs.
"""
import fitz  # pymupdf
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.core.auth_dependency import get_db
from app.core.security import create_access_token, hash_password
from app.db.base import Base
from app.db.init_db import init_db
from app.db.models.job_posting import JobPosting
from app.db.models.user import User, ROLE_CANDIDATE, ROLE_EMPLOYER
from app.db.session import build_engine
from app.llm.provider import LLMProvider, LLMResponse
from app.main import app
from app.services.resume_analysis_service import ResumeScreener
from app.services.screening_queue import ScreeningTaskQueue


def make_pdf(text: str) -> bytes:
    """Single-page PDF containing the given text."""
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), text, fontsize=11)
    content = doc.tobytes()
    doc.close()
    return content


class FakeProvider(LLMProvider):
    """LLMProvider returning a canned reply and recording the prompts it got."""

    def __init__(self, content: str = None, error: Exception = None):
        self.content = content
        self.error = error
        self.calls = []

    def chat(self, messages, model, temperature=0.7, max_tokens=None, **kwargs):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.content, tokens_in=120, tokens_out=60, model=model)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    """Database session fixture."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def queue(session_factory):
    queue = ScreeningTaskQueue(
        session_factory,
        ResumeScreener(provider=None),
        max_workers=1,
        max_attempts=3,
        retry_base_delay=0,
    )
    yield queue
    queue.shutdown(wait_for_tasks=True)


@pytest.fixture
def client(session_factory, queue):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    previous_queue = getattr(app.state, "screening_queue", None)
    app.state.screening_queue = queue
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.state.screening_queue = previous_queue


def _create_user(db, email: str, role: str) -> User:
    user = User(
        full_name=email.split("@")[0].title(),
        email=email,
        password_hash=hash_password("password123"),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def employer(db):
    return _create_user(db, "recruiter@acme.example", ROLE_EMPLOYER)


@pytest.fixture
def other_employer(db):
    return _create_user(db, "recruiter@globex.example", ROLE_EMPLOYER)


@pytest.fixture
def candidate(db):
    return _create_user(db, "applicant@example.com", ROLE_CANDIDATE)


@pytest.fixture
def employer_headers(employer):
    return auth_headers(employer)


@pytest.fixture
def job_posting(db, employer):
    posting = JobPosting(
        employer_id=employer.id,
        title="Backend Engineer",
        description="Build and run APIs.",
        location="Remote",
        required_skills=["Python", "Docker", "PostgreSQL"],
        nice_to_have_skills=["Kubernetes"],
    )
    db.add(posting)
    db.commit()
    db.refresh(posting)
    return posting


@pytest.fixture
def resume_pdfs():
    """Three resumes matching 3/3, 2/3 and 1/3 of the posting's required skills."""
    return [
        ("jane.pdf", make_pdf("Jane Doe\njane@example.com\nSkills: Python, Docker, PostgreSQL")),
        ("raj.pdf", make_pdf("Raj Patel\nraj@example.com\nSkills: Python, Docker")),
        ("li.pdf", make_pdf("Li Wei\nli@example.com\nSkills: Python, Excel")),
    ]
