"""
End-to-end tests for the screening endpoints.

The queue runs with one worker and no retry delay; tests wait on
queue.join() before reading results.
"""
import csv
import io

import pytest

from app.db.models.screening_job import ScreeningJob
from app.db.models.screening_result import ScreeningResult
from app.db.models.screening_task import ScreeningTask
from app.services import screening_service
from tests.conftest import auth_headers, make_pdf


def _files(resumes):
    return [("resumes", (name, content, "application/pdf")) for name, content in resumes]


def upload(client, headers, job_id, resumes):
    return client.post(
        "/api/screening/batch-upload",
        data={"jobId": str(job_id)},
        files=_files(resumes),
        headers=headers
    )


@pytest.fixture
def screened_job(client, queue, employer_headers, job_posting, resume_pdfs):
    """A completed screening job with matches of 100, 67 and 33."""
    response = upload(client, employer_headers, job_posting.id, resume_pdfs)
    assert response.status_code == 202
    assert queue.join(timeout=30)
    return response.json()["screeningJobId"]


# ============================================
# Batch upload
# ============================================

def test_batch_upload_processes_every_resume(client, queue, employer_headers, job_posting, resume_pdfs):
    response = upload(client, employer_headers, job_posting.id, resume_pdfs)

    assert response.status_code == 202
    body = response.json()
    assert body["jobId"] == job_posting.id
    assert body["totalResumes"] == 3
    assert body["status"] in ("pending", "processing", "completed")

    assert queue.join(timeout=30)
    status = client.get(f"/api/screening/{body['screeningJobId']}", headers=employer_headers).json()
    assert status["status"] == "completed"
    assert status["processedCount"] == 3
    assert status["failedCount"] == 0

    tasks = client.get(f"/api/screening/{body['screeningJobId']}/tasks", headers=employer_headers).json()
    assert [t["status"] for t in tasks] == ["done", "done", "done"]
    assert all(t["attempts"] == 1 for t in tasks)


def test_batch_upload_accepts_job_id_in_query(client, queue, employer_headers, job_posting, resume_pdfs):
    response = client.post(
        f"/api/screening/batch-upload?jobId={job_posting.id}",
        files=_files(resume_pdfs[:1]),
        headers=employer_headers
    )
    assert response.status_code == 202
    assert queue.join(timeout=30)


def test_batch_upload_requires_job_id(client, employer_headers, resume_pdfs):
    response = client.post("/api/screening/batch-upload", files=_files(resume_pdfs), headers=employer_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Job ID is required"


def test_batch_upload_rejects_non_numeric_job_id(client, employer_headers, resume_pdfs):
    response = upload(client, employer_headers, "abc", resume_pdfs)
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid job ID"


def test_batch_upload_requires_resumes(client, employer_headers, job_posting):
    response = client.post(
        "/api/screening/batch-upload",
        data={"jobId": str(job_posting.id)},
        headers=employer_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "At least 1 resume required"


def test_batch_upload_rejects_too_many_resumes(client, employer_headers, job_posting, monkeypatch):
    from app.api.routes import screening as screening_routes
    monkeypatch.setattr(screening_routes, "SCREENING_MAX_BATCH_SIZE", 2)

    resumes = [(f"r{i}.pdf", b"%PDF") for i in range(3)]
    response = upload(client, employer_headers, job_posting.id, resumes)
    assert response.status_code == 400
    assert response.json()["detail"] == "Maximum 2 resumes per batch"


def test_batch_upload_rejects_only_non_pdf_files(client, employer_headers, job_posting):
    response = client.post(
        "/api/screening/batch-upload",
        data={"jobId": str(job_posting.id)},
        files=[("resumes", ("cv.txt", b"plain text", "text/plain"))],
        headers=employer_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Only PDF files are supported"


def test_batch_upload_ignores_non_pdf_files(client, queue, employer_headers, job_posting, resume_pdfs):
    files = _files(resume_pdfs[:1]) + [("resumes", ("notes.txt", b"plain", "text/plain"))]
    response = client.post(
        "/api/screening/batch-upload",
        data={"jobId": str(job_posting.id)},
        files=files,
        headers=employer_headers
    )
    assert response.status_code == 202
    assert response.json()["totalResumes"] == 1
    assert queue.join(timeout=30)


def test_batch_upload_rejects_oversized_file(client, employer_headers, job_posting, monkeypatch):
    from app.api.routes import screening as screening_routes
    monkeypatch.setattr(screening_routes, "SCREENING_MAX_FILE_SIZE", 10)

    response = upload(client, employer_headers, job_posting.id, [("big.pdf", b"%PDF-" + b"x" * 64)])
    assert response.status_code == 413
    assert response.json()["code"] == "FILE_SIZE_ERROR"


def test_batch_upload_unknown_job_posting(client, employer_headers, resume_pdfs):
    response = upload(client, employer_headers, 9999, resume_pdfs)
    assert response.status_code == 404


def test_batch_upload_other_employers_posting(client, job_posting, other_employer, resume_pdfs):
    response = upload(client, auth_headers(other_employer), job_posting.id, resume_pdfs)
    assert response.status_code == 404


def test_screening_requires_employer(client, candidate):
    response = client.get("/api/screening", headers=auth_headers(candidate))
    assert response.status_code == 403
    assert response.json()["detail"] == "Only employers can access this resource"


def test_screening_requires_token(client):
    assert client.get("/api/screening").status_code == 401


def test_failed_pdf_marks_task_failed(client, queue, employer_headers, job_posting, resume_pdfs):
    resumes = resume_pdfs[:1] + [("broken.pdf", b"%PDF-1.4 truncated garbage")]
    job_id = upload(client, employer_headers, job_posting.id, resumes).json()["screeningJobId"]
    assert queue.join(timeout=30)

    status = client.get(f"/api/screening/{job_id}", headers=employer_headers).json()
    assert status["status"] == "completed"
    assert status["processedCount"] == 2
    assert status["failedCount"] == 1

    tasks = client.get(f"/api/screening/{job_id}/tasks", headers=employer_headers).json()
    broken = [t for t in tasks if t["filename"] == "broken.pdf"][0]
    assert broken["status"] == "failed"
    assert broken["attempts"] == 1
    assert "PDF" in broken["error"]


def test_duplicate_candidate_in_batch_fails_second_task(client, queue, employer_headers, job_posting, resume_pdfs):
    jane = resume_pdfs[0]
    job_id = upload(client, employer_headers, job_posting.id, [jane, ("jane-copy.pdf", jane[1])]).json()["screeningJobId"]
    assert queue.join(timeout=30)

    status = client.get(f"/api/screening/{job_id}", headers=employer_headers).json()
    assert status["processedCount"] == 2
    assert status["failedCount"] == 1

    results = client.get(f"/api/screening/results?screeningJobId={job_id}", headers=employer_headers).json()
    assert results["total"] == 1


# ============================================
# Listing and results
# ============================================

def test_list_screening_jobs(client, employer_headers, screened_job, other_employer):
    body = client.get("/api/screening", headers=employer_headers).json()
    assert body["total"] == 1
    assert body["jobs"][0]["screeningJobId"] == screened_job
    assert body["hasMore"] is False

    assert client.get("/api/screening", headers=auth_headers(other_employer)).json()["total"] == 0


def test_results_default_order_and_pagination(client, employer_headers, screened_job):
    page = client.get(
        f"/api/screening/results?screeningJobId={screened_job}&limit=2",
        headers=employer_headers
    ).json()

    assert page["total"] == 3
    assert page["hasMore"] is True
    assert [r["matchPercentage"] for r in page["results"]] == [100, 67, 33][:2]
    assert [r["rank"] for r in page["results"]] == [1, 2]
    assert page["results"][0]["candidateId"] == "jane@example.com"
    assert page["results"][0]["matchLevel"] == "strong"
    assert page["results"][0]["skillsMatched"] == ["Python", "Docker", "PostgreSQL"]
    assert page["results"][0]["recommendations"] == ["Advance to interview"]

    last = client.get(
        f"/api/screening/results?screeningJobId={screened_job}&limit=2&offset=2",
        headers=employer_headers
    ).json()
    assert last["hasMore"] is False
    assert last["results"][0]["matchPercentage"] == 33
    assert last["results"][0]["rank"] == 3
    assert last["results"][0]["skillsMissing"] == ["Docker", "PostgreSQL"]


def test_results_min_match_filters_total(client, employer_headers, screened_job):
    page = client.get(
        f"/api/screening/results?screeningJobId={screened_job}&minMatch=50",
        headers=employer_headers
    ).json()
    assert page["total"] == 2
    assert all(r["matchPercentage"] >= 50 for r in page["results"])


@pytest.fixture
def seven_results(db, employer, job_posting):
    """A screening job holding seven results, five of them at 70 or above."""
    job, _ = screening_service.create_screening_job(db, employer, job_posting.id, [("a.pdf", b"%PDF")])
    for index, pct in enumerate([95, 90, 85, 80, 75, 60, 40]):
        db.add(ScreeningResult(
            screening_job_id=job.id,
            candidate_id=f"c{index}@example.com",
            candidate_email=f"c{index}@example.com",
            match_percentage=pct,
            skills_matched=[],
            skills_missing=[],
            strengths=[],
            improvement_areas=[],
            recommendations=[],
        ))
    db.commit()
    return job.id


def test_results_has_more_follows_filtered_total(client, employer_headers, seven_results):
    seen = []
    for offset, expected in [(0, True), (2, True), (4, False)]:
        page = client.get(
            f"/api/screening/results?screeningJobId={seven_results}&minMatch=70&limit=2&offset={offset}",
            headers=employer_headers
        ).json()
        assert page["total"] == 5
        assert page["hasMore"] is expected
        assert page["hasMore"] == (offset + 2 < page["total"])
        assert all(r["matchPercentage"] >= 70 for r in page["results"])
        seen.extend(r["id"] for r in page["results"])

    assert len(seen) == len(set(seen)) == 5


def test_identical_results_reads_are_equal(client, employer_headers, seven_results):
    url = f"/api/screening/results?screeningJobId={seven_results}&minMatch=50&limit=3&offset=1"
    first = client.get(url, headers=employer_headers)
    second = client.get(url, headers=employer_headers)

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()
    assert [r["rank"] for r in first.json()["results"]] == [2, 3, 4]


def test_results_sort_by_candidate(client, employer_headers, screened_job):
    page = client.get(
        f"/api/screening/results?screeningJobId={screened_job}&sortBy=candidate",
        headers=employer_headers
    ).json()
    assert [r["candidateId"] for r in page["results"]] == ["jane@example.com", "li@example.com", "raj@example.com"]
    assert all(r["rank"] is None for r in page["results"])


def test_results_validation(client, employer_headers, screened_job):
    assert client.get("/api/screening/results", headers=employer_headers).json()["detail"] == "Invalid screening job ID"
    bad_sort = client.get(f"/api/screening/results?screeningJobId={screened_job}&sortBy=salary", headers=employer_headers)
    assert bad_sort.status_code == 400
    bad_limit = client.get(f"/api/screening/results?screeningJobId={screened_job}&limit=0", headers=employer_headers)
    assert bad_limit.status_code == 400


def test_results_of_other_employer_not_found(client, screened_job, other_employer):
    response = client.get(f"/api/screening/results?screeningJobId={screened_job}", headers=auth_headers(other_employer))
    assert response.status_code == 404


# ============================================
# Analytics
# ============================================

def test_analytics(client, employer_headers, screened_job):
    body = client.get(f"/api/screening/analytics?screeningJobId={screened_job}", headers=employer_headers).json()

    assert body["totalScreened"] == 3
    assert body["strongMatches"] == 1
    assert body["moderateMatches"] == 1
    assert body["weakMatches"] == 1
    assert body["strongMatches"] + body["moderateMatches"] + body["weakMatches"] == body["totalScreened"]
    assert body["averageMatch"] == 66.7
    assert body["maxMatch"] == 100
    assert body["minMatch"] == 33
    assert body["distribution"] == {"strong": 33, "moderate": 33, "weak": 33}


def test_analytics_without_results(client, db, employer, employer_headers, job_posting):
    job, _ = screening_service.create_screening_job(db, employer, job_posting.id, [("a.pdf", b"%PDF")])

    body = client.get(f"/api/screening/analytics?screeningJobId={job.id}", headers=employer_headers).json()
    assert body["totalScreened"] == 0
    assert body["averageMatch"] == 0
    assert body["maxMatch"] is None
    assert body["distribution"] == {"strong": 0, "moderate": 0, "weak": 0}


# ============================================
# Shortlist
# ============================================

def test_shortlist(client, employer_headers, screened_job):
    response = client.put(
        "/api/screening/shortlist",
        json={"screeningJobId": screened_job, "candidateIds": ["raj@example.com", "jane@example.com", "raj@example.com"]},
        headers=employer_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["job"]["shortlistedCandidates"] == ["raj@example.com", "jane@example.com"]
    assert body["message"] == "2 candidates shortlisted"

    shortlisted = client.get(
        f"/api/screening/results?screeningJobId={screened_job}&status=shortlisted",
        headers=employer_headers
    ).json()
    assert shortlisted["total"] == 2
    assert all(r["status"] == "shortlisted" for r in shortlisted["results"])

    rest = client.get(
        f"/api/screening/results?screeningJobId={screened_job}&status=completed",
        headers=employer_headers
    ).json()
    assert [r["candidateId"] for r in rest["results"]] == ["li@example.com"]


def test_shortlist_replaces_previous(client, employer_headers, screened_job):
    url = "/api/screening/shortlist"
    client.put(url, json={"screeningJobId": screened_job, "candidateIds": ["jane@example.com"]}, headers=employer_headers)
    response = client.put(url, json={"screeningJobId": screened_job, "candidateIds": []}, headers=employer_headers)
    assert response.json()["job"]["shortlistedCandidates"] == []


def test_shortlist_rejects_unknown_candidate(client, employer_headers, screened_job):
    response = client.put(
        "/api/screening/shortlist",
        json={"screeningJobId": screened_job, "candidateIds": ["ghost@example.com"]},
        headers=employer_headers
    )
    assert response.status_code == 400
    assert "ghost@example.com" in response.json()["detail"]


# ============================================
# Export
# ============================================

def test_export_csv(client, employer_headers, screened_job):
    response = client.get(f"/api/screening/{screened_job}/export?format=csv", headers=employer_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert f'filename="screening-{screened_job}.csv"' in response.headers["content-disposition"]

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["Candidate ID", "Match %", "Skills Matched", "Skills Missing", "Strengths", "Areas for Improvement"]
    assert len(rows) == 4
    assert rows[1][:3] == ["jane@example.com", "100", "Python; Docker; PostgreSQL"]


def test_export_json_with_min_match(client, employer_headers, screened_job):
    response = client.get(f"/api/screening/{screened_job}/export?format=json&minMatch=50", headers=employer_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [r["rank"] for r in body["results"]] == [1, 2]
    assert "exportedAt" in body


def test_export_rejects_unknown_format(client, employer_headers, screened_job):
    response = client.get(f"/api/screening/{screened_job}/export?format=xlsx", headers=employer_headers)
    assert response.status_code == 400


# ============================================
# Cancel, retry, delete
# ============================================

def test_cancel_queued_job(client, db, employer, employer_headers, job_posting):
    # created without enqueueing, so every task is still queued
    job, task_ids = screening_service.create_screening_job(
        db, employer, job_posting.id, [("a.pdf", b"%PDF"), ("b.pdf", b"%PDF")]
    )

    response = client.post(f"/api/screening/{job.id}/cancel", headers=employer_headers)

    assert response.status_code == 200
    assert response.json() == {"screeningJobId": job.id, "affectedTasks": 2, "status": "cancelled"}

    db.expire_all()
    statuses = {t.status for t in db.query(ScreeningTask).filter(ScreeningTask.id.in_(task_ids)).all()}
    assert statuses == {"cancelled"}


def test_retry_failed_tasks(client, queue, employer_headers, job_posting):
    job_id = upload(client, employer_headers, job_posting.id, [("broken.pdf", b"not a pdf")]).json()["screeningJobId"]
    assert queue.join(timeout=30)

    status = client.get(f"/api/screening/{job_id}", headers=employer_headers).json()
    assert status["status"] == "failed"
    assert status["failedCount"] == 1

    response = client.post(f"/api/screening/{job_id}/retry", headers=employer_headers)
    assert response.status_code == 200
    assert response.json()["affectedTasks"] == 1
    assert queue.join(timeout=30)

    status = client.get(f"/api/screening/{job_id}", headers=employer_headers).json()
    assert status["status"] == "failed"
    assert status["processedCount"] == 1
    assert status["failedCount"] == 1


def test_retry_without_failures_conflicts(client, employer_headers, screened_job):
    response = client.post(f"/api/screening/{screened_job}/retry", headers=employer_headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "No failed tasks to retry"


def test_delete_screening_job(client, db, employer_headers, screened_job):
    response = client.delete(f"/api/screening/{screened_job}", headers=employer_headers)
    assert response.status_code == 204

    assert client.get(f"/api/screening/{screened_job}", headers=employer_headers).status_code == 404
    assert db.query(ScreeningJob).filter(ScreeningJob.id == screened_job).first() is None
    assert db.query(ScreeningTask).filter(ScreeningTask.screening_job_id == screened_job).count() == 0


def test_delete_other_employers_job_not_found(client, screened_job, other_employer):
    response = client.delete(f"/api/screening/{screened_job}", headers=auth_headers(other_employer))
    assert response.status_code == 404


def test_pdf_without_email_gets_digest_candidate_id(client, queue, employer_headers, job_posting):
    resume = ("anon.pdf", make_pdf("Anonymous\nSkills: Python"))
    job_id = upload(client, employer_headers, job_posting.id, [resume]).json()["screeningJobId"]
    assert queue.join(timeout=30)

    page = client.get(f"/api/screening/results?screeningJobId={job_id}", headers=employer_headers).json()
    assert page["results"][0]["candidateId"].startswith("resume-")
    assert page["results"][0]["candidateEmail"] is None
