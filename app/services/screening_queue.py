"""
Background processing of uploaded resumes.

Every resume is a ScreeningTask row moving through
queued -> running -> done | failed (or cancelled before it starts).
The queue owns a thread pool; it is built once at application start and
shut down at stop. Each worker opens its own database session.
"""
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import (
    SCREENING_MAX_ATTEMPTS,
    SCREENING_MAX_WORKERS,
    SCREENING_RETRY_BASE_DELAY,
)
from app.core.errors import ConflictError, NotFoundError
from app.db.models.job_posting import JobPosting
from app.db.models.screening_job import (
    JOB_CANCELLED,
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_PENDING,
    JOB_PROCESSING,
    ScreeningJob,
)
from app.db.models.screening_result import ScreeningResult
from app.db.models.screening_task import (
    TASK_CANCELLED,
    TASK_DONE,
    TASK_FAILED,
    TASK_QUEUED,
    TASK_RUNNING,
    ScreeningTask,
)
from app.services.resume_analysis_service import ResumeScreener
from app.services.resume_parser import (
    ResumeParseError,
    candidate_id_for,
    extract_text_from_pdf,
    parse_resume,
)

logger = logging.getLogger(__name__)


class ScreeningTaskQueue:
    """
    Thread pool backed queue of ScreeningTask ids.

    Only work that is still outstanding is tracked: a future is forgotten
    once it finishes, and a retry waits on a timer rather than on a pool
    thread.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        screener: ResumeScreener,
        max_workers: int = SCREENING_MAX_WORKERS,
        max_attempts: int = SCREENING_MAX_ATTEMPTS,
        retry_base_delay: float = SCREENING_RETRY_BASE_DELAY,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self.session_factory = session_factory
        self.screener = screener
        self.max_attempts = max(1, max_attempts)
        self.retry_base_delay = retry_base_delay
        self._timer_factory = timer_factory
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="screening")
        self._futures: Dict[int, Future] = {}
        self._timers: Dict[int, threading.Timer] = {}
        # re-entrant: a future that is already done runs its callback on add
        self._lock = threading.RLock()
        self._closed = False
        logger.info(f"Screening queue started: workers={max_workers}, max_attempts={self.max_attempts}")

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def enqueue(self, task_ids: Iterable[int]) -> None:
        for task_id in task_ids:
            with self._lock:
                self._submit_locked(task_id)

    def _submit_locked(self, task_id: int) -> None:
        if self._closed:
            logger.warning(f"Queue closed, task_id={task_id} left queued")
            return
        future = self._executor.submit(self._run, task_id)
        self._futures[task_id] = future
        future.add_done_callback(lambda f, t=task_id: self._discard(t, f))

    def _discard(self, task_id: int, future: Future) -> None:
        with self._lock:
            # a retry may already have replaced this entry
            if self._futures.get(task_id) is future:
                del self._futures[task_id]

    def _submit_later(self, task_id: int, delay: float) -> None:
        with self._lock:
            if delay <= 0:
                self._submit_locked(task_id)
                return
            if self._closed:
                logger.warning(f"Queue closed, retry of task_id={task_id} dropped")
                return
            timer = self._timer_factory(delay, self._fire_timer, args=(task_id,))
            timer.daemon = True
            self._timers[task_id] = timer
            timer.start()

    def _fire_timer(self, task_id: int) -> None:
        with self._lock:
            if self._timers.pop(task_id, None) is not None:
                self._submit_locked(task_id)

    def _run(self, task_id: int) -> Optional[str]:
        try:
            return self.process_task(task_id)
        except Exception:
            logger.exception(f"Screening task crashed: task_id={task_id}")
            raise

    def outstanding(self) -> int:
        """Tasks that are submitted, running or waiting for a retry."""
        with self._lock:
            return len(self._futures) + len(self._timers)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait until no submitted work or pending retry is left. False on timeout."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                pending = [f for f in self._futures.values() if not f.done()]
                timers = list(self._timers.values())
            if not pending and not timers:
                return True
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                return False
            if pending:
                wait(pending, timeout=remaining)
            else:
                timers[0].join(timeout=remaining)

    def shutdown(self, wait_for_tasks: bool = True) -> None:
        """
        Stop the queue. With wait_for_tasks, outstanding work and pending
        retries run to completion first; otherwise pending retries are
        dropped and their tasks stay queued in the database.
        """
        if wait_for_tasks:
            self.join()
        with self._lock:
            self._closed = True
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        self._executor.shutdown(wait=wait_for_tasks, cancel_futures=not wait_for_tasks)
        logger.info(f"Screening queue stopped: dropped_retries={len(timers)}")

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def process_task(self, task_id: int) -> Optional[str]:
        """
        Screen one resume. Returns the task's resulting status.

        Unreadable PDFs and duplicate candidates fail immediately; any other
        error is retried with exponential backoff until max_attempts.
        """
        db = self.session_factory()
        try:
            task = db.query(ScreeningTask).filter(ScreeningTask.id == task_id).first()
            if task is None:
                logger.warning(f"Screening task vanished: task_id={task_id}")
                return None
            if task.status != TASK_QUEUED:
                logger.info(f"Skipping task_id={task_id} in status {task.status}")
                return task.status

            job = db.query(ScreeningJob).filter(ScreeningJob.id == task.screening_job_id).first()
            if job is None or job.status == JOB_CANCELLED:
                task.status = TASK_CANCELLED
                task.finished_at = datetime.utcnow()
                db.commit()
                return TASK_CANCELLED

            posting = db.query(JobPosting).filter(JobPosting.id == job.job_id).first()
            if posting is None:
                return self._fail(db, task_id, "Job posting not found")

            job_id = job.id
            if not self._claim(db, task_id, job_id):
                db.rollback()
                current = db.query(ScreeningTask.status).filter(ScreeningTask.id == task_id).scalar()
                logger.info(f"task_id={task_id} left the queue before it started, status={current}")
                return current
            db.commit()

            attempt = task.attempts
            content = task.content or b""
            filename = task.filename
            required_skills = list(posting.required_skills or [])
            vocabulary = required_skills + list(posting.nice_to_have_skills or [])
            title, description = posting.title, posting.description or ""

            try:
                text = extract_text_from_pdf(content)
                profile = parse_resume(text, vocabulary)
                analysis = self.screener.screen(
                    resume_text=text,
                    candidate_skills=profile.skills,
                    job_title=title,
                    job_description=description,
                    required_skills=required_skills,
                )

                if not self._job_exists(db, job_id):
                    db.rollback()
                    logger.info(f"Screening job {job_id} deleted while task_id={task_id} ran, result discarded")
                    return TASK_CANCELLED

                db.add(ScreeningResult(
                    screening_job_id=job_id,
                    task_id=task_id,
                    candidate_id=candidate_id_for(profile.email, content),
                    candidate_email=profile.email,
                    resume_filename=filename,
                    match_percentage=analysis.match_percentage,
                    skills_matched=analysis.skills_matched,
                    skills_missing=analysis.skills_missing,
                    strengths=analysis.strengths,
                    improvement_areas=analysis.improvement_areas,
                    recommendations=analysis.recommendations,
                ))
                task.status = TASK_DONE
                task.content = None
                task.error = None
                task.finished_at = datetime.utcnow()
                self._count_processed(db, job_id, failed=False)
                db.commit()

                logger.info(
                    f"Resume screened: screening_job_id={job_id}, task_id={task_id}, "
                    f"match={analysis.match_percentage}, ai={analysis.used_ai}"
                )
                return TASK_DONE

            except ResumeParseError as e:
                db.rollback()
                return self._fail(db, task_id, str(e))
            except IntegrityError:
                db.rollback()
                if not self._job_exists(db, job_id):
                    logger.info(f"Screening job {job_id} deleted while task_id={task_id} ran, result discarded")
                    return TASK_CANCELLED
                return self._fail(db, task_id, "Duplicate candidate in screening job")
            except Exception as e:
                db.rollback()
                if attempt < self.max_attempts:
                    return self._schedule_retry(db, task_id, attempt, e)
                logger.error(f"Screening task failed after {attempt} attempts: task_id={task_id}", exc_info=True)
                return self._fail(db, task_id, f"{type(e).__name__}: {e}")
        finally:
            db.close()
            self._finalize_job_for_task(task_id)

    def _claim(self, db: Session, task_id: int, screening_job_id: int) -> bool:
        """Move the task queued -> running; False if a cancel got there first."""
        claimed = db.query(ScreeningTask).filter(
            ScreeningTask.id == task_id,
            ScreeningTask.status == TASK_QUEUED
        ).update({
            ScreeningTask.status: TASK_RUNNING,
            ScreeningTask.attempts: ScreeningTask.attempts + 1,
            ScreeningTask.started_at: datetime.utcnow(),
        }, synchronize_session=False)
        if not claimed:
            return False

        db.query(ScreeningJob).filter(
            ScreeningJob.id == screening_job_id,
            ScreeningJob.status == JOB_PENDING
        ).update({ScreeningJob.status: JOB_PROCESSING}, synchronize_session=False)
        return True

    @staticmethod
    def _job_exists(db: Session, screening_job_id: int) -> bool:
        return db.query(ScreeningJob.id).filter(ScreeningJob.id == screening_job_id).first() is not None

    def _schedule_retry(self, db: Session, task_id: int, attempt: int, error: Exception) -> str:
        task = db.query(ScreeningTask).filter(ScreeningTask.id == task_id).first()
        if task is None:
            return TASK_CANCELLED
        task.status = TASK_QUEUED
        task.error = f"{type(error).__name__}: {error}"
        db.commit()

        delay = self.retry_base_delay * (2 ** (attempt - 1))
        logger.warning(f"Retrying task_id={task_id} in {delay:.1f}s (attempt {attempt}/{self.max_attempts}): {error}")
        self._submit_later(task_id, delay)
        return TASK_QUEUED

    def _fail(self, db: Session, task_id: int, reason: str) -> str:
        task = db.query(ScreeningTask).filter(ScreeningTask.id == task_id).first()
        if task is None:
            return TASK_FAILED
        task.status = TASK_FAILED
        task.error = reason
        task.finished_at = datetime.utcnow()
        self._count_processed(db, task.screening_job_id, failed=True)
        db.commit()
        logger.warning(f"Screening task failed: task_id={task_id}, reason={reason}")
        return TASK_FAILED

    @staticmethod
    def _count_processed(db: Session, screening_job_id: int, failed: bool) -> None:
        values = {ScreeningJob.processed_count: ScreeningJob.processed_count + 1}
        if failed:
            values[ScreeningJob.failed_count] = ScreeningJob.failed_count + 1
        db.query(ScreeningJob).filter(
            ScreeningJob.id == screening_job_id,
            ScreeningJob.processed_count < ScreeningJob.total_resumes
        ).update(values, synchronize_session=False)

    def _finalize_job_for_task(self, task_id: int) -> None:
        db = self.session_factory()
        try:
            task = db.query(ScreeningTask).filter(ScreeningTask.id == task_id).first()
            if task is None:
                return
            job = db.query(ScreeningJob).filter(ScreeningJob.id == task.screening_job_id).first()
            if job is None or job.status not in (JOB_PENDING, JOB_PROCESSING):
                return
            if job.processed_count < job.total_resumes:
                return

            job.status = JOB_FAILED if job.failed_count >= job.total_resumes else JOB_COMPLETED
            db.commit()
            logger.info(
                f"Screening job finished: screening_job_id={job.id}, status={job.status}, "
                f"processed={job.processed_count}, failed={job.failed_count}"
            )
        except Exception:
            db.rollback()
            logger.exception(f"Could not finalize screening job for task_id={task_id}")
        finally:
            db.close()

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def cancel(self, screening_job_id: int) -> int:
        """Cancel queued tasks of a job. Running tasks are left to finish."""
        db = self.session_factory()
        try:
            job = db.query(ScreeningJob).filter(ScreeningJob.id == screening_job_id).first()
            if job is None:
                raise NotFoundError("Screening job not found")

            tasks = db.query(ScreeningTask).filter(
                ScreeningTask.screening_job_id == screening_job_id,
                ScreeningTask.status == TASK_QUEUED
            ).all()
            now = datetime.utcnow()
            for task in tasks:
                task.status = TASK_CANCELLED
                task.finished_at = now
            if not job.is_terminal:
                job.status = JOB_CANCELLED
            db.commit()
            cancelled_ids = [task.id for task in tasks]
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        with self._lock:
            for task_id in cancelled_ids:
                timer = self._timers.pop(task_id, None)
                if timer is not None:
                    timer.cancel()
                future = self._futures.get(task_id)
                if future is not None:
                    future.cancel()

        logger.info(f"Screening job cancelled: screening_job_id={screening_job_id}, tasks={len(cancelled_ids)}")
        return len(cancelled_ids)

    def retry_failed(self, screening_job_id: int) -> List[int]:
        """Put a job's failed tasks back on the queue."""
        db = self.session_factory()
        try:
            job = db.query(ScreeningJob).filter(ScreeningJob.id == screening_job_id).first()
            if job is None:
                raise NotFoundError("Screening job not found")
            if job.status == JOB_CANCELLED:
                raise ConflictError("Cancelled screening jobs cannot be retried")

            tasks = db.query(ScreeningTask).filter(
                ScreeningTask.screening_job_id == screening_job_id,
                ScreeningTask.status == TASK_FAILED
            ).all()
            if not tasks:
                raise ConflictError("No failed tasks to retry")

            for task in tasks:
                task.status = TASK_QUEUED
                task.attempts = 0
                task.error = None
                task.started_at = None
                task.finished_at = None
            job.processed_count = max(0, job.processed_count - len(tasks))
            job.failed_count = max(0, job.failed_count - len(tasks))
            job.status = JOB_PROCESSING
            db.commit()
            task_ids = [task.id for task in tasks]
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        self.enqueue(task_ids)
        logger.info(f"Retrying failed tasks: screening_job_id={screening_job_id}, tasks={len(task_ids)}")
        return task_ids
