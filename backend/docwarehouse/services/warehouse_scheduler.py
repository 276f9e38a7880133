"""Single-worker job scheduler.

Polls for runnable jobs, processes one at a time and records the outcome
on the job. A job failure never stops the loop: the error is stored, the
job's partial output is deleted and polling resumes after a short pause.
"""

import logging
import threading
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.logging_config import job_id_var, redact
from ..database import SessionLocal
from ..exceptions import WarehouseException
from ..models import JobStatus
from .job_service import JobService
from .pipeline import DocumentPipeline, DocumentProcessingContext
from .source_acquisition import GitSourceAcquirer, SourceAcquirer

logger = logging.getLogger(__name__)


def describe_error(error: BaseException) -> str:
    """Non-empty, secret-free error text for the job row."""
    text = f"{type(error).__name__}: {error}".strip()
    return redact(text)


class WarehouseScheduler:
    """Polling loop over repository jobs.

    ``stop()`` is cooperative: it is observed before the next poll and
    interrupts the idle and backoff waits, while a running job is left to
    finish or fail on its own.
    """

    def __init__(
        self,
        pipeline: DocumentPipeline,
        acquirer: Optional[SourceAcquirer] = None,
        session_factory: Callable[[], Session] = SessionLocal,
        poll_interval: Optional[float] = None,
        failure_backoff: Optional[float] = None,
    ) -> None:
        self.pipeline = pipeline
        self.acquirer = acquirer or GitSourceAcquirer()
        self.session_factory = session_factory
        self.poll_interval = settings.poll_interval_seconds if poll_interval is None else poll_interval
        self.failure_backoff = (
            settings.failure_backoff_seconds if failure_backoff is None else failure_backoff
        )
        self._stop = threading.Event()

    # ------------------------------------------------------------------
    # Loop control
    # ------------------------------------------------------------------

    def stop(self) -> None:
        logger.info("Scheduler stop requested")
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def _wait(self, seconds: float) -> None:
        if seconds > 0:
            self._stop.wait(seconds)

    def run(self) -> None:
        """Poll and process jobs until ``stop()`` is called."""
        logger.info("Scheduler started, polling every %ss", self.poll_interval)
        while not self._stop.is_set():
            try:
                processed = self.run_once()
            except Exception:
                logger.exception("Scheduler error while polling")
                self._wait(self.poll_interval)
                continue
            if not processed:
                self._wait(self.poll_interval)
        logger.info("Scheduler stopped")

    def run_once(self) -> bool:
        """Claim and process the next job. Returns False when none was runnable."""
        db = self.session_factory()
        try:
            job = JobService(db).claim_next()
            job_id = job.id if job else None
        finally:
            db.close()

        if job_id is None:
            return False
        self.process_job(job_id)
        return True

    # ------------------------------------------------------------------
    # One job
    # ------------------------------------------------------------------

    def process_job(self, job_id: str) -> str:
        """Run one job to completion or failure; returns the final status."""
        token = job_id_var.set(job_id)
        db = self.session_factory()
        service = JobService(db)
        try:
            try:
                self._run_pipeline(db, service, job_id)
                service.complete(job_id)
                return JobStatus.COMPLETED
            except Exception as e:
                extra = {"error": e.to_dict()} if isinstance(e, WarehouseException) else {}
                logger.exception("Job %s failed", job_id, extra=extra)
                db.rollback()
                self._record_failure(service, job_id, e)
                self._wait(self.failure_backoff)
                return JobStatus.FAILED
        finally:
            db.close()
            job_id_var.reset(token)

    def _run_pipeline(self, db: Session, service: JobService, job_id: str) -> None:
        job = service.repo.get_by_id(job_id)
        job.status = JobStatus.PROCESSING
        logger.info("Processing job %s (%s: %s)", job.id, job.kind, job.address)

        source = self.acquirer.acquire(job)
        job.name = source.repository_name or job.name
        job.organization_name = source.organization_name or job.organization_name
        job.branch = source.branch or job.branch
        job.version = source.version or job.version

        document = service.repo.get_or_create_document(job.id, source.local_path)
        document.status = JobStatus.PROCESSING
        db.commit()

        ctx = DocumentProcessingContext(
            job=job,
            document=document,
            working_path=source.local_path,
            repository_url=job.address,
            branch=job.branch or "",
            session=db,
        )
        self.pipeline.run(ctx)

    def _record_failure(self, service: JobService, job_id: str, error: Exception) -> None:
        try:
            service.fail(job_id, describe_error(error))
        except Exception:
            service.db.rollback()
            logger.exception("Could not record failure of job %s", job_id)
