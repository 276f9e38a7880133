"""Service for managing repository documentation jobs."""

import uuid
import logging
from typing import Optional, List
from sqlalchemy.orm import Session

from ..models import RepositoryJob, CatalogueNode, CommitRecord, MiniMap, JobStatus, SourceKind
from ..repositories import JobRepository

logger = logging.getLogger(__name__)

# Stored error text is capped so a huge traceback cannot bloat the row.
MAX_ERROR_LENGTH = 2000


class JobService:
    """
    Manages the lifecycle of repository documentation jobs.

    Jobs are submitted by callers, picked up by the scheduler and tracked
    through pending -> processing -> completed/failed transitions.
    Only the scheduler moves a job forward; resubmission is the only way
    back to pending.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = JobRepository(db)

    def submit(
        self,
        address: str,
        kind: str = SourceKind.GIT,
        branch: Optional[str] = None,
        name: Optional[str] = None,
        organization_name: Optional[str] = None,
        git_username: Optional[str] = None,
        git_password: Optional[str] = None,
    ) -> RepositoryJob:
        """
        Create a new pending job.

        Args:
            address: Clone URL for git jobs, local directory for file jobs
            kind: "git" or "file"
            branch: Branch to check out (git jobs; default branch when empty)

        Returns:
            The created RepositoryJob
        """
        job = RepositoryJob(
            id=str(uuid.uuid4()),
            address=address,
            kind=kind,
            branch=branch,
            name=name,
            organization_name=organization_name,
            git_username=git_username,
            git_password=git_password,
            status=JobStatus.PENDING,
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)

        logger.info(f"Submitted job {job.id} for {address} ({kind})")
        return job

    def claim_next(self) -> Optional[RepositoryJob]:
        """
        Pick the next job and mark it processing.

        A job left in processing by an interrupted worker is resumed before
        any pending job.

        Returns:
            The claimed job, or None if nothing is runnable
        """
        job = self.repo.next_runnable()
        if not job:
            return None

        job.status = JobStatus.PROCESSING
        self.db.commit()
        self.db.refresh(job)

        logger.info(f"Claimed job {job.id} for {job.address}")
        return job

    def complete(self, job_id: str) -> RepositoryJob:
        """Mark a job and its document record completed, clearing any error."""
        job = self.repo.get_by_id(job_id)

        job.status = JobStatus.COMPLETED
        job.error = None
        document = self.repo.get_document(job_id)
        if document is not None:
            document.status = JobStatus.COMPLETED
        self.db.commit()
        self.db.refresh(job)

        logger.info(f"Job {job_id} completed successfully")
        return job

    def fail(self, job_id: str, error_message: str) -> RepositoryJob:
        """
        Mark a job failed and drop all of its partial output.

        Every DocumentRecord of the job is deleted; catalogue nodes,
        generated documents, sources and overview go with it.

        Args:
            job_id: The job to mark as failed
            error_message: Description of what went wrong (never empty)
        """
        job = self.repo.get_by_id(job_id)

        message = (error_message or "").strip() or "Unknown error"
        job.status = JobStatus.FAILED
        job.error = message[:MAX_ERROR_LENGTH]
        removed = self.repo.delete_documents(job_id)
        self.db.commit()
        self.db.refresh(job)

        logger.warning(f"Job {job_id} failed ({removed} document record(s) removed): {job.error}")
        return job

    def resubmit(self, job_id: str) -> RepositoryJob:
        """Reset a failed (or completed) job to pending so it runs again."""
        job = self.repo.get_by_id(job_id)
        if job.status == JobStatus.PROCESSING:
            raise ValueError(f"Job {job_id} is currently processing")

        job.status = JobStatus.PENDING
        job.error = None
        self.db.commit()
        self.db.refresh(job)

        logger.info(f"Job {job_id} resubmitted")
        return job

    def reset(self, job_id: str) -> RepositoryJob:
        """
        Hard reset: delete all generated state and queue the job again.

        Removes document records (and their cascade), catalogue nodes,
        changelog records and the mini map, clears cached stage outputs.
        """
        job = self.repo.get_by_id(job_id)

        self.repo.delete_documents(job_id)
        self.db.query(CatalogueNode).filter(CatalogueNode.job_id == job_id).delete(
            synchronize_session=False
        )
        self.db.query(CommitRecord).filter(CommitRecord.job_id == job_id).delete(
            synchronize_session=False
        )
        self.db.query(MiniMap).filter(MiniMap.job_id == job_id).delete(
            synchronize_session=False
        )
        job.optimized_directory_structure = None
        job.readme = None
        job.classification = None
        job.status = JobStatus.PENDING
        job.error = None
        self.db.commit()
        self.db.refresh(job)

        logger.info(f"Job {job_id} reset")
        return job

    def get_job(self, job_id: str) -> Optional[RepositoryJob]:
        """Get a specific job by ID."""
        return self.repo.get_by_id_optional(job_id)

    def list_jobs(self, status: str) -> List[RepositoryJob]:
        return self.repo.list_by_status(status)
