"""Queries over repository jobs and their document records."""

import uuid
from typing import List, Optional

from sqlalchemy import case

from ..exceptions import JobNotFoundError
from ..models import RepositoryJob, DocumentRecord, JobStatus
from .base import BaseRepository


class JobRepository(BaseRepository[RepositoryJob]):
    model_class = RepositoryJob
    not_found_error = JobNotFoundError

    def next_runnable(self) -> Optional[RepositoryJob]:
        """Return the job the scheduler should run next.

        Interrupted jobs (status processing) go before pending ones; ties
        are broken by creation time, then id.
        """
        processing_first = case((RepositoryJob.status == JobStatus.PROCESSING, 0), else_=1)
        return (
            self.db.query(RepositoryJob)
            .filter(RepositoryJob.status.in_([JobStatus.PENDING, JobStatus.PROCESSING]))
            .order_by(processing_first, RepositoryJob.created_at.asc(), RepositoryJob.id.asc())
            .first()
        )

    def list_by_status(self, status: str) -> List[RepositoryJob]:
        return (
            self.db.query(RepositoryJob)
            .filter(RepositoryJob.status == status)
            .order_by(RepositoryJob.created_at.asc())
            .all()
        )

    # ------------------------------------------------------------------
    # Document records
    # ------------------------------------------------------------------

    def get_document(self, job_id: str) -> Optional[DocumentRecord]:
        return (
            self.db.query(DocumentRecord)
            .filter(DocumentRecord.job_id == job_id)
            .order_by(DocumentRecord.created_at.asc())
            .first()
        )

    def get_or_create_document(self, job_id: str, git_path: str) -> DocumentRecord:
        """Reuse the job's document record or create it on first processing."""
        document = self.get_document(job_id)
        if document is None:
            document = DocumentRecord(
                id=str(uuid.uuid4()),
                job_id=job_id,
                git_path=git_path,
                status=JobStatus.PENDING,
            )
            self.db.add(document)
        else:
            document.git_path = git_path
        self.db.flush()
        return document

    def delete_documents(self, job_id: str) -> int:
        """Delete every document record of a job (dependents cascade)."""
        return (
            self.db.query(DocumentRecord)
            .filter(DocumentRecord.job_id == job_id)
            .delete(synchronize_session=False)
        )
