"""Repository job model: one documentation request for one source repository."""

from sqlalchemy import Column, Index, String, Text, DateTime
from sqlalchemy.orm import relationship
from ..database import Base
from ._time import utcnow


class JobStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SourceKind:
    GIT = "git"
    FILE = "file"


class RepositoryJob(Base):
    """
    A repository queued for documentation.

    Status transitions: pending -> processing -> completed | failed
    Failed jobs stay failed until resubmitted (reset to pending).
    """

    __tablename__ = "repository_jobs"
    __table_args__ = (
        Index("ix_repository_jobs_status", "status"),
        Index("ix_repository_jobs_created_at", "created_at"),
    )

    # Primary key (UUID format)
    id = Column(String(50), primary_key=True)

    # Identity, filled in from the acquired source when available
    name = Column(String(255), nullable=True)
    organization_name = Column(String(255), nullable=True)

    # Where to fetch from: clone URL for git jobs, local directory for file jobs
    address = Column(Text, nullable=False)
    branch = Column(String(255), nullable=True)
    # Allowed values: git, file
    kind = Column(String(20), nullable=False, default=SourceKind.GIT)

    # Optional git credentials
    git_username = Column(String(255), nullable=True)
    git_password = Column(String(255), nullable=True)

    # Job lifecycle
    # Allowed values: pending, processing, completed, failed
    status = Column(String(20), nullable=False, default=JobStatus.PENDING)
    error = Column(Text, nullable=True)

    # Resolved commit SHA of the working copy
    version = Column(String(64), nullable=True)

    # Stage outputs cached on the job
    optimized_directory_structure = Column(Text, nullable=True)
    readme = Column(Text, nullable=True)
    classification = Column(String(50), nullable=True)

    # Timestamps (Python-side so creation order is stable within a second)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    documents = relationship(
        "DocumentRecord", back_populates="job",
        cascade="all, delete-orphan", passive_deletes=True,
    )
