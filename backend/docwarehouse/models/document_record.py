"""Document record model: the per-job anchor for all generated state."""

from sqlalchemy import Column, Index, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base
from ._time import utcnow


class DocumentRecord(Base):
    """
    One row per job, created the first time the job is processed.

    Deleting it removes the catalogue, generated documents, sources and
    overview that hang off it (ON DELETE CASCADE).
    """

    __tablename__ = "document_records"
    __table_args__ = (
        Index("ix_document_records_job_id", "job_id"),
    )

    id = Column(String(50), primary_key=True)
    job_id = Column(String(50), ForeignKey("repository_jobs.id", ondelete="CASCADE"), nullable=False)

    # Local working copy
    git_path = Column(Text, nullable=True)

    # Allowed values: pending, processing, completed, failed
    status = Column(String(20), nullable=False, default="pending")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_update = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    job = relationship("RepositoryJob", back_populates="documents")
    catalogue_nodes = relationship(
        "CatalogueNode", back_populates="document",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    overview = relationship(
        "DocumentOverview", back_populates="document", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True,
    )
