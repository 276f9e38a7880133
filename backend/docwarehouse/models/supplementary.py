"""Per-job side outputs: project overview, changelog and knowledge mini map."""

from sqlalchemy import Column, Index, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base
from ._time import utcnow


class DocumentOverview(Base):
    """Project overview, generated once per document record."""

    __tablename__ = "document_overviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(
        String(50), ForeignKey("document_records.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    title = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    document = relationship("DocumentRecord", back_populates="overview")


class CommitRecord(Base):
    """Changelog summary built from the repository's recent commits."""

    __tablename__ = "commit_records"
    __table_args__ = (
        Index("ix_commit_records_job_id", "job_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(String(50), ForeignKey("repository_jobs.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    author = Column(String(255), nullable=True)  # latest committer

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class MiniMap(Base):
    """Serialized OutlineNode tree (JSON text) for a job."""

    __tablename__ = "mini_maps"
    __table_args__ = (
        Index("ix_mini_maps_job_id", "job_id", unique=True),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(String(50), ForeignKey("repository_jobs.id", ondelete="CASCADE"), nullable=False)
    value = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
