"""Catalogue node model: one entry of a job's documentation outline."""

from sqlalchemy import Column, Index, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from ..database import Base
from ._time import utcnow


class CatalogueNode(Base):
    """Catalogue forest row. parent_id NULL marks a root."""

    __tablename__ = "catalogue_nodes"
    __table_args__ = (
        Index("ix_catalogue_nodes_job_id", "job_id"),
        Index("ix_catalogue_nodes_document_id", "document_id"),
        Index("ix_catalogue_nodes_parent_id", "parent_id"),
    )

    id = Column(String(50), primary_key=True)

    # Foreign keys
    job_id = Column(String(50), ForeignKey("repository_jobs.id", ondelete="CASCADE"), nullable=False)
    document_id = Column(String(50), ForeignKey("document_records.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(String(50), ForeignKey("catalogue_nodes.id", ondelete="CASCADE"), nullable=True)

    name = Column(String(255), nullable=False)
    title = Column(String(255), nullable=False)  # slug, whitespace stripped
    prompt = Column(Text, nullable=False, default=" ")
    dependent_files = Column(JSON, nullable=False, default=list)
    sort_order = Column(Integer, nullable=False, default=0)
    is_completed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    document = relationship("DocumentRecord", back_populates="catalogue_nodes")
    generated_documents = relationship(
        "GeneratedDocument", back_populates="catalogue_node",
        cascade="all, delete-orphan", passive_deletes=True,
    )
