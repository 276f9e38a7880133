"""Generated document content and the files it was written from."""

from sqlalchemy import Column, Index, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base
from ._time import utcnow


class GeneratedDocument(Base):
    """Content produced for one completed catalogue node. Never updated in place."""

    __tablename__ = "generated_documents"
    __table_args__ = (
        Index("ix_generated_documents_node_id", "catalogue_node_id"),
    )

    id = Column(String(50), primary_key=True)
    catalogue_node_id = Column(
        String(50), ForeignKey("catalogue_nodes.id", ondelete="CASCADE"), nullable=False
    )

    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    catalogue_node = relationship("CatalogueNode", back_populates="generated_documents")
    sources = relationship(
        "GeneratedDocumentSource", back_populates="generated_document",
        cascade="all, delete-orphan", passive_deletes=True,
    )


class GeneratedDocumentSource(Base):
    """A repository file consulted while writing a generated document."""

    __tablename__ = "generated_document_sources"
    __table_args__ = (
        Index("ix_generated_document_sources_doc_id", "generated_document_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    generated_document_id = Column(
        String(50), ForeignKey("generated_documents.id", ondelete="CASCADE"), nullable=False
    )

    address = Column(Text, nullable=False)  # path relative to the working copy
    name = Column(String(255), nullable=False)  # file name

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    generated_document = relationship("GeneratedDocument", back_populates="sources")
