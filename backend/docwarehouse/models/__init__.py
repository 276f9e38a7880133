"""Database models."""

from .repository_job import RepositoryJob, JobStatus, SourceKind
from .document_record import DocumentRecord
from .catalogue_node import CatalogueNode
from .generated_document import GeneratedDocument, GeneratedDocumentSource
from .supplementary import DocumentOverview, CommitRecord, MiniMap

__all__ = [
    "RepositoryJob", "JobStatus", "SourceKind",
    "DocumentRecord", "CatalogueNode",
    "GeneratedDocument", "GeneratedDocumentSource",
    "DocumentOverview", "CommitRecord", "MiniMap",
]
