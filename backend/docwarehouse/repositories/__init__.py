"""Data access layer."""

from .base import BaseRepository
from .job_repository import JobRepository
from .catalogue_repository import CatalogueRepository, PlanNode, CatalogueNodeSnapshot
from .document_repository import DocumentRepository

__all__ = [
    "BaseRepository", "JobRepository",
    "CatalogueRepository", "PlanNode", "CatalogueNodeSnapshot",
    "DocumentRepository",
]
