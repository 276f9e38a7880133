"""Generated documents, their sources and the per-job side outputs."""

import uuid
from typing import Iterable, List, Optional

from ..models import (
    GeneratedDocument, GeneratedDocumentSource,
    DocumentOverview, CommitRecord, MiniMap,
)
from .base import BaseRepository


class DocumentRepository(BaseRepository[GeneratedDocument]):
    model_class = GeneratedDocument

    def add_generated(
        self, catalogue_node_id: str, title: str, content: str, source_paths: Iterable[str]
    ) -> GeneratedDocument:
        """Insert a generated document and bulk-insert its file references.

        A previous document for the same node is replaced. Caller commits.
        """
        (
            self.db.query(GeneratedDocument)
            .filter(GeneratedDocument.catalogue_node_id == catalogue_node_id)
            .delete(synchronize_session=False)
        )
        doc = GeneratedDocument(
            id=str(uuid.uuid4()),
            catalogue_node_id=catalogue_node_id,
            title=title,
            content=content,
        )
        self.db.add(doc)
        self.db.flush()

        sources = []
        for path in source_paths:
            normalized = path.replace("\\", "/")
            sources.append({
                "generated_document_id": doc.id,
                "address": normalized,
                "name": normalized.rsplit("/", 1)[-1],
            })
        if sources:
            self.db.bulk_insert_mappings(GeneratedDocumentSource, sources)
        return doc

    def for_node(self, catalogue_node_id: str) -> Optional[GeneratedDocument]:
        return (
            self.db.query(GeneratedDocument)
            .filter(GeneratedDocument.catalogue_node_id == catalogue_node_id)
            .first()
        )

    def sources_for(self, generated_document_id: str) -> List[GeneratedDocumentSource]:
        return (
            self.db.query(GeneratedDocumentSource)
            .filter(GeneratedDocumentSource.generated_document_id == generated_document_id)
            .order_by(GeneratedDocumentSource.id.asc())
            .all()
        )

    # ------------------------------------------------------------------
    # Overview
    # ------------------------------------------------------------------

    def get_overview(self, document_id: str) -> Optional[DocumentOverview]:
        return (
            self.db.query(DocumentOverview)
            .filter(DocumentOverview.document_id == document_id)
            .first()
        )

    def add_overview(self, document_id: str, title: str, content: str) -> DocumentOverview:
        overview = DocumentOverview(document_id=document_id, title=title, content=content)
        self.db.add(overview)
        return overview

    # ------------------------------------------------------------------
    # Changelog and mini map (keyed by job)
    # ------------------------------------------------------------------

    def replace_commit_records(self, job_id: str, records: List[CommitRecord]) -> None:
        self.db.query(CommitRecord).filter(CommitRecord.job_id == job_id).delete(
            synchronize_session=False
        )
        self.db.add_all(records)

    def list_commit_records(self, job_id: str) -> List[CommitRecord]:
        return (
            self.db.query(CommitRecord)
            .filter(CommitRecord.job_id == job_id)
            .order_by(CommitRecord.id.asc())
            .all()
        )

    def replace_mini_map(self, job_id: str, value: str) -> MiniMap:
        self.db.query(MiniMap).filter(MiniMap.job_id == job_id).delete(
            synchronize_session=False
        )
        mini_map = MiniMap(job_id=job_id, value=value)
        self.db.add(mini_map)
        return mini_map

    def get_mini_map(self, job_id: str) -> Optional[MiniMap]:
        return self.db.query(MiniMap).filter(MiniMap.job_id == job_id).first()
