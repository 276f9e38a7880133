"""Catalogue forest storage.

The forest of a job is only ever replaced as a whole: delete the old rows
and insert the new ones inside one transaction.
"""

import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..models import CatalogueNode
from .base import BaseRepository


@dataclass
class PlanNode:
    """One node of a planned catalogue, before it is stored."""

    name: str
    title: str
    prompt: str = ""
    dependent_files: List[str] = field(default_factory=list)
    children: List["PlanNode"] = field(default_factory=list)


@dataclass(frozen=True)
class CatalogueNodeSnapshot:
    """Detached, thread-safe copy of a stored catalogue node.

    Worker threads read these instead of ORM instances bound to the
    coordinating thread's session.
    """

    id: str
    parent_id: Optional[str]
    name: str
    title: str
    prompt: str
    dependent_files: tuple
    sort_order: int

    @classmethod
    def from_model(cls, node: CatalogueNode) -> "CatalogueNodeSnapshot":
        return cls(
            id=node.id,
            parent_id=node.parent_id,
            name=node.name,
            title=node.title,
            prompt=node.prompt,
            dependent_files=tuple(node.dependent_files or ()),
            sort_order=node.sort_order,
        )


class CatalogueRepository(BaseRepository[CatalogueNode]):
    model_class = CatalogueNode

    def list_for_job(self, job_id: str) -> List[CatalogueNode]:
        return (
            self.db.query(CatalogueNode)
            .filter(CatalogueNode.job_id == job_id)
            .order_by(CatalogueNode.created_at.asc(), CatalogueNode.sort_order.asc())
            .all()
        )

    def replace_for_job(
        self, job_id: str, document_id: str, forest: Sequence[PlanNode]
    ) -> List[CatalogueNodeSnapshot]:
        """Swap the job's catalogue for *forest* and commit.

        Titles lose all whitespace, blank prompts become a single space and
        siblings are numbered in plan order. Returns the new nodes parents
        first.
        """
        rows: List[CatalogueNode] = []

        def _flatten(nodes: Sequence[PlanNode], parent_id: Optional[str]) -> None:
            for order, plan_node in enumerate(nodes):
                row = CatalogueNode(
                    id=str(uuid.uuid4()),
                    job_id=job_id,
                    document_id=document_id,
                    parent_id=parent_id,
                    name=plan_node.name,
                    title="".join(plan_node.title.split()),
                    prompt=plan_node.prompt if plan_node.prompt and plan_node.prompt.strip() else " ",
                    dependent_files=list(plan_node.dependent_files),
                    sort_order=order,
                    is_completed=False,
                )
                rows.append(row)
                _flatten(plan_node.children, row.id)

        _flatten(forest, None)

        try:
            (
                self.db.query(CatalogueNode)
                .filter(CatalogueNode.job_id == job_id)
                .delete(synchronize_session=False)
            )
            self.db.add_all(rows)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return [CatalogueNodeSnapshot.from_model(row) for row in rows]

    def mark_completed(self, node_id: str) -> None:
        node = self.get_by_id(node_id)
        node.is_completed = True
