"""Bounded-concurrency document generation for catalogue nodes.

Every catalogue node becomes one generation task. At most
``max_concurrency`` tasks are in flight; as soon as any task finishes the
next queued node is started. A failing node is logged and recorded, the
rest carry on. Tasks only produce text; persistence happens on the
coordinating thread that owns the session.
"""

import contextvars
import logging
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import EmptyDocumentError
from ..repositories import CatalogueNodeSnapshot, CatalogueRepository, DocumentRepository
from . import prompts
from .llm_client import GenerationClient
from .mermaid_repair import repair_mermaid
from .repo_scanner import read_repository_file
from .text_extraction import extract_tag_or_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationTaskContext:
    """Read-only inputs shared by every task of one job."""

    working_path: str
    repository_url: str
    branch: str
    catalogue: str
    max_file_chars: int = 20_000


@dataclass
class GeneratedContent:
    node_id: str
    title: str
    content: str
    files: List[str] = field(default_factory=list)


@dataclass
class GenerationReport:
    completed: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.completed) + len(self.failures)


TaskFn = Callable[[CatalogueNodeSnapshot, GenerationTaskContext], GeneratedContent]


def build_document_prompt(node: CatalogueNodeSnapshot, context: GenerationTaskContext) -> tuple:
    """Prompt text for *node* plus the dependent files actually read."""
    blocks = []
    consulted = []
    for path in node.dependent_files:
        content = read_repository_file(context.working_path, path, context.max_file_chars)
        if content is None:
            logger.debug("Dependent file %s of %s not found", path, node.name)
            continue
        consulted.append(path)
        blocks.append(prompts.DOCUMENT_FILE_BLOCK.format(path=path, content=content))

    prompt = prompts.DOCUMENT_PROMPT.format(
        repository_url=context.repository_url,
        branch=context.branch,
        title=node.name,
        prompt=node.prompt,
        catalogue=context.catalogue,
        files="\n".join(blocks) or "(none)",
    )
    return prompt, consulted


def make_generation_task(client: GenerationClient) -> TaskFn:
    """Default task: one non-streaming call per node."""

    def _task(node: CatalogueNodeSnapshot, context: GenerationTaskContext) -> GeneratedContent:
        prompt, consulted = build_document_prompt(node, context)
        response = client.complete(prompt)
        content = extract_tag_or_text(response, prompts.DOCUMENT_TAG)
        return GeneratedContent(node_id=node.id, title=node.name, content=content, files=consulted)

    return _task


class ConcurrentDocumentGenerator:
    """Fans catalogue nodes out to worker threads and stores the results."""

    def __init__(
        self,
        db: Session,
        client: Optional[GenerationClient] = None,
        task_fn: Optional[TaskFn] = None,
    ) -> None:
        if task_fn is None and client is None:
            raise ValueError("Either client or task_fn is required")
        self.db = db
        self.task_fn = task_fn or make_generation_task(client)
        self.catalogue_repo = CatalogueRepository(db)
        self.document_repo = DocumentRepository(db)

    def generate_all(
        self,
        nodes: Sequence[CatalogueNodeSnapshot],
        max_concurrency: Optional[int] = None,
        context: Optional[GenerationTaskContext] = None,
    ) -> GenerationReport:
        """Generate and persist a document for every node.

        Returns:
            GenerationReport with the node ids stored and the failures
            keyed by node id.
        """
        limit = max(1, max_concurrency or settings.task_max_size_per_user)
        report = GenerationReport()
        queue = deque(nodes)
        in_flight: Dict[Future, CatalogueNodeSnapshot] = {}

        logger.info("Generating %d documents (max %d parallel)", len(queue), limit)

        with ThreadPoolExecutor(max_workers=limit, thread_name_prefix="docgen") as executor:
            while queue or in_flight:
                while queue and len(in_flight) < limit:
                    node = queue.popleft()
                    # Each task runs in a copy of this context (job_id_var included).
                    task_ctx = contextvars.copy_context()
                    in_flight[executor.submit(task_ctx.run, self.task_fn, node, context)] = node

                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    node = in_flight.pop(future)
                    self._handle_result(node, future, report)

        logger.info(
            "Document generation finished: %d stored, %d failed",
            len(report.completed), len(report.failures),
        )
        return report

    def _handle_result(self, node: CatalogueNodeSnapshot, future: Future, report: GenerationReport) -> None:
        try:
            result = future.result()
            if result is None or not (result.content or "").strip():
                raise EmptyDocumentError(node.name)
        except Exception as e:
            logger.error("Document generation failed for %s: %s", node.name, e)
            report.failures[node.id] = f"{type(e).__name__}: {e}"
            return

        content = repair_mermaid(result.content)
        try:
            self.catalogue_repo.mark_completed(node.id)
            self.document_repo.add_generated(node.id, node.name, content, result.files)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("Storing document %s failed: %s", node.name, e)
            report.failures[node.id] = f"{type(e).__name__}: {e}"
            return

        report.completed.append(node.id)
        logger.info("Stored document %s (%d chars, %d sources)", node.name, len(content), len(result.files))
