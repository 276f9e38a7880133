"""Per-job processing pipeline.

The stages run in a fixed order and communicate only through an explicit
``DocumentProcessingContext``. A failure in a required stage propagates to
the scheduler, which fails the job; the changelog and mini map stages are
best-effort.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models import CommitRecord, DocumentRecord, RepositoryJob, SourceKind
from ..repositories import CatalogueNodeSnapshot, CatalogueRepository, DocumentRepository
from . import prompts
from .catalogue_planner import (
    CataloguePlanner, ClassifyType, classify_repository, simplify_catalogue,
)
from .commit_history import CommitHistory, GitCommitHistory
from .document_generator import (
    ConcurrentDocumentGenerator, GenerationReport, GenerationTaskContext,
)
from .file_tree import build_tree, count_files, render_tree
from .llm_client import GenerationClient, collect_stream
from .mermaid_repair import repair_mermaid
from .outline_parser import OutlineNode, parse_outline_text
from .repo_scanner import find_readme, scan_directory
from .text_extraction import extract_tag_or_text

logger = logging.getLogger(__name__)


@dataclass
class DocumentProcessingContext:
    """Everything one pipeline run needs, plus what its stages produce."""

    job: RepositoryJob
    document: DocumentRecord
    working_path: str
    repository_url: str
    branch: str
    session: Session

    readme: str = ""
    catalogue: str = ""
    classification: Optional[ClassifyType] = None
    overview: Optional[str] = None
    catalogue_nodes: List[CatalogueNodeSnapshot] = field(default_factory=list)
    generation_report: Optional[GenerationReport] = None
    mini_map: Optional[OutlineNode] = None


class DocumentPipeline:
    """Runs the documentation stages for one job."""

    def __init__(
        self,
        chat_client: GenerationClient,
        analysis_client: Optional[GenerationClient] = None,
        commit_history: Optional[CommitHistory] = None,
        planner: Optional[CataloguePlanner] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.chat_client = chat_client
        self.analysis_client = analysis_client or chat_client
        self.commit_history = commit_history or GitCommitHistory()
        self.planner = planner or CataloguePlanner(self.analysis_client, sleep=sleep)
        self._sleep = sleep

    def run(self, ctx: DocumentProcessingContext) -> DocumentProcessingContext:
        self.generate_readme(ctx)
        self.build_catalogue(ctx)
        self.classify(ctx)
        self.generate_overview(ctx)
        self.plan_catalogue(ctx)
        self.generate_documents(ctx)
        if ctx.job.kind == SourceKind.GIT:
            self.generate_changelog(ctx)
        if settings.enable_mini_map:
            self.generate_mini_map(ctx)
        return ctx

    # ------------------------------------------------------------------
    # 1. Readme
    # ------------------------------------------------------------------

    def generate_readme(self, ctx: DocumentProcessingContext) -> None:
        readme = find_readme(ctx.working_path)
        if readme is None:
            logger.info("No README in %s, generating one", ctx.working_path)
            entries = scan_directory(ctx.working_path)
            catalogue = render_tree(build_tree(entries, ctx.working_path), settings.catalogue_format)
            response = self.chat_client.complete(prompts.README_PROMPT.format(
                repository_url=ctx.repository_url, branch=ctx.branch, catalogue=catalogue,
            ))
            readme = extract_tag_or_text(response, prompts.README_TAG)

        ctx.readme = readme
        ctx.job.readme = readme
        ctx.session.commit()

    # ------------------------------------------------------------------
    # 2. Catalogue (with smart filter)
    # ------------------------------------------------------------------

    def build_catalogue(self, ctx: DocumentProcessingContext) -> None:
        entries = scan_directory(ctx.working_path)
        tree = build_tree(entries, ctx.working_path)
        catalogue = render_tree(tree, settings.catalogue_format)

        file_count = count_files(tree)
        if settings.enable_smart_filter and file_count > settings.smart_filter_threshold:
            logger.info(
                "%d files exceed smart filter threshold %d, simplifying",
                file_count, settings.smart_filter_threshold,
            )
            try:
                catalogue = simplify_catalogue(
                    self.analysis_client, catalogue, ctx.repository_url, ctx.readme,
                    max_attempts=settings.plan_max_attempts, sleep=self._sleep,
                )
            except Exception as e:
                logger.warning("Catalogue simplification failed, using full listing: %s", e)

        ctx.catalogue = catalogue
        ctx.job.optimized_directory_structure = catalogue
        ctx.session.commit()

    # ------------------------------------------------------------------
    # 3. Classify
    # ------------------------------------------------------------------

    def classify(self, ctx: DocumentProcessingContext) -> None:
        classification = classify_repository(
            self.chat_client, ctx.catalogue, ctx.readme,
            max_attempts=settings.plan_max_attempts, sleep=self._sleep,
        )
        ctx.classification = classification
        ctx.job.classification = classification.value if classification else None
        ctx.session.commit()
        logger.info("Classified %s as %s", ctx.repository_url, ctx.job.classification)

    # ------------------------------------------------------------------
    # 4. Overview
    # ------------------------------------------------------------------

    def generate_overview(self, ctx: DocumentProcessingContext) -> None:
        repo = DocumentRepository(ctx.session)
        existing = repo.get_overview(ctx.document.id)
        if existing is not None:
            ctx.overview = existing.content
            return

        response = self.chat_client.complete(prompts.OVERVIEW_PROMPT.format(
            repository_url=ctx.repository_url, branch=ctx.branch,
            readme=ctx.readme, catalogue=ctx.catalogue,
        ))
        content = repair_mermaid(extract_tag_or_text(response, prompts.OVERVIEW_TAG))
        repo.add_overview(ctx.document.id, ctx.job.name or ctx.repository_url, content)
        ctx.session.commit()
        ctx.overview = content

    # ------------------------------------------------------------------
    # 5. Plan
    # ------------------------------------------------------------------

    def plan_catalogue(self, ctx: DocumentProcessingContext) -> None:
        forest = self.planner.plan(ctx.working_path, ctx.catalogue, ctx.repository_url, ctx.job)
        ctx.catalogue_nodes = CatalogueRepository(ctx.session).replace_for_job(
            ctx.job.id, ctx.document.id, forest,
        )
        logger.info("Stored %d catalogue nodes", len(ctx.catalogue_nodes))

    # ------------------------------------------------------------------
    # 6. Generate
    # ------------------------------------------------------------------

    def generate_documents(self, ctx: DocumentProcessingContext) -> None:
        generator = ConcurrentDocumentGenerator(ctx.session, client=self.chat_client)
        ctx.generation_report = generator.generate_all(
            ctx.catalogue_nodes,
            settings.task_max_size_per_user,
            GenerationTaskContext(
                working_path=ctx.working_path,
                repository_url=ctx.repository_url,
                branch=ctx.branch,
                catalogue=ctx.catalogue,
                max_file_chars=settings.max_dependent_file_chars,
            ),
        )

    # ------------------------------------------------------------------
    # 7. Changelog (best-effort)
    # ------------------------------------------------------------------

    def generate_changelog(self, ctx: DocumentProcessingContext) -> None:
        try:
            commits = self.commit_history.list_recent_commits(ctx.working_path, settings.commit_log_count)
            if not commits:
                return
            ordered = sorted(commits, key=lambda c: c.committed_at)
            lines = "\n".join(
                prompts.CHANGELOG_COMMIT_LINE.format(
                    date=c.committed_at.isoformat(), author=c.committer, message=c.message,
                )
                for c in ordered
            )
            response = self.chat_client.complete(prompts.CHANGELOG_PROMPT.format(
                repository_url=ctx.repository_url, branch=ctx.branch,
                readme=ctx.readme, commits=lines,
            ))
            content = extract_tag_or_text(response, prompts.CHANGELOG_TAG)
            record = CommitRecord(
                job_id=ctx.job.id, title="Changelog", content=content, author=ordered[-1].committer,
            )
            DocumentRepository(ctx.session).replace_commit_records(ctx.job.id, [record])
            ctx.session.commit()
        except Exception as e:
            ctx.session.rollback()
            logger.warning("Changelog generation failed for %s: %s", ctx.repository_url, e)

    # ------------------------------------------------------------------
    # 8. Mini map (best-effort)
    # ------------------------------------------------------------------

    def generate_mini_map(self, ctx: DocumentProcessingContext) -> None:
        try:
            response = collect_stream(self.chat_client, prompts.MINI_MAP_PROMPT.format(
                repository_url=ctx.repository_url, branch=ctx.branch, catalogue=ctx.catalogue,
            ))
            outline = parse_outline_text(response)
            DocumentRepository(ctx.session).replace_mini_map(
                ctx.job.id, json.dumps(outline.to_dict(), ensure_ascii=False),
            )
            ctx.session.commit()
            ctx.mini_map = outline
        except Exception as e:
            ctx.session.rollback()
            logger.warning("Mini map generation failed for %s: %s", ctx.repository_url, e)
