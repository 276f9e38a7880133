"""Tests for bounded-concurrency document generation."""

import threading
import time
from unittest.mock import patch

import pytest

from docwarehouse.core.logging_config import job_id_var
from docwarehouse.models import CatalogueNode, GeneratedDocument, GeneratedDocumentSource
from docwarehouse.repositories import CatalogueRepository, DocumentRepository, JobRepository, PlanNode
from docwarehouse.services.document_generator import (
    ConcurrentDocumentGenerator, GeneratedContent, GenerationTaskContext,
    build_document_prompt, make_generation_task,
)
from conftest import FakeGenerationClient, make_job


def _catalogue(db, count=5):
    job = make_job(db)
    document = JobRepository(db).get_or_create_document(job.id, "/tmp/w")
    db.commit()
    forest = [PlanNode(name=f"node-{i}", title=f"Node {i}", dependent_files=[f"src/f{i}.py"]) for i in range(1, count + 1)]
    return CatalogueRepository(db).replace_for_job(job.id, document.id, forest)


def _context(tmp_path):
    return GenerationTaskContext(
        working_path=str(tmp_path), repository_url="https://github.com/acme/widgets.git",
        branch="main", catalogue="/\nsrc/D",
    )


class _TrackingTask:
    """Task fn recording how many calls overlap."""

    def __init__(self, fail_names=(), empty_names=(), delay=0.05):
        self.fail_names = set(fail_names)
        self.empty_names = set(empty_names)
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, node, context):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.calls.append(node.name)
        try:
            time.sleep(self.delay)
            if node.name in self.fail_names:
                raise RuntimeError(f"generation failed for {node.name}")
            content = "" if node.name in self.empty_names else f"# {node.name}\n\n```mermaid\ngraph TD\n  A[Start (main)] --> B\n```\n"
            return GeneratedContent(node.id, node.name, content, list(node.dependent_files))
        finally:
            with self._lock:
                self.active -= 1


class TestGenerateAll:
    def test_failures_are_isolated(self, db, tmp_path):
        nodes = _catalogue(db, 5)
        task = _TrackingTask(fail_names={"node-3"})
        generator = ConcurrentDocumentGenerator(db, task_fn=task)

        report = generator.generate_all(nodes, 2, _context(tmp_path))

        assert len(report.completed) == 4
        assert list(report.failures) == [nodes[2].id]
        assert "generation failed for node-3" in report.failures[nodes[2].id]
        assert db.query(GeneratedDocument).count() == 4
        assert sorted(task.calls) == [f"node-{i}" for i in range(1, 6)]

        completed = {n.id: n.is_completed for n in db.query(CatalogueNode).all()}
        assert completed[nodes[2].id] is False
        assert sum(completed.values()) == 4

    def test_storage_failure_is_isolated(self, db, tmp_path):
        nodes = _catalogue(db, 5)
        store = DocumentRepository.add_generated

        def _add_generated(repo, node_id, title, content, files):
            if title == "node-3":
                raise RuntimeError("value too long for column")
            return store(repo, node_id, title, content, files)

        with patch.object(DocumentRepository, "add_generated", _add_generated):
            report = ConcurrentDocumentGenerator(db, task_fn=_TrackingTask()).generate_all(
                nodes, 2, _context(tmp_path),
            )

        assert list(report.failures) == [nodes[2].id]
        assert "value too long" in report.failures[nodes[2].id]
        assert sorted(report.completed) == sorted(n.id for i, n in enumerate(nodes) if i != 2)
        stored = {d.catalogue_node_id for d in db.query(GeneratedDocument).all()}
        assert stored == set(report.completed)
        assert db.get(CatalogueNode, nodes[2].id).is_completed is False

    def test_tasks_see_current_job_id(self, db, tmp_path):
        nodes = _catalogue(db, 3)
        seen = []

        def _task(node, context):
            seen.append(job_id_var.get())
            return GeneratedContent(node.id, node.name, "# doc", [])

        token = job_id_var.set("job-42")
        try:
            ConcurrentDocumentGenerator(db, task_fn=_task).generate_all(nodes, 2, _context(tmp_path))
        finally:
            job_id_var.reset(token)
        assert seen == ["job-42"] * 3

    def test_in_flight_never_exceeds_bound(self, db, tmp_path):
        nodes = _catalogue(db, 6)
        task = _TrackingTask()
        ConcurrentDocumentGenerator(db, task_fn=task).generate_all(nodes, 2, _context(tmp_path))
        assert task.max_active <= 2

    def test_empty_content_counts_as_failure(self, db, tmp_path):
        nodes = _catalogue(db, 2)
        task = _TrackingTask(empty_names={"node-1"})
        report = ConcurrentDocumentGenerator(db, task_fn=task).generate_all(nodes, 2, _context(tmp_path))
        assert list(report.failures) == [nodes[0].id]
        assert report.completed == [nodes[1].id]

    def test_mermaid_repaired_and_sources_stored(self, db, tmp_path):
        nodes = _catalogue(db, 1)
        ConcurrentDocumentGenerator(db, task_fn=_TrackingTask(delay=0)).generate_all(nodes, 1, _context(tmp_path))

        docs = DocumentRepository(db)
        doc = docs.for_node(nodes[0].id)
        assert "A[Start main]" in doc.content
        assert doc.title == "node-1"
        [source] = docs.sources_for(doc.id)
        assert (source.address, source.name) == ("src/f1.py", "f1.py")
        assert db.query(GeneratedDocumentSource).count() == 1

    def test_no_nodes(self, db, tmp_path):
        report = ConcurrentDocumentGenerator(db, task_fn=_TrackingTask()).generate_all([], 3, _context(tmp_path))
        assert report.total == 0

    def test_requires_client_or_task(self, db):
        with pytest.raises(ValueError):
            ConcurrentDocumentGenerator(db)


class TestDefaultTask:
    def test_prompt_includes_dependent_files(self, db, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "f1.py").write_text("def handler():\n    pass\n")
        nodes = _catalogue(db, 1)

        prompt, consulted = build_document_prompt(nodes[0], _context(tmp_path))

        assert "def handler()" in prompt
        assert consulted == ["src/f1.py"]

    def test_missing_files_skipped(self, db, tmp_path):
        nodes = _catalogue(db, 1)
        _, consulted = build_document_prompt(nodes[0], _context(tmp_path))
        assert consulted == []

    def test_data_blog_payload_extracted(self, db, tmp_path):
        nodes = _catalogue(db, 1)
        client = FakeGenerationClient(lambda p: "preamble <data-blog>\n# Page\n</data-blog>")
        result = make_generation_task(client)(nodes[0], _context(tmp_path))
        assert result.content == "# Page"
        assert len(client.prompts) == 1
