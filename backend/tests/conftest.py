"""Shared test fixtures for the documentation warehouse test suite.

Tests run against an in-memory SQLite database through the application's
own engine. Tables are created before and dropped after every test, so
each test starts empty.
"""

import os

# Use an in-memory database and quiet logging before any package imports.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FORMAT"] = "text"
os.environ["POLL_INTERVAL_SECONDS"] = "0"
os.environ["FAILURE_BACKOFF_SECONDS"] = "0"
os.environ["PLAN_RETRY_DELAY_SECONDS"] = "0"

import threading
from typing import Callable, Iterator, List, Optional

import pytest

from docwarehouse.database import Base, SessionLocal, engine
from docwarehouse import models  # noqa: F401  (registers tables)
from docwarehouse.services.circuit_breaker import reset_all


@pytest.fixture(autouse=True)
def _schema():
    """Fresh tables for every test."""
    Base.metadata.create_all(bind=engine)
    reset_all()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


class FakeGenerationClient:
    """Scripted GenerationClient.

    ``responder(prompt)`` decides the answer; it may raise to simulate a
    service error. Streaming splits the answer into a few fragments.
    """

    def __init__(self, responder: Optional[Callable[[str], str]] = None):
        self.responder = responder or (lambda prompt: "")
        self.prompts: List[str] = []
        self.streamed_prompts: List[str] = []
        self._lock = threading.Lock()

    def complete(self, prompt: str) -> str:
        with self._lock:
            self.prompts.append(prompt)
        return self.responder(prompt)

    def complete_streaming(self, prompt: str) -> Iterator[str]:
        with self._lock:
            self.streamed_prompts.append(prompt)
        text = self.responder(prompt)
        step = max(1, len(text) // 3)
        for start in range(0, len(text), step):
            yield text[start:start + step]


@pytest.fixture()
def fake_client():
    return FakeGenerationClient()


def make_job(db, address="https://github.com/acme/widgets.git", kind="git", **overrides):
    """Factory for persisted repository jobs."""
    from docwarehouse.services.job_service import JobService

    job = JobService(db).submit(address, kind=kind, **overrides)
    return job
