"""Recent commit listing via ``git log``."""

import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime
from typing import List, Protocol

from ..core.config import settings

logger = logging.getLogger(__name__)

# Unit/record separators keep multi-line messages intact.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = _FIELD_SEP.join(["%H", "%cn", "%ce", "%cI", "%B"]) + _RECORD_SEP


@dataclass
class CommitInfo:
    sha: str
    committer: str
    email: str
    committed_at: datetime
    message: str


class CommitHistory(Protocol):
    def list_recent_commits(self, path: str, n: int) -> List[CommitInfo]:
        ...


def parse_git_log(output: str) -> List[CommitInfo]:
    commits: List[CommitInfo] = []
    for record in output.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        sha, committer, email, date, message = record.split(_FIELD_SEP, 4)
        commits.append(CommitInfo(
            sha=sha.strip(),
            committer=committer,
            email=email,
            committed_at=datetime.fromisoformat(date.strip()),
            message=message.strip(),
        ))
    return commits


class GitCommitHistory:
    """Newest-first commit listing ordered by committer time."""

    def __init__(self, timeout: int = 0):
        self.timeout = timeout or settings.git_timeout_seconds

    def list_recent_commits(self, path: str, n: int) -> List[CommitInfo]:
        result = subprocess.run(
            ["git", "log", f"-n{n}", "--date-order", f"--format={_LOG_FORMAT}"],
            cwd=path,
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=True,
        )
        commits = parse_git_log(result.stdout)
        commits.sort(key=lambda c: c.committed_at, reverse=True)
        return commits
