"""Source acquisition: make a job's repository available on local disk.

Git jobs are cloned under ``GIT_PATH/<organization>/<repository>/<branch>``
and reused on later runs; file jobs point at an already extracted upload.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Tuple
from urllib.parse import quote, urlsplit, urlunsplit

from ..core.config import settings
from ..exceptions import AcquisitionError, UnsupportedSourceTypeError
from ..models import SourceKind

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"


@dataclass
class AcquiredSource:
    local_path: str
    branch: Optional[str]
    repository_name: str
    organization_name: str
    version: Optional[str] = None


class SourceAcquirer(Protocol):
    def acquire(self, job) -> AcquiredSource:
        ...


def parse_repository_url(url: str) -> Tuple[str, str]:
    """Split a clone URL into (organization, repository).

    The organization is every path segment between host and repository
    joined with ``/`` (GitLab subgroups included).
    """
    segments = [s for s in urlsplit(url).path.split("/") if s]
    if len(segments) < 2:
        raise AcquisitionError(url, "URL must contain an organization and a repository name")
    repository = segments[-1]
    if repository.endswith(".git"):
        repository = repository[:-4]
    return "/".join(segments[:-1]), repository


def _authenticated_url(url: str, username: Optional[str], password: Optional[str]) -> str:
    if not password:
        return url
    parts = urlsplit(url)
    user = quote(username or "oauth2", safe="")
    netloc = f"{user}:{quote(password, safe='')}@{parts.hostname}"
    if parts.port:
        netloc += f":{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


class GitSourceAcquirer:
    """Clones git repositories with the ``git`` CLI; handles file jobs too."""

    def __init__(self, git_path: Optional[str] = None, timeout: Optional[int] = None):
        self.git_path = Path(git_path or settings.git_path)
        self.timeout = timeout or settings.git_timeout_seconds

    def _git(self, args: List[str], cwd: Optional[Path] = None) -> str:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=True,
        )
        return result.stdout.strip()

    def acquire(self, job) -> AcquiredSource:
        if job.kind == SourceKind.GIT:
            return self._acquire_git(job)
        if job.kind == SourceKind.FILE:
            return self._acquire_file(job)
        raise UnsupportedSourceTypeError(job.kind)

    def _acquire_file(self, job) -> AcquiredSource:
        path = Path(job.address)
        if not path.is_dir():
            raise AcquisitionError(job.address, "uploaded source directory does not exist")
        return AcquiredSource(
            local_path=str(path),
            branch=job.branch,
            repository_name=job.name or path.name,
            organization_name=job.organization_name or "",
            version=job.version,
        )

    def _acquire_git(self, job) -> AcquiredSource:
        organization, repository = parse_repository_url(job.address)
        branch = job.branch or DEFAULT_BRANCH
        local_path = self.git_path / organization / repository / branch

        if local_path.exists():
            try:
                version = self._git(["rev-parse", "HEAD"], cwd=local_path)
                head = self._git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=local_path)
                logger.info("Reusing working copy %s at %s", local_path, version[:8])
                return AcquiredSource(str(local_path), head, repository, organization, version)
            except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
                logger.warning("Working copy %s is unusable (%s), cloning again", local_path, e)
                shutil.rmtree(local_path, ignore_errors=True)

        local_path.parent.mkdir(parents=True, exist_ok=True)
        url = _authenticated_url(job.address, job.git_username, job.git_password)
        logger.info("Cloning %s (%s) into %s", job.address, branch, local_path)
        try:
            self._git(["clone", "--branch", branch, url, str(local_path)])
            version = self._git(["rev-parse", "HEAD"], cwd=local_path)
        except subprocess.TimeoutExpired as e:
            shutil.rmtree(local_path, ignore_errors=True)
            raise AcquisitionError(job.address, f"git timed out after {e.timeout}s") from e
        except subprocess.CalledProcessError as e:
            shutil.rmtree(local_path, ignore_errors=True)
            reason = (e.stderr or "").strip().replace(url, job.address) or f"exit code {e.returncode}"
            raise AcquisitionError(job.address, reason) from e

        return AcquiredSource(str(local_path), branch, repository, organization, version)
