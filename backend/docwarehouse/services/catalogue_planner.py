"""Catalogue planning: think pass, plan pass, lossy text to JSON recovery.

Model output is unreliable, so each planning round is retried as a whole
with linear backoff. The same extract -> parse -> retry helper also backs
the classification and catalogue simplification calls.
"""

import logging
import time
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from ..core.config import settings
from ..exceptions import CatalogueParseError, CataloguePlanError
from ..repositories import PlanNode
from . import prompts
from .llm_client import GenerationClient, collect_stream
from .text_extraction import (
    CATALOGUE_STRATEGIES, Strategy, extract_tag, first_match, parse_json_lenient,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Retry helper
# ---------------------------------------------------------------------------

def retry_with_backoff(
    attempt_fn: Callable[[], T],
    max_attempts: int,
    delay_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "generation",
) -> T:
    """Call *attempt_fn* until it returns, at most *max_attempts* times.

    Before attempt k (k >= 2) waits ``delay_seconds * (k - 1)``. The error
    of the final attempt is re-raised.
    """
    for attempt in range(1, max_attempts + 1):
        if attempt > 1:
            sleep(delay_seconds * (attempt - 1))
        try:
            return attempt_fn()
        except Exception as e:
            if attempt == max_attempts:
                logger.error("%s failed after %d attempts: %s", label, attempt, e)
                raise
            logger.warning("%s attempt %d/%d failed: %s", label, attempt, max_attempts, e)
    raise AssertionError("unreachable")


# ---------------------------------------------------------------------------
# Catalogue structure
# ---------------------------------------------------------------------------

def _coerce_items(parsed: Any) -> List[dict]:
    if isinstance(parsed, dict):
        items = parsed.get("items")
        if items is None:
            # Some models wrap the list under a different single key.
            lists = [v for v in parsed.values() if isinstance(v, list)]
            items = lists[0] if len(lists) == 1 else None
    elif isinstance(parsed, list):
        items = parsed
    else:
        items = None
    if not isinstance(items, list):
        raise CatalogueParseError("Catalogue JSON has no item list")
    return items


def _to_plan_node(item: Any) -> PlanNode:
    if not isinstance(item, dict):
        raise CatalogueParseError(f"Catalogue item is not an object: {item!r:.80}")
    name = str(item.get("name") or item.get("title") or "").strip()
    title = str(item.get("title") or name)
    if not name:
        raise CatalogueParseError("Catalogue item has neither name nor title")

    files = item.get("dependent_file") or item.get("dependent_files") or []
    if isinstance(files, str):
        files = [files]
    children = item.get("children") or []
    if not isinstance(children, list):
        raise CatalogueParseError(f"Children of {name!r} is not a list")

    return PlanNode(
        name=name,
        title="".join(title.split()),
        prompt=str(item.get("prompt") or ""),
        dependent_files=[str(f) for f in files if f],
        children=[_to_plan_node(child) for child in children],
    )


def parse_catalogue(text: str, strategies: Sequence[Strategy] = CATALOGUE_STRATEGIES) -> List[PlanNode]:
    """Recover a catalogue forest from plan-pass output.

    Raises:
        CatalogueParseError: nothing usable could be recovered.
    """
    payload = first_match(text, strategies)
    if payload is None:
        raise CatalogueParseError("Plan response is empty")
    try:
        parsed = parse_json_lenient(payload)
    except ValueError as e:
        raise CatalogueParseError(f"Plan response is not JSON: {e}", raw_excerpt=payload) from e
    forest = [_to_plan_node(item) for item in _coerce_items(parsed)]
    if not forest:
        raise CatalogueParseError("Catalogue is empty", raw_excerpt=payload)
    return forest


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------

class CataloguePlanner:
    """Two-pass catalogue planner with whole-round retries."""

    def __init__(
        self,
        client: GenerationClient,
        max_attempts: Optional[int] = None,
        retry_delay_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.max_attempts = max_attempts or settings.plan_max_attempts
        self.retry_delay_seconds = (
            settings.plan_retry_delay_seconds if retry_delay_seconds is None else retry_delay_seconds
        )
        self._sleep = sleep

    def plan(
        self,
        working_path: str,
        catalogue_text: str,
        repository_url: str,
        job: Any,
    ) -> List[PlanNode]:
        """Run think + plan rounds until one yields a valid forest.

        Raises:
            CataloguePlanError: every round failed; ``last_error`` holds the
                final round's exception.
        """
        values = {
            "repository_url": repository_url,
            "catalogue": catalogue_text,
            "readme": getattr(job, "readme", None) or "",
            "classification": getattr(job, "classification", None) or "Unknown",
        }

        def _round() -> List[PlanNode]:
            reasoning = collect_stream(self.client, prompts.CATALOGUE_THINK_PROMPT.format(**values))
            logger.debug("Think pass for %s produced %d chars", working_path, len(reasoning))
            response = collect_stream(
                self.client,
                prompts.CATALOGUE_PLAN_PROMPT.format(reasoning=reasoning, **values),
            )
            return parse_catalogue(response)

        try:
            forest = retry_with_backoff(
                _round, self.max_attempts, self.retry_delay_seconds,
                sleep=self._sleep, label="Catalogue planning",
            )
        except Exception as e:
            raise CataloguePlanError(self.max_attempts, e) from e

        logger.info("Planned %d top-level catalogue sections for %s", len(forest), repository_url)
        return forest


# ---------------------------------------------------------------------------
# Classification and catalogue simplification
# ---------------------------------------------------------------------------

class ClassifyType(str, Enum):
    APPLICATIONS = "Applications"
    FRAMEWORKS = "Frameworks"
    LIBRARIES = "Libraries"
    DEVELOPMENT_TOOLS = "DevelopmentTools"
    CLI_TOOLS = "CLITools"
    DEVOPS_CONFIGURATION = "DevOpsConfiguration"
    DOCUMENTATION = "Documentation"


def parse_classification(text: str) -> Optional[ClassifyType]:
    """Map ``<classify>classifyName:X</classify>`` to a ClassifyType, case-insensitively."""
    content = extract_tag(text, prompts.CLASSIFY_TAG)
    if content is None:
        return None
    token = content.replace("classifyName:", "").strip().lower()
    for member in ClassifyType:
        if member.value.lower() == token:
            return member
    return None


def classify_repository(
    client: GenerationClient,
    catalogue_text: str,
    readme: str,
    max_attempts: int = 1,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[ClassifyType]:
    """Ask for a classification; None when the answer is not a known category."""
    prompt = prompts.CLASSIFY_PROMPT.format(
        categories=", ".join(member.value for member in ClassifyType),
        readme=readme,
        catalogue=catalogue_text,
    )
    response = retry_with_backoff(
        lambda: client.complete(prompt), max_attempts, settings.plan_retry_delay_seconds,
        sleep=sleep, label="Classification",
    )
    return parse_classification(response)


def simplify_catalogue(
    client: GenerationClient,
    catalogue_text: str,
    repository_url: str,
    readme: str,
    max_attempts: int = 1,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Have the model reduce an oversized listing; raises if no usable answer."""
    prompt = prompts.SIMPLIFY_CATALOGUE_PROMPT.format(
        repository_url=repository_url, readme=readme, catalogue=catalogue_text,
    )

    def _attempt() -> str:
        response = collect_stream(client, prompt)
        content = extract_tag(response, prompts.SIMPLIFY_TAG)
        if not content:
            raise CatalogueParseError("Simplified listing missing <response_file> block")
        return content

    return retry_with_backoff(
        _attempt, max_attempts, settings.plan_retry_delay_seconds,
        sleep=sleep, label="Catalogue simplification",
    )
