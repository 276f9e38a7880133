"""Logging setup for the documentation worker.

``LOG_FORMAT=json`` writes one JSON object per line, ``text`` writes a
plain console format. Every record carries the id of the job the
scheduler is working on (``job_id_var``), and credentials are masked
before anything is written.
"""

import contextvars
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Optional


job_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("job_id", default="")

_TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [job=%(job_id)s] %(message)s"

# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "job_id"}


# ---------------------------------------------------------------------------
# Credential masking
# ---------------------------------------------------------------------------

_MASK = "***REDACTED***"

# (pattern, replacement); group 1, when present, is kept in front of the mask.
_CREDENTIAL_RULES = [
    (re.compile(r"\b(?:sk|or)-[A-Za-z0-9]{20,}\b"), _MASK),
    (re.compile(r"\bgh[pousr]_[A-Za-z0-9]{20,}\b"), _MASK),
    (re.compile(r"(?i)(bearer\s+)[A-Za-z0-9._\-]{20,}"), r"\1" + _MASK),
    (re.compile(r"(https?://[^/\s:@]+:)[^@\s/]+(?=@)"), r"\1" + _MASK),
    (re.compile(r"(?i)((?:api_key|secret|password|token|authorization)[=:]\s*)[^\s,'\"]{8,}"), r"\1" + _MASK),
]


def redact(text: str) -> str:
    """Mask API keys, tokens and clone-URL passwords in *text*."""
    for pattern, replacement in _CREDENTIAL_RULES:
        text = pattern.sub(replacement, text)
    return text


class _RedactingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # Merge args first so secrets passed as %s arguments are masked too.
        record.msg = redact(record.getMessage())
        record.args = None
        if record.exc_info and not record.exc_text:
            record.exc_text = logging.Formatter().formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = redact(record.exc_text)
        return True


class _JobContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.job_id = job_id_var.get() or "-"
        return True


class _JsonFormatter(logging.Formatter):
    """One JSON object per record; ``extra`` fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if getattr(record, "job_id", "-") != "-":
            payload["job_id"] = record.job_id
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )
        if record.exc_text:
            payload["exception"] = record.exc_text
        return json.dumps(payload, default=str)


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Install the worker's single stdout handler on the root logger.

    Args:
        log_level: Level name, INFO when omitted.
        log_format: ``"json"`` (default) or ``"text"``.
    """
    level = (log_level or "INFO").upper()
    fmt = (log_format or "json").lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_JobContextFilter())
    handler.addFilter(_RedactingFilter())
    if fmt == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("sqlalchemy.engine", "LiteLLM", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging configured", extra={"level": level, "format": fmt})
