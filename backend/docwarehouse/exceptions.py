"""Custom exception hierarchy for the documentation warehouse."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes stored alongside failures."""

    # Job errors
    JOB_NOT_FOUND = "JOB_NOT_FOUND"
    UNSUPPORTED_SOURCE_TYPE = "UNSUPPORTED_SOURCE_TYPE"

    # Source acquisition
    ACQUISITION_FAILED = "ACQUISITION_FAILED"

    # Generation service
    GENERATION_FAILED = "GENERATION_FAILED"
    GENERATION_TIMEOUT = "GENERATION_TIMEOUT"

    # Catalogue planning
    CATALOGUE_PLAN_FAILED = "CATALOGUE_PLAN_FAILED"
    CATALOGUE_PARSE_FAILED = "CATALOGUE_PARSE_FAILED"

    # Document generation
    EMPTY_DOCUMENT = "EMPTY_DOCUMENT"


class WarehouseException(Exception):
    """
    Base exception for all warehouse errors.

    Provides structured error information with:
    - Human-readable message
    - Machine-readable error code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for structured logging.

        Returns:
            Dictionary with error, message, and details fields
        """
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class JobNotFoundError(WarehouseException):
    """Repository job not found in database."""

    def __init__(self, job_id: str):
        super().__init__(
            f"Job not found: {job_id}",
            ErrorCode.JOB_NOT_FOUND,
            details={"job_id": job_id}
        )


class UnsupportedSourceTypeError(WarehouseException):
    """Job kind is neither 'git' nor 'file'."""

    def __init__(self, kind: Optional[str]):
        super().__init__(
            f"Unsupported repository type: {kind!r}",
            ErrorCode.UNSUPPORTED_SOURCE_TYPE,
            details={"kind": kind}
        )


class AcquisitionError(WarehouseException):
    """The repository could not be cloned, pulled or located."""

    def __init__(self, address: str, reason: str):
        super().__init__(
            f"Failed to acquire {address}: {reason}",
            ErrorCode.ACQUISITION_FAILED,
            details={"address": address}
        )


class GenerationError(WarehouseException):
    """The generation service returned an error or an unusable response."""

    def __init__(self, message: str, model: str = ""):
        super().__init__(
            message,
            ErrorCode.GENERATION_FAILED,
            details={"model": model} if model else {}
        )


class GenerationTimeoutError(GenerationError):
    """A generation call exceeded its wall-clock budget."""

    def __init__(self, label: str, timeout: float):
        super().__init__(f"{label} exceeded {timeout:.0f}s timeout")
        self.error_code = ErrorCode.GENERATION_TIMEOUT
        self.details = {"label": label, "timeout": timeout}


class CatalogueParseError(WarehouseException):
    """Plan-pass output could not be recovered into a catalogue."""

    def __init__(self, message: str, raw_excerpt: str = ""):
        super().__init__(
            message,
            ErrorCode.CATALOGUE_PARSE_FAILED,
            details={"raw_excerpt": raw_excerpt[:500]} if raw_excerpt else {}
        )


class CataloguePlanError(WarehouseException):
    """All think+plan rounds failed."""

    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(
            f"Catalogue planning failed after {attempts} attempts. Last error: {last_error}",
            ErrorCode.CATALOGUE_PLAN_FAILED,
            details={"attempts": attempts}
        )
        self.last_error = last_error


class EmptyDocumentError(WarehouseException):
    """A generation task produced no content for its catalogue node."""

    def __init__(self, node_name: str):
        super().__init__(
            f"Generated content is empty: {node_name}",
            ErrorCode.EMPTY_DOCUMENT,
            details={"node": node_name}
        )
