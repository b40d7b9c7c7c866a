"""
Error taxonomy for the skill router.

Every error that crosses the public boundary carries a stable ``code``,
a human-readable ``message`` and contextual ``details``.
"""

import logging
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


# ===== Error codes =====

class ErrorCode:
    """Standard error codes"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    SEQUENCE_VIOLATION = "SEQUENCE_VIOLATION"
    BUDGET_EXCEEDED = "BUDGET_EXCEEDED"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# ===== Exceptions =====

class RouterError(Exception):
    """
    Base class for structured router errors.

    All errors raised out of the router's public API are instances of
    this class (or its subclasses).
    """

    def __init__(
        self,
        message: str,
        code: str = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dict for transport."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(RouterError):
    """Malformed configuration such as a bad trigger table entry."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if field:
            error_details["field"] = field

        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            details=error_details
        )


class SequenceViolation(RouterError):
    """A workflow phase was requested before its prerequisites completed."""

    def __init__(
        self,
        message: str,
        requested_phase: str,
        missing_phases: List[str],
    ):
        self.requested_phase = requested_phase
        self.missing_phases = list(missing_phases)
        self.suggested_next = self.missing_phases[0] if self.missing_phases else None

        super().__init__(
            message=message,
            code=ErrorCode.SEQUENCE_VIOLATION,
            details={
                "requested_phase": requested_phase,
                "missing_phases": self.missing_phases,
                "suggested_next": self.suggested_next,
            }
        )


class BudgetExceeded(RouterError):
    """Eviction could not free enough tokens to admit an item."""

    def __init__(
        self,
        message: str,
        item_id: str,
        tokens_needed: int,
        tokens_available: int,
        ceiling: int,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.BUDGET_EXCEEDED,
            details={
                "item_id": item_id,
                "tokens_needed": tokens_needed,
                "tokens_available": tokens_available,
                "ceiling": ceiling,
            }
        )


class NotFoundError(RouterError):
    """Unknown skill, phase or missing file."""

    def __init__(
        self,
        message: str,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None
    ):
        details = {"resource_type": resource_type}
        if resource_id:
            details["resource_id"] = resource_id

        super().__init__(
            message=message,
            code=ErrorCode.NOT_FOUND,
            details=details
        )


# ===== Conversion =====

def to_router_error(exc: Exception, operation: str) -> RouterError:
    """Convert a collaborator exception into the router taxonomy.

    Args:
        exc: Exception raised by a collaborator (filesystem, YAML, pydantic)
        operation: Public operation that was running, for the message

    Returns:
        ``exc`` itself when it already is a RouterError, else a converted error
    """
    if isinstance(exc, RouterError):
        return exc

    if isinstance(exc, FileNotFoundError):
        return NotFoundError(
            f"{operation}: file not found: {exc.filename}",
            resource_type="file",
            resource_id=str(exc.filename) if exc.filename else None,
        )
    if isinstance(exc, yaml.YAMLError):
        return ValidationError(f"{operation}: invalid YAML: {exc}")
    if isinstance(exc, PydanticValidationError):
        return ValidationError(f"{operation}: invalid data: {exc}")
    if isinstance(exc, OSError):
        logger.warning(f"{operation} failed with I/O error: {exc}")
        return RouterError(f"{operation}: I/O error: {exc}", details={"errno": exc.errno})

    logger.error(f"{operation} failed unexpectedly: {exc}", exc_info=exc)
    return RouterError(
        f"{operation}: unexpected error: {exc}",
        details={"exception": type(exc).__name__},
    )


__all__ = [
    "ErrorCode",
    "RouterError",
    "ValidationError",
    "SequenceViolation",
    "BudgetExceeded",
    "NotFoundError",
    "to_router_error",
]
