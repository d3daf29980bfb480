"""
kycreport Exception Hierarchy

Every failure surfaced by the library carries a deterministic error code so
callers (the export endpoint, batch jobs) can react without string matching.

Error Codes:
- KR_MISSING_DATA: A requested field or section has no backing data (recoverable)
- KR_UNKNOWN_FLOW: Strict catalog lookup for a flow that is not configured
- KR_CATALOG_INVALID: Flow catalog configuration failed validation
- KR_SERIALIZATION_FAILED: The PDF encoder could not produce output
- KR_INTERNAL_ERROR: Unexpected internal error (catch-all)

Only KR_SERIALIZATION_FAILED and KR_CATALOG_INVALID ever propagate out of the
public API. Missing data is recovered locally by placeholder substitution and
the flow resolver falls back to the Default flow instead of raising.
"""

from typing import Any, Dict, Optional
import json

__all__ = [
    'KycReportError',
    'MissingDataError',
    'UnknownFlowError',
    'FlowCatalogError',
    'ReportSerializationError',
    'InternalError',
    'EXCEPTION_MAP',
    'wrap_internal_exception',
]


class KycReportError(Exception):
    """
    Base exception for all kycreport errors.

    Provides a consistent interface for error handling with:
    - code: A deterministic error code (KR_*)
    - message: Human-readable error description
    - details: Additional context as a dictionary
    - request_id: Optional request identifier for tracing

    All errors can be serialized to dict or JSON for API responses.
    """

    code: str = "KR_INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details if details is not None else {}
        self.request_id = request_id

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize error to a dictionary.

        Returns:
            Dictionary with code, message, details, and optionally request_id
        """
        result: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }
        if self.request_id is not None:
            result["request_id"] = self.request_id
        return result

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize error to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"request_id={self.request_id!r})"
        )


class MissingDataError(KycReportError):
    """
    A field or report section has no backing data.

    Not fatal: the compiler renders a placeholder and continues. Raised only
    by strict accessors; the report pipeline catches it locally.
    """

    code: str = "KR_MISSING_DATA"


class UnknownFlowError(KycReportError):
    """
    Flow name is not present in the catalog.

    Raised only by ``FlowCatalog.get(name, strict=True)``. The resolver never
    raises it: unknown flows resolve to the Default definition.
    """

    code: str = "KR_UNKNOWN_FLOW"


class FlowCatalogError(KycReportError):
    """
    Flow catalog configuration is invalid.

    Raised at load time when:
    - The YAML document is malformed or not a mapping
    - A flow lists an unknown step or module key
    - A flow has no steps
    """

    code: str = "KR_CATALOG_INVALID"


class ReportSerializationError(KycReportError):
    """
    The PDF encoding step could not produce output.

    Fatal to the single export operation only. No partial file is written.
    """

    code: str = "KR_SERIALIZATION_FAILED"


class InternalError(KycReportError):
    """Unexpected internal error."""

    code: str = "KR_INTERNAL_ERROR"


# =============================================================================
# EXCEPTION MAPPING
# =============================================================================

# Internal exception types -> external error classes.
# Used by wrap_internal_exception() at API boundaries.
EXCEPTION_MAP: Dict[type, type] = {
    KeyError: MissingDataError,
    LookupError: MissingDataError,
    UnicodeEncodeError: ReportSerializationError,
    OSError: ReportSerializationError,
}


def wrap_internal_exception(
    exc: Exception,
    default_message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
    fallback: type = InternalError,
) -> KycReportError:
    """
    Wrap an internal exception as a KycReportError.

    Known exception types map through EXCEPTION_MAP; anything else maps to
    ``fallback``. Use with exception chaining to preserve the traceback:

        try:
            pdf.output()
        except Exception as e:
            raise wrap_internal_exception(e, fallback=ReportSerializationError) from e
    """
    error_class = EXCEPTION_MAP.get(type(exc), fallback)

    error_details = details.copy() if details else {}
    error_details["internal_error"] = type(exc).__name__

    return error_class(
        message=default_message or str(exc),
        details=error_details,
        request_id=request_id
    )
