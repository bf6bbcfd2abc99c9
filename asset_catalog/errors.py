"""Error taxonomy for catalog materialization.

Every failure the catalog surfaces is a ``CatalogError`` tagged with an
``ErrorKind``. Driver exceptions are converted once, where they are first
observed, via ``CatalogError.from_driver_error``; nothing downstream has to
inspect driver-specific exception shapes.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Kinds of catalog errors."""

    LOAD = "load_error"
    PARSE = "parse_error"
    CONNECT = "connect_error"
    UNSUPPORTED_AUTH = "unsupported_auth"
    QUERY = "query_error"
    QUERY_TIMEOUT = "query_timeout"
    STREAM = "stream_error"
    NOT_FOUND = "not_found"


class ErrorSeverity(str, Enum):
    """Severity of a recorded (non-raised) error."""

    WARNING = "warning"
    ERROR = "error"


# Snowflake error numbers that mean the statement hit a timeout or was cancelled
TIMEOUT_ERRNOS = {604, 630}


class CatalogError(Exception):
    """Base error for the catalog. ``kind`` tells callers what went wrong."""

    kind: ErrorKind = ErrorKind.QUERY
    default_severity: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        *,
        location: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
    ):
        self.message = message
        self.detail = detail
        self.location = location
        self.context = context or {}
        self.severity = severity or self.default_severity
        super().__init__(message)

    def __str__(self) -> str:
        loc = f" at {self.location}" if self.location else ""
        return f"[{self.kind.value}]{loc}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses and status reports."""
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.detail:
            data["detail"] = self.detail
        if self.location:
            data["location"] = self.location
        if self.context:
            data["context"] = self.context
        return data

    @classmethod
    def from_driver_error(
        cls, error: Any, message: Optional[str] = None, **kwargs: Any
    ) -> "CatalogError":
        """
        Build a tagged error from whatever a driver raised.

        Accepts exceptions, plain strings and ad hoc objects carrying
        ``message``/``msg`` and ``errno``/``code`` attributes. Errors that are already
        ``CatalogError`` instances pass through unchanged. A driver timeout is
        reported as ``QueryTimeoutError`` whatever ``cls`` is.
        """
        if isinstance(error, CatalogError):
            return error

        detail = describe_error(error)
        errno = error_code(error)
        if cls in (CatalogError, QueryError, StreamError) and (
            errno in TIMEOUT_ERRNOS or "timeout" in detail.lower()
        ):
            target: type[CatalogError] = QueryTimeoutError
        else:
            target = cls

        context = dict(kwargs.pop("context", None) or {})
        if errno is not None:
            context.setdefault("errno", errno)
        sqlstate = getattr(error, "sqlstate", None)
        if sqlstate:
            context.setdefault("sqlstate", sqlstate)

        return target(message or detail, detail=detail, context=context, **kwargs)


class LoadError(CatalogError):
    """A flat-file table could not be read. Recorded; the table degrades to empty."""

    kind = ErrorKind.LOAD


class ParseError(CatalogError):
    """A malformed row or field was coerced to a safe default. Recorded."""

    kind = ErrorKind.PARSE
    default_severity = ErrorSeverity.WARNING


class ConnectError(CatalogError):
    """Warehouse unreachable or misconfigured."""

    kind = ErrorKind.CONNECT


class UnsupportedAuthError(CatalogError):
    """An interactive authenticator was requested on a headless path."""

    kind = ErrorKind.UNSUPPORTED_AUTH


class QueryError(CatalogError):
    """Warehouse rejected a query. The driver message is kept verbatim in ``detail``."""

    kind = ErrorKind.QUERY


class QueryTimeoutError(QueryError):
    """The warehouse's own statement timeout fired."""

    kind = ErrorKind.QUERY_TIMEOUT


class StreamError(CatalogError):
    """Row delivery was interrupted mid-stream. Partial rows are discarded."""

    kind = ErrorKind.STREAM


class NotFoundError(CatalogError):
    """No asset matches the requested id."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource_type: str, identifier: str, **kwargs: Any):
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(
            f"{resource_type} not found: {identifier}",
            context={"resource_type": resource_type, "identifier": identifier},
            **kwargs,
        )


def error_code(error: Any) -> Any:
    """Driver error number, from ``errno`` or an ad hoc ``code`` attribute."""
    code = getattr(error, "errno", None)
    if code is None:
        code = getattr(error, "code", None)
    return code


def describe_error(error: Any) -> str:
    """Best human-readable message for an arbitrary error value."""
    if error is None:
        return "An unspecified error occurred."
    if isinstance(error, str):
        return error.strip() or "An unspecified error occurred."

    for attr in ("message", "msg"):
        value = getattr(error, attr, None)
        if isinstance(value, str) and value.strip() and value.strip() != ".":
            return value.strip()

    text = str(error).strip()
    if text and text != ".":
        return text

    name = type(error).__name__
    errno = error_code(error)
    if errno is not None:
        return f"{name} (error code: {errno})"
    return f"{name}: an unspecified error occurred."
