"""
Error records for harvest runs.

Every failure worth keeping after the run (navigation, browser, output,
config) is captured as an ErrorRecord and appended to the JSONL error log.
"""

import json
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, Tuple
from pydantic import BaseModel, Field, field_validator, ConfigDict


class ErrorComponent(str, Enum):
    """Part of the harvester an error came from."""
    HARVESTER = "harvester"
    OUTPUT = "output"
    CONFIG = "config"


class ErrorSeverity(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorType(str, Enum):
    """Error categories; add new ones here rather than inventing strings."""
    VALIDATION_ERROR = "validation_error"

    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"
    HTTP_ERROR = "http_error"

    PARSE_ERROR = "parse_error"
    JSON_ERROR = "json_error"

    BROWSER_ERROR = "browser_error"
    NAVIGATION_ERROR = "navigation_error"

    FILE_ERROR = "file_error"
    CONFIG_ERROR = "config_error"

    UNKNOWN = "unknown"


class ErrorStage:
    """Stage names used in error records."""
    NAVIGATE = "navigate"
    SETTLE = "settle"
    SCROLL = "scroll"
    FINALIZE = "finalize"
    WRITE_OUTPUT = "write_output"

    LOAD_CONFIG = "load_config"
    VALIDATE_CONFIG = "validate_config"


# (substrings of the lower-cased class name, substrings of the message, type); first hit wins
_CLASSIFICATION_RULES: Tuple[Tuple[Tuple[str, ...], Tuple[str, ...], ErrorType], ...] = (
    (("validation",), (), ErrorType.VALIDATION_ERROR),
    (("navigation",), (), ErrorType.NAVIGATION_ERROR),
    (("timeout",), ("timeout",), ErrorType.TIMEOUT),
    (("connection",), ("err_name_not_resolved", "err_connection"), ErrorType.CONNECTION_ERROR),
    (("http",), ("status",), ErrorType.HTTP_ERROR),
    (("json",), (), ErrorType.JSON_ERROR),
    (("parse",), (), ErrorType.PARSE_ERROR),
    (("playwright", "browser"), ("target closed", "browser has been closed"), ErrorType.BROWSER_ERROR),
    (("file", "permission", "isadirectory"), (), ErrorType.FILE_ERROR),
)

# Failures we anticipate; a stack trace adds nothing to them
EXPECTED_ERRORS = frozenset({
    "ValidationError",
    "NavigationError",
    "FileNotFoundError",
    "ValueError",
    "TimeoutError",
})

MAX_STACK_CHARS = 10000


class ErrorRecord(BaseModel):
    """One line of the error log."""
    component: ErrorComponent
    stage: str = Field(..., min_length=1, max_length=100)
    error_type: ErrorType
    severity: ErrorSeverity = ErrorSeverity.ERROR
    domain: str = Field(..., min_length=1, max_length=255, description="Gallery host")
    message: str = Field(..., min_length=1)

    url: Optional[str] = Field(None, max_length=2048)
    exception_type: Optional[str] = Field(None, max_length=255)
    stack_trace: Optional[str] = None

    metadata: Dict[str, Any] = Field(default_factory=dict)

    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        use_enum_values=True,
    )

    @field_validator("stage")
    @classmethod
    def normalize_stage(cls, v: str) -> str:
        return v.strip().lower().replace(" ", "_") or "unknown"

    @field_validator("message")
    @classmethod
    def truncate_message(cls, v: str) -> str:
        return v.strip()[:5000] or "No error message provided"

    @field_validator("metadata")
    @classmethod
    def stringify_metadata(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        """Values json cannot encode are stored as their str()."""
        out = {}
        for key, value in v.items():
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            out[key] = value
        return out

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        component: ErrorComponent,
        stage: str,
        domain: str,
        url: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        error_type: Optional[ErrorType] = None,
        include_stack_trace: Optional[bool] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ErrorRecord":
        """
        Build a record from a caught exception.

        Args:
            exc: The exception
            component: Where it happened
            stage: ErrorStage constant
            domain: Gallery host
            url: Page or resource URL, if any
            severity: Record severity
            error_type: Explicit category (classified from the exception if None)
            include_stack_trace: Force the stack trace on/off (decided from the exception if None)
            metadata: Extra context

        Example:
            >>> try:
            ...     await surface.navigate(url)
            ... except NavigationError as e:
            ...     record = ErrorRecord.from_exception(
            ...         e,
            ...         component=ErrorComponent.HARVESTER,
            ...         stage=ErrorStage.NAVIGATE,
            ...         domain="www.cosmos.so",
            ...     )
        """
        if include_stack_trace is None:
            include_stack_trace = cls._should_include_stack(exc, severity)

        stack_trace = None
        if include_stack_trace:
            stack_trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            if len(stack_trace) > MAX_STACK_CHARS:
                stack_trace = stack_trace[:MAX_STACK_CHARS] + "\n... (truncated)"

        return cls(
            component=component,
            stage=stage,
            error_type=error_type or cls._classify_exception(exc),
            severity=severity,
            domain=domain,
            url=url,
            message=str(exc) or f"{type(exc).__name__} occurred",
            exception_type=f"{type(exc).__module__}.{type(exc).__name__}",
            stack_trace=stack_trace,
            metadata=metadata or {},
        )

    @staticmethod
    def _classify_exception(exc: Exception) -> ErrorType:
        name = type(exc).__name__.lower()
        msg = str(exc).lower()
        for name_parts, msg_parts, error_type in _CLASSIFICATION_RULES:
            if any(p in name for p in name_parts) or any(p in msg for p in msg_parts):
                return error_type
        if name == "oserror":
            return ErrorType.FILE_ERROR
        return ErrorType.UNKNOWN

    @staticmethod
    def _should_include_stack(exc: Exception, severity: ErrorSeverity) -> bool:
        if severity == ErrorSeverity.CRITICAL:
            return True
        if severity != ErrorSeverity.ERROR:
            return False
        return type(exc).__name__ not in EXPECTED_ERRORS
