"""
JSON-lines error log.

Records go to <log_dir>/errors_YYYYMMDD.jsonl (UTC day), one ErrorRecord
per line. Logging an error must never become a second failure, so every
public method reports success as a bool instead of raising.
"""

import os
import json
from pathlib import Path
from typing import Callable, Optional, Dict, Any, List
from datetime import datetime, timezone

from galleryharvest.core.logging import get_logger
from galleryharvest.core.error_models import (
    ErrorRecord,
    ErrorComponent,
    ErrorSeverity,
    ErrorType,
)

logger = get_logger(__name__)

ERROR_LOG_DIR = Path(os.getenv("ERROR_LOG_DIR", "logs/errors"))

_error_logger: Optional["ErrorLogger"] = None


class ErrorLogger:
    """
    Append-only error log for harvest runs.

    Usage:
        >>> errors = get_error_logger()
        >>> errors.log_error(
        ...     component=ErrorComponent.HARVESTER,
        ...     stage=ErrorStage.NAVIGATE,
        ...     error_type=ErrorType.TIMEOUT,
        ...     domain="www.cosmos.so",
        ...     message="Navigation timeout after 120s",
        ...     url="https://www.cosmos.so/rlphoto/swim",
        ... )
        True
    """

    def __init__(self, log_dir: Optional[Path] = None):
        self._log_dir = Path(log_dir) if log_dir else ERROR_LOG_DIR
        self._log_dir.mkdir(exist_ok=True, parents=True)

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def log_error(
        self,
        component: ErrorComponent,
        stage: str,
        error_type: ErrorType,
        domain: str,
        message: str,
        url: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        exception_type: Optional[str] = None,
        stack_trace: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Record an error described by hand. Returns False if it could not be written."""
        return self._record(
            lambda: ErrorRecord(
                component=component,
                stage=stage,
                error_type=error_type,
                severity=severity,
                domain=domain,
                url=url,
                message=message,
                exception_type=exception_type,
                stack_trace=stack_trace,
                metadata=metadata or {},
            ),
            original=message,
        )

    def log_exception(
        self,
        exc: Exception,
        component: ErrorComponent,
        stage: str,
        domain: str,
        url: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        error_type: Optional[ErrorType] = None,
        include_stack_trace: Optional[bool] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Record a caught exception, classified by ErrorRecord.from_exception().

        Example:
            >>> try:
            ...     await surface.navigate(url)
            ... except NavigationError as e:
            ...     get_error_logger().log_exception(
            ...         e,
            ...         component=ErrorComponent.HARVESTER,
            ...         stage=ErrorStage.NAVIGATE,
            ...         domain=domain_of(url),
            ...         url=url,
            ...     )
        """
        return self._record(
            lambda: ErrorRecord.from_exception(
                exc,
                component=component,
                stage=stage,
                domain=domain,
                url=url,
                severity=severity,
                error_type=error_type,
                include_stack_trace=include_stack_trace,
                metadata=metadata,
            ),
            original=type(exc).__name__,
        )

    def _record(self, build: Callable[[], ErrorRecord], original: str) -> bool:
        try:
            record = build()
        except Exception as e:
            logger.error(f"Error logger could not build record: {e} - Original: {original}")
            return False
        return self._write_to_file(record)

    def _day_file(self) -> Path:
        return self._log_dir / f"errors_{datetime.now(timezone.utc):%Y%m%d}.jsonl"

    def _write_to_file(self, record: ErrorRecord) -> bool:
        try:
            with open(self._day_file(), "a", encoding="utf-8") as f:
                f.write(json.dumps(record.model_dump(), ensure_ascii=False) + "\n")
        except OSError as e:
            logger.error(f"Error log write failed: {e}")
            return False
        return True

    def recent_errors(
        self,
        domain: str,
        limit: int = 100,
        severity: Optional[ErrorSeverity] = None,
    ) -> List[Dict[str, Any]]:
        """
        Today's records for a domain, newest first.

        Args:
            domain: Gallery host to filter on
            limit: Maximum rows returned
            severity: Only rows with this severity
        """
        path = self._day_file()
        if not path.exists():
            return []

        rows: List[Dict[str, Any]] = []
        for line in path.read_text("utf-8").splitlines():
            try:
                row = json.loads(line)
            except json.JSONDecodeError:
                continue
            if row.get("domain") != domain:
                continue
            if severity and row.get("severity") != severity.value:
                continue
            rows.append(row)
        return rows[::-1][:limit]


def get_error_logger() -> ErrorLogger:
    """Process-wide ErrorLogger, created on first use."""
    global _error_logger
    if _error_logger is None:
        _error_logger = ErrorLogger()
    return _error_logger
