"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines all custom exceptions for the view maintenance lab.

- Provides clear exception hierarchy
- Separates retryable from non-retryable failures
- Carries context for debugging and reporting
- Serializes cleanly into benchmark reports

============================================================
EXCEPTION HIERARCHY
============================================================
ViewMaintenanceError (base)
├── StoreUnavailable
├── DefinitionIncompatible
├── ComputeError
│   └── EmptyRecordStore
├── ConfigurationError
│   └── InvalidConfigError
├── IngestionError
└── BenchmarkCancelled

============================================================
RETRY POLICY
============================================================
Strategies never retry. The harness records the failure
and stops the run. Only StoreUnavailable is worth retrying,
and that decision belongs to the caller.

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels for reporting."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ============================================================
# ERROR CLASSIFICATION
# ============================================================

class ErrorClassification(Enum):
    """Classification of error recoverability."""

    RECOVERABLE = "recoverable"
    """Error is surfaced with partial results intact."""

    TRANSIENT = "transient"
    """Temporary error, retrying the whole operation may succeed."""

    NON_RECOVERABLE = "non_recoverable"
    """Permanent error, the caller must change its input."""


# ============================================================
# BASE EXCEPTION
# ============================================================

class ViewMaintenanceError(Exception):
    """
    Base exception for all view maintenance errors.

    All exceptions carry:
    - severity: for reporting
    - context: for debugging
    - classification: for retry decisions
    - timestamp: when the error occurred
    """

    default_severity: Severity = Severity.MEDIUM
    default_classification: ErrorClassification = ErrorClassification.RECOVERABLE

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        classification: Optional[ErrorClassification] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.classification = classification or self.default_classification
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    @property
    def is_retryable(self) -> bool:
        """Check if the caller may retry the whole operation."""
        return self.classification == ErrorClassification.TRANSIENT

    @property
    def error_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging/reporting."""
        return {
            "type": self.error_type,
            "message": self.message,
            "severity": self.severity.value,
            "classification": self.classification.value,
            "retryable": self.is_retryable,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_log_format(self) -> str:
        """Format exception for structured logging."""
        ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        base = f"[{self.severity.value.upper()}] {self.error_type}: {self.message}"
        return f"{base} | {ctx_str}" if ctx_str else base


# ============================================================
# STORE ERRORS
# ============================================================

class StoreUnavailable(ViewMaintenanceError):
    """
    The backing store cannot be reached or is not ready.

    Raised on connection/transport failures, on expired
    deadlines, and on reads against a snapshot that is
    being rebuilt.
    """

    default_severity = Severity.HIGH
    default_classification = ErrorClassification.TRANSIENT

    def __init__(
        self,
        message: str,
        store: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if store:
            context["store"] = store

        super().__init__(message, context=context, **kwargs)


# ============================================================
# DEFINITION ERRORS
# ============================================================

class DefinitionIncompatible(ViewMaintenanceError):
    """
    Old and new metric definitions cannot be bridged.

    Not retryable: supply a compatible definition or fall
    back to full recomputation.
    """

    default_severity = Severity.MEDIUM
    default_classification = ErrorClassification.NON_RECOVERABLE

    def __init__(
        self,
        message: str,
        strategy: Optional[str] = None,
        old_shape: Optional[str] = None,
        new_shape: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if strategy:
            context["strategy"] = strategy
        if old_shape:
            context["old_shape"] = old_shape
        if new_shape:
            context["new_shape"] = new_shape

        super().__init__(message, context=context, **kwargs)


# ============================================================
# COMPUTE ERRORS
# ============================================================

class ComputeError(ViewMaintenanceError):
    """Unexpected arithmetic or storage engine failure."""

    default_severity = Severity.HIGH
    default_classification = ErrorClassification.RECOVERABLE

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if operation:
            context["operation"] = operation

        super().__init__(message, context=context, **kwargs)


class EmptyRecordStore(ComputeError):
    """The record store holds no rows to score."""

    default_severity = Severity.MEDIUM

    def __init__(self, table: str):
        super().__init__(
            message=f"Record store '{table}' is empty; load records before benchmarking",
            operation="count_records",
            context={"table": table},
        )


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(ViewMaintenanceError):
    """Error in configuration."""

    default_severity = Severity.HIGH
    default_classification = ErrorClassification.NON_RECOVERABLE


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid configuration for {key}: {reason}",
            context={
                "config_key": key,
                "actual_value": str(value)[:100],
                "reason": reason,
            },
        )


# ============================================================
# INGESTION ERRORS
# ============================================================

class IngestionError(ViewMaintenanceError):
    """Failed to bulk-load records into the store."""

    default_severity = Severity.HIGH
    default_classification = ErrorClassification.NON_RECOVERABLE

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if source:
            context["source"] = source

        super().__init__(message, context=context, **kwargs)


# ============================================================
# RUN CONTROL
# ============================================================

class BenchmarkCancelled(ViewMaintenanceError):
    """
    A benchmark run was cancelled by its caller.

    Propagates out of the harness; never recorded as a
    sample error.
    """

    default_severity = Severity.LOW
    default_classification = ErrorClassification.NON_RECOVERABLE


# ============================================================
# EXCEPTION UTILITIES
# ============================================================

def wrap_exception(
    exc: BaseException,
    wrapper_class: type = ComputeError,
    message: Optional[str] = None,
    **kwargs,
) -> ViewMaintenanceError:
    """Wrap a foreign exception in a ViewMaintenanceError."""
    if isinstance(exc, ViewMaintenanceError):
        return exc
    msg = message or f"{type(exc).__name__}: {exc}"
    return wrapper_class(message=msg, cause=exc, **kwargs)


__all__ = [
    "Severity",
    "ErrorClassification",
    "ViewMaintenanceError",
    "StoreUnavailable",
    "DefinitionIncompatible",
    "ComputeError",
    "EmptyRecordStore",
    "ConfigurationError",
    "InvalidConfigError",
    "IngestionError",
    "BenchmarkCancelled",
    "wrap_exception",
]
