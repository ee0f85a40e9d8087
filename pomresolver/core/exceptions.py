"""
Structured Exception System for the POM resolver
================================================

Exception hierarchy with categorised error information and diagnostic data
for descriptor fetching, parsing and dependency resolution.

Features:
- Structured exception hierarchy
- Error categorization and severity levels
- Troubleshooting guidance
- Serialisable error payloads for the HTTP surface
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class ErrorSeverity(str, Enum):
    """Error severity levels for categorization."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error categories for classification."""
    CONFIGURATION = "configuration"
    NETWORK = "network"
    PARSING = "parsing"
    VALIDATION = "validation"
    DEPENDENCY = "dependency"
    CANCELLATION = "cancellation"
    SYSTEM = "system"


@dataclass
class ErrorContext:
    """Context information for errors."""
    component: str
    operation: str
    start_time: float = field(default_factory=time.time)
    coordinate: Optional[str] = None
    file_path: Optional[str] = None
    context_data: Dict[str, Any] = field(default_factory=dict)

    def add_diagnostic_data(self, key: str, value: Any) -> None:
        """Add diagnostic data to the context."""
        self.context_data[key] = value

    def get_duration(self) -> float:
        """Get the duration since context creation."""
        return time.time() - self.start_time


class PomResolverError(Exception):
    """
    Base exception class for the POM resolver.

    Carries a category, a severity and an ErrorContext so callers and the HTTP
    layer can report failures uniformly.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True,
        troubleshooting_steps: Optional[List[str]] = None,
        component: Optional[str] = None,
    ):
        super().__init__(message)

        self.error_id = str(uuid.uuid4())
        self.message = message
        self.severity = severity
        self.category = category
        self.timestamp = time.time()
        self.error_code = error_code or self._generate_error_code()

        self.component = component or (context.component if context else "unknown")
        self.context = context or ErrorContext(component=self.component, operation="unknown")
        self.cause = cause
        self.recoverable = recoverable
        self.troubleshooting_steps = list(troubleshooting_steps or [])

        self._log_error()

    def _generate_error_code(self) -> str:
        """Generate an error code based on category and timestamp."""
        timestamp_suffix = str(int(self.timestamp))[-6:]
        return f"{self.category.value.upper()}_{timestamp_suffix}"

    def _log_error(self):
        """Log the error with structured information."""
        logger = logging.getLogger(f"pomresolver.errors.{self.category.value}")

        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "component": self.context.component,
            "operation": self.context.operation,
            "recoverable": self.recoverable,
        }
        if self.context.coordinate:
            log_data["coordinate"] = self.context.coordinate
        if self.context.file_path:
            log_data["file_path"] = self.context.file_path

        logger.debug(self.message, extra={"extra_fields": log_data})

    def add_troubleshooting_step(self, step: str):
        """Add a troubleshooting step."""
        self.troubleshooting_steps.append(step)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_id": self.error_id,
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "timestamp": self.timestamp,
            "recoverable": self.recoverable,
            "context": {
                "component": self.context.component,
                "operation": self.context.operation,
                "coordinate": self.context.coordinate,
                "file_path": self.context.file_path,
                "data": self.context.context_data,
            },
            "troubleshooting_steps": self.troubleshooting_steps,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(PomResolverError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.CONFIGURATION)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("recoverable", False)
        super().__init__(message, **kwargs)
        self.config_key = config_key
        self.add_troubleshooting_step(
            f"Verify {config_key} configuration" if config_key else "Check configuration files"
        )
        self.add_troubleshooting_step("Validate POMRESOLVER_* environment variables")


class FetchError(PomResolverError):
    """Network or cache I/O failure while retrieving a descriptor."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.NETWORK)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, **kwargs)
        self.url = url
        if url:
            self.context.add_diagnostic_data("url", url)
        self.add_troubleshooting_step("Check network connectivity to the repository")
        self.add_troubleshooting_step("Verify the cache directory is writable")


class ParseError(PomResolverError):
    """Malformed descriptor document."""

    def __init__(self, message: str, file_path: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.PARSING)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("recoverable", False)
        super().__init__(message, **kwargs)
        if file_path:
            self.context.file_path = file_path
        self.add_troubleshooting_step("Delete the cached descriptor and fetch it again")


class InvalidScopeError(PomResolverError):
    """Unrecognised dependency scope literal."""

    def __init__(self, scope: str, **kwargs):
        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        kwargs.setdefault("severity", ErrorSeverity.MEDIUM)
        kwargs.setdefault("recoverable", False)
        super().__init__(f"Invalid dependency scope '{scope}'", **kwargs)
        self.scope = scope
        self.context.add_diagnostic_data("scope", scope)


class CyclicReferenceError(PomResolverError):
    """A parent or import chain leads back to a descriptor still under construction."""

    def __init__(self, cycle: Sequence[Any], **kwargs):
        kwargs.setdefault("category", ErrorCategory.DEPENDENCY)
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("recoverable", False)
        self.cycle = [str(item) for item in cycle]
        super().__init__("Cyclic reference: " + " -> ".join(self.cycle), **kwargs)
        self.context.add_diagnostic_data("cycle", self.cycle)


class OperationCancelledError(PomResolverError):
    """Resolution was cancelled through the resolution context."""

    def __init__(self, message: str = "Resolution cancelled", **kwargs):
        kwargs.setdefault("category", ErrorCategory.CANCELLATION)
        kwargs.setdefault("severity", ErrorSeverity.LOW)
        super().__init__(message, **kwargs)
