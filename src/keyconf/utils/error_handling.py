"""
Error taxonomy and issue reporting for keyconf.

This module provides:
- Exception classes for every failure the engine can raise, each carrying
  the process exit code the CLI should use for it
- Error categories for logging and aggregation
- ``Issue`` records for problems that are reported rather than raised
  (bad change lines, missing required options, unknown directives)
"""

from dataclasses import dataclass
from enum import Enum

from keyconf.core.utils.logger import log_error, log_warning

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


class ErrorCategory(Enum):
    """Error categories for better organization."""

    USAGE = "USAGE"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    IO = "IO"
    UNAVAILABLE = "UNAVAILABLE"
    NOTIFY = "NOTIFY"


class Severity(Enum):
    """Severity of a reported issue."""

    WARNING = "warning"
    ERROR = "error"


class KeyconfError(Exception):
    """Base class for all keyconf errors."""

    category = ErrorCategory.VALIDATION
    exit_code = EXIT_FAILURE


class UsageError(KeyconfError):
    """Malformed invocation (missing/extra arguments, unknown flag)."""

    category = ErrorCategory.USAGE
    exit_code = EXIT_USAGE


class NotFoundError(KeyconfError):
    """Unknown component name or index."""

    category = ErrorCategory.NOT_FOUND


class ValidationError(KeyconfError):
    """Bad option value or missing required option."""

    category = ErrorCategory.VALIDATION


class ConfigFileError(KeyconfError):
    """A configuration file could not be read or written."""

    category = ErrorCategory.IO

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class ComponentUnavailableError(KeyconfError):
    """The component executable is missing, failed or timed out."""

    category = ErrorCategory.UNAVAILABLE


class NotifyError(KeyconfError):
    """A reload signal could not be delivered. Never affects the exit code."""

    category = ErrorCategory.NOTIFY
    exit_code = EXIT_OK


@dataclass(frozen=True)
class Issue:
    """A problem found while processing, reported instead of raised."""

    component: str
    message: str
    option: str | None = None
    line: int | None = None
    severity: Severity = Severity.ERROR

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def __str__(self) -> str:
        where = self.component
        if self.line is not None:
            where += f":{self.line}"
        if self.option:
            where += f": {self.option}"
        return f"{self.severity.value}: {where}: {self.message}"


def report_issue(issue: Issue) -> None:
    """Log an issue at the level matching its severity."""
    if issue.is_error:
        log_error(issue.component, issue.message, _issue_context(issue))
    else:
        log_warning(issue.component, issue.message, _issue_context(issue))


def _issue_context(issue: Issue) -> str:
    parts = []
    if issue.option:
        parts.append(f"option={issue.option}")
    if issue.line is not None:
        parts.append(f"line={issue.line}")
    return ", ".join(parts)


def issue_from_exception(component: str, error: KeyconfError) -> Issue:
    """Turn a per-component failure into an error issue for aggregation."""
    return Issue(component=component, message=str(error))
