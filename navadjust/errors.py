# -*- coding: utf-8 -*-
"""Error handling for navigation adjustment operations.

Helpers inside the library raise :class:`NavAdjustException` subclasses.
Public operations catch them at the boundary and return an
:class:`OperationResult` carrying :class:`NavAdjustMessage` records, so no
exception from this package reaches a collaborator.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING
from typing import Any

from navadjust.enums import Severity

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavAdjustMessage:
    """A status or log message produced by an operation.

    This is a data record, not an exception.

    Attributes:
        severity: INFO, WARNING or ERROR
        message: Human-readable message
        crossing_id: Crossing the message refers to (optional)
        tie_index: Tie within the crossing (optional)
        file_id: File the message refers to (optional)
        section_id: Section within the file (optional)
    """

    severity: Severity
    message: str
    crossing_id: int | None = None
    tie_index: int | None = None
    file_id: int | None = None
    section_id: int | None = None

    def __str__(self) -> str:
        """Format as human-readable message string."""
        base = f"{self.severity.value}: {self.message}"
        context = []
        if self.crossing_id is not None:
            context.append(f"crossing {self.crossing_id}")
        if self.tie_index is not None:
            context.append(f"tie {self.tie_index}")
        if self.file_id is not None:
            context.append(f"file {self.file_id}")
        if self.section_id is not None:
            context.append(f"section {self.section_id}")
        if context:
            base += f" ({', '.join(context)})"
        return base

    @classmethod
    def info(cls, message: str, **context: int | None) -> NavAdjustMessage:
        return cls(severity=Severity.INFO, message=message, **context)

    @classmethod
    def warning(cls, message: str, **context: int | None) -> NavAdjustMessage:
        return cls(severity=Severity.WARNING, message=message, **context)

    @classmethod
    def error(cls, message: str, **context: int | None) -> NavAdjustMessage:
        return cls(severity=Severity.ERROR, message=message, **context)


class NavAdjustException(Exception):  # noqa: N818
    """Base exception for navigation adjustment failures.

    Attributes:
        message: Error message
        context: Keyword context copied onto the message record
    """

    def __init__(self, message: str, **context: int | None):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_message(self) -> NavAdjustMessage:
        """Convert exception to a NavAdjustMessage record."""
        return NavAdjustMessage(
            severity=Severity.ERROR,
            message=self.message,
            **self.context,
        )


class TieLimitError(NavAdjustException):
    """Raised when a crossing already holds the maximum number of ties."""


class TieConsistencyError(NavAdjustException):
    """Raised when tie bookkeeping cannot be resolved (e.g. no free sample)."""


class GlobalTieError(NavAdjustException):
    """Raised for invalid global tie operations."""


class ProjectStructureError(NavAdjustException):
    """Raised when a handle does not refer to an existing file, section or tie."""


class InversionPreconditionError(NavAdjustException):
    """Raised when the tie set cannot be inverted.

    Attributes:
        problems: One message per offending crossing, tie or global tie
    """

    def __init__(self, message: str, problems: list[NavAdjustMessage] | None = None):
        super().__init__(message)
        self.problems = problems or []


@dataclass
class OperationResult:
    """Outcome of a public operation.

    Attributes:
        success: Whether the operation completed
        messages: Messages produced along the way
        value: Operation-specific payload (tie index, report, ...)
    """

    success: bool
    messages: list[NavAdjustMessage] = field(default_factory=list)
    value: Any = None

    def __bool__(self) -> bool:
        return self.success

    @property
    def errors(self) -> list[NavAdjustMessage]:
        return [m for m in self.messages if m.severity == Severity.ERROR]

    @classmethod
    def ok(cls, value: Any = None, *messages: NavAdjustMessage) -> OperationResult:
        return cls(success=True, messages=list(messages), value=value)

    @classmethod
    def failed(cls, exc: NavAdjustException) -> OperationResult:
        """Build a failed result from an exception, keeping its problem list."""
        messages = [exc.to_message()]
        if isinstance(exc, InversionPreconditionError):
            messages.extend(exc.problems)
        return cls(success=False, messages=messages)


def operation(func: Callable[..., OperationResult]) -> Callable[..., OperationResult]:
    """Convert package exceptions raised by a public operation into a failed result."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> OperationResult:
        try:
            return func(*args, **kwargs)
        except NavAdjustException as exc:
            logger.warning("%s failed: %s", func.__name__, exc.message)
            return OperationResult.failed(exc)

    return wrapper
