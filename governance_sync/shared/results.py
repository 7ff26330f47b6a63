"""
Outcome of a ledger read pass.

A refresh over many proposals should not fail because one record could not
be read, so per-record problems travel as warnings on a successful Result.
A Result only fails when nothing usable came back (e.g. the proposal count
itself was unreadable).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ErrorSeverity(Enum):
    WARNING = "warning"  # one record skipped or kept stale
    ERROR = "error"  # the whole read failed


@dataclass
class ProcessingError:
    """
    One problem seen during a read pass.

    ``context`` names the record involved (``proposal_id``, ``block_number``)
    so callers can tell which rows of the view are stale.
    """

    source: str
    message: str
    severity: ErrorSeverity
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
        }


@dataclass
class Result(Generic[T]):
    """Data of a read pass plus everything that went wrong along the way."""

    success: bool
    data: Optional[T] = None
    errors: List[ProcessingError] = field(default_factory=list)

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail_with_message(
        cls,
        source: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        exception: Optional[Exception] = None,
    ) -> "Result[T]":
        error = ProcessingError(
            source=source,
            message=message,
            severity=ErrorSeverity.ERROR,
            context=context or {},
            exception=exception,
        )
        return cls(success=False, errors=[error])

    def add_warning(
        self,
        source: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        exception: Optional[Exception] = None,
    ) -> "Result[T]":
        """Record a per-record problem without failing the pass."""
        self.errors.append(
            ProcessingError(
                source=source,
                message=message,
                severity=ErrorSeverity.WARNING,
                context=context or {},
                exception=exception,
            )
        )
        return self

    def unwrap(self) -> T:
        """
        Return the data of a successful result.

        A failed result re-raises the exception that caused it, or a
        RuntimeError with the messages when none was captured.
        """
        if self.success:
            return self.data
        for error in self.errors:
            if error.exception is not None:
                raise error.exception
        raise RuntimeError("; ".join(self.get_error_messages()))

    def has_warnings(self) -> bool:
        return any(e.severity == ErrorSeverity.WARNING for e in self.errors)

    def get_error_messages(self) -> List[str]:
        return [e.message for e in self.errors]


@dataclass
class RefreshSummary:
    """
    What the last refresh pass did.

    Kept by the reconciler so the presentation layer can show what the last
    sync did without digging through logs.
    """

    kind: str  # "full" or "targeted"

    records_requested: int = 0
    records_committed: int = 0
    records_stale: int = 0
    records_dropped: int = 0
    statuses_refreshed: int = 0

    errors: List[ProcessingError] = field(default_factory=list)

    def add_error_from_result(self, result: Result) -> None:
        self.errors.extend(result.errors)

    def warning_count(self) -> int:
        return sum(
            1 for e in self.errors if e.severity == ErrorSeverity.WARNING
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "counts": {
                "records_requested": self.records_requested,
                "records_committed": self.records_committed,
                "records_stale": self.records_stale,
                "records_dropped": self.records_dropped,
                "statuses_refreshed": self.statuses_refreshed,
            },
            "warning_count": self.warning_count(),
            "errors": [e.to_dict() for e in self.errors],
        }
