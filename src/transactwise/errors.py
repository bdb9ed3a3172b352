"""Exception hierarchy for TransactWise.

Every user action is one failure domain: exceptions propagate to the
operation boundary (the session or the CLI), which reports them. Nothing
here is retried automatically.
"""

from typing import Any


class TransactWiseError(Exception):
    """Base exception for all TransactWise errors."""


class InputError(TransactWiseError):
    """Uploaded data is empty, malformed, or has no usable rows."""


class ReasoningServiceError(TransactWiseError):
    """The reasoning service failed or returned output that violates its schema."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class MatchingError(ReasoningServiceError):
    """Automated transaction matching failed as a unit."""


class InterlinkError(ReasoningServiceError):
    """Account interlinking failed before any entity was mutated."""


class DocumentStoreError(TransactWiseError):
    """A document store read or write failed."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ReviewError(TransactWiseError):
    """Invalid operation on the review working set."""


class TransactionNotFoundError(ReviewError):
    """No working-set row has the given id."""

    def __init__(self, row_id: str):
        super().__init__(f"Transaction '{row_id}' is not in the working set")
        self.row_id = row_id


class ImmutableTransactionError(ReviewError):
    """A confirmed transaction cannot be edited."""

    def __init__(self, row_id: str):
        super().__init__(f"Transaction '{row_id}' is confirmed and can no longer be edited")
        self.row_id = row_id


class OperationInProgressError(TransactWiseError):
    """Another operation on the same working set is still running."""

    def __init__(self, operation: str, running: str):
        super().__init__(f"Cannot start '{operation}' while '{running}' is in progress")
        self.operation = operation
        self.running = running
