"""Unit-of-work and transaction errors.

These are system failures: they trigger a full rollback plus compensation
and surface to callers only as a generic failure message.
"""

from __future__ import annotations

from counsel.domain.exceptions import CounselError


class UnitOfWorkError(CounselError):
    """Raised when a unit-of-work lifecycle step fails.

    Attributes:
        operation: Lifecycle step that failed (begin, commit, rollback, ...).
        cause: Underlying exception, if any.
        transaction_id: Transaction identifier, if one was assigned.
    """

    def __init__(
        self,
        message: str,
        operation: str,
        cause: BaseException | None = None,
        transaction_id: str | None = None,
    ) -> None:
        self.operation = operation
        self.cause = cause
        self.transaction_id = transaction_id
        super().__init__(message)


class TransientTransactionError(CounselError):
    """Raised by the store for errors that may succeed when retried."""


class TransactionConflictError(CounselError):
    """Raised at commit when a document read by the transaction changed.

    Conflicts are not retried by the commit loop; the whole operation
    fails and is rolled back.

    Attributes:
        collection: Collection of the conflicting document.
        document_id: Identifier of the conflicting document.
    """

    def __init__(self, collection: str, document_id: str) -> None:
        self.collection = collection
        self.document_id = document_id
        super().__init__(
            f"Write conflict on {collection}/{document_id}: "
            "document changed since it was read"
        )
