"""
Ledger Failure Taxonomy and Response Envelope.

Every failure the ledger reports is a LedgerError subclass carrying a
FailureKind, so the HTTP layer can classify it without string matching.

Kinds:
- NOT_FOUND: a user, request, transfer, stock entry or card is absent
- VALIDATION_FAILED: caller input rejected before any transaction opens
- INSUFFICIENT_STOCK: a transfer line exceeds what the source keeps
- AMBIGUOUS: a name-only card lookup matches several logical cards
- UNIMPLEMENTED: an operation a backend deliberately does not offer
- SERVICE_UNAVAILABLE: the card catalog was not loaded
- TRANSACTION_FAILED: commit or rollback failed
- STORAGE_ERROR: any other database failure, wrapped with context

INVARIANT: a rollback failure is never discarded; TransactionError keeps
both the original cause and the rollback error.
"""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from cardledger.models.inventory import CardRow, RequestedCards, TransferredCards


class FailureKind(str, Enum):
    """Classification of failure types."""

    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    INSUFFICIENT_STOCK = "insufficient_stock"
    AMBIGUOUS = "ambiguous"
    UNIMPLEMENTED = "unimplemented"
    TRANSACTION_FAILED = "transaction_failed"
    STORAGE_ERROR = "storage_error"
    SERVICE_UNAVAILABLE = "service_unavailable"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


T = TypeVar("T")


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )


class ApiResponse(BaseModel, Generic[T]):
    """Response envelope used for error bodies."""

    outcome: OutcomeType = Field(
        ...,
        description="High-level classification of the result",
    )
    data: T | None = Field(
        default=None,
        description="Response data (present on success)",
    )
    failure: FailureDetail | None = Field(
        default=None,
        description="Failure details (present on non-success)",
    )

    @classmethod
    def known_failure(
        cls,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
    ) -> "ApiResponse[Any]":
        """Create a known failure response."""
        return cls(
            outcome=OutcomeType.KNOWN_FAILURE,
            failure=FailureDetail(kind=kind, message=message, detail=detail),
        )

    @classmethod
    def unknown_failure(cls, detail: str | None = None) -> "ApiResponse[Any]":
        """Create an unknown failure response for unexpected exceptions."""
        return cls(
            outcome=OutcomeType.UNKNOWN_FAILURE,
            failure=FailureDetail(
                kind=FailureKind.STORAGE_ERROR,
                message="The ledger failed unexpectedly.",
                detail=detail,
            ),
        )


# =============================================================================
# LEDGER ERRORS
# =============================================================================


class LedgerError(Exception):
    """
    Base class for every failure the ledger reports.

    Subclasses fix the kind and status code; callers match on the class.
    """

    kind: FailureKind = FailureKind.STORAGE_ERROR
    status_code: int = 500

    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_response(self) -> ApiResponse[Any]:
        """Convert to an ApiResponse."""
        return ApiResponse.known_failure(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
        )


# --- Not found ---


class NotFoundError(LedgerError):
    """A referenced entity does not exist."""

    kind = FailureKind.NOT_FOUND
    status_code = 404


class UserNotFoundError(NotFoundError):
    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"user {handle!r} does not exist")


class RequestNotFoundError(NotFoundError):
    """Raised for unknown request ids and for closing an already-closed request."""

    def __init__(self, request_id: int):
        self.request_id = request_id
        super().__init__(f"request {request_id} does not exist")


class TransferNotFoundError(NotFoundError):
    """Raised for unknown, canceled or already-closed transfer ids."""

    def __init__(self, transfer_id: int):
        self.transfer_id = transfer_id
        super().__init__(f"transfer {transfer_id} does not exist")


class StockEntryNotFoundError(NotFoundError):
    def __init__(self, catalog_id: str, foil: bool, owner: str, keeper: str):
        self.catalog_id = catalog_id
        self.foil = foil
        self.owner = owner
        self.keeper = keeper
        super().__init__(
            f"no stock of {catalog_id} (foil={foil}) owned by {owner!r} kept by {keeper!r}"
        )


class CardNotFoundError(NotFoundError):
    """A catalog lookup key is absent from the identity cache."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"didn't find {key} in card catalog")


# --- Validation ---


class ValidationError(LedgerError):
    """Caller input rejected before any transaction opens."""

    kind = FailureKind.VALIDATION_FAILED
    status_code = 400


class EmptyBatchError(ValidationError):
    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"{operation}: no rows submitted")


class TooManyRowsError(ValidationError):
    def __init__(self, submitted: int, limit: int):
        self.submitted = submitted
        self.limit = limit
        super().__init__(f"more than {limit} rows", detail=f"{submitted} rows submitted")


class ZeroQuantityError(ValidationError):
    """
    A submitted line has zero or fewer cards.

    `row` is the offending line exactly as submitted.
    """

    def __init__(self, row: CardRow | RequestedCards | TransferredCards):
        self.row = row
        super().__init__(
            "zero or fewer cards",
            detail=f"{row.quantity} copies of {_row_label(row)}",
        )


class DuplicateUserError(ValidationError):
    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"user {handle!r} already exists")


class CatalogFormatError(ValidationError):
    """The bulk catalog could not be decoded."""


# --- Stock ---


class InsufficientStockError(LedgerError):
    """
    A transfer line asks for more copies than the source user keeps.

    The whole transfer is rolled back; `line` identifies what failed.
    """

    kind = FailureKind.INSUFFICIENT_STOCK
    status_code = 400

    def __init__(self, line: TransferredCards, from_user: str, held: int):
        self.line = line
        self.from_user = from_user
        self.held = held
        self.requested = line.quantity
        super().__init__(
            f"too few cards to transfer {line.quantity} copies of {line.card.catalog_id}",
            detail=(
                f"{from_user!r} keeps {held} of {line.card.name!r} owned by {line.owner!r}, "
                f"short by {self.shortfall}"
            ),
        )

    @property
    def shortfall(self) -> int:
        return self.requested - self.held


# --- Identity ---


class AmbiguousCardError(LedgerError):
    """A name alone maps to more than one logical card."""

    kind = FailureKind.AMBIGUOUS
    status_code = 400

    def __init__(self, name: str, oracle_ids: list[str]):
        self.name = name
        self.oracle_ids = sorted(oracle_ids)
        super().__init__(
            f"name {name!r} matches {len(oracle_ids)} cards",
            detail=", ".join(self.oracle_ids),
        )


# --- Capability ---


class UnimplementedError(LedgerError):
    kind = FailureKind.UNIMPLEMENTED
    status_code = 501

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"{operation} is unimplemented")


class CatalogUnavailableError(LedgerError):
    """No card catalog was loaded at startup."""

    kind = FailureKind.SERVICE_UNAVAILABLE
    status_code = 503

    def __init__(self) -> None:
        super().__init__(
            "card catalog not loaded",
            detail="Run the catalog download job and restart.",
        )


# --- Storage ---


class StorageError(LedgerError):
    """A database error, wrapped with the operation that hit it."""

    kind = FailureKind.STORAGE_ERROR
    status_code = 500

    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        self.cause = cause
        super().__init__(f"error {operation}: {cause}")


class TransactionError(LedgerError):
    """
    Commit or rollback failed.

    When rollback itself failed, `rollback_error` is set and the data may be
    inconsistent; both errors are kept.
    """

    kind = FailureKind.TRANSACTION_FAILED
    status_code = 500

    def __init__(
        self,
        operation: str,
        cause: BaseException,
        rollback_error: BaseException | None = None,
    ):
        self.operation = operation
        self.cause = cause
        self.rollback_error = rollback_error
        message = f"error {operation}: {cause}"
        if rollback_error is not None:
            message += f", unable to rollback: {rollback_error}"
        super().__init__(message)


def _row_label(row: CardRow | RequestedCards | TransferredCards) -> str:
    if isinstance(row, RequestedCards):
        return f"{row.name} ({row.oracle_id})"
    return f"{row.card.name} ({row.card.catalog_id})"
