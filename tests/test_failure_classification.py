"""Tests for the ledger failure taxonomy."""

import pytest

from cardledger.models.failure import (
    AmbiguousCardError,
    ApiResponse,
    CardNotFoundError,
    CatalogUnavailableError,
    EmptyBatchError,
    FailureKind,
    InsufficientStockError,
    LedgerError,
    OutcomeType,
    RequestNotFoundError,
    StorageError,
    TransactionError,
    UnimplementedError,
    ZeroQuantityError,
)
from cardledger.models.inventory import Card, RequestedCards, TransferredCards

BOLT = Card(name="Lightning Bolt", oracle_id="bolt-oracle", catalog_id="bolt-m10-en")


class TestStatusMapping:
    @pytest.mark.parametrize(
        ("error", "kind", "status_code"),
        [
            (RequestNotFoundError(7), FailureKind.NOT_FOUND, 404),
            (CardNotFoundError("x"), FailureKind.NOT_FOUND, 404),
            (EmptyBatchError("adding cards"), FailureKind.VALIDATION_FAILED, 400),
            (
                InsufficientStockError(TransferredCards(BOLT, "alice", 3), "alice", 1),
                FailureKind.INSUFFICIENT_STOCK,
                400,
            ),
            (AmbiguousCardError("Mountain", ["b", "a"]), FailureKind.AMBIGUOUS, 400),
            (UnimplementedError("modifying quantity"), FailureKind.UNIMPLEMENTED, 501),
            (CatalogUnavailableError(), FailureKind.SERVICE_UNAVAILABLE, 503),
            (StorageError("listing", RuntimeError("x")), FailureKind.STORAGE_ERROR, 500),
            (
                TransactionError("adding", RuntimeError("x")),
                FailureKind.TRANSACTION_FAILED,
                500,
            ),
        ],
    )
    def test_kind_and_status(self, error: LedgerError, kind: FailureKind, status_code: int) -> None:
        assert error.kind == kind
        assert error.status_code == status_code
        assert error.to_response().failure.kind == kind


class TestMessages:
    def test_unimplemented_is_stable(self) -> None:
        """Callers can detect capability gaps by class and by message."""
        error = UnimplementedError("modifying quantity")

        assert str(error) == "modifying quantity is unimplemented"

    def test_zero_quantity_names_the_row(self) -> None:
        row = RequestedCards(oracle_id="bolt-oracle", name="Lightning Bolt", quantity=0)

        error = ZeroQuantityError(row)

        assert error.row is row
        assert error.detail == "0 copies of Lightning Bolt (bolt-oracle)"

    def test_insufficient_stock_shortfall(self) -> None:
        error = InsufficientStockError(TransferredCards(BOLT, "carol", 5), "alice", 2)

        assert error.requested == 5
        assert error.shortfall == 3
        assert "short by 3" in error.detail

    def test_ambiguous_sorts_oracle_ids(self) -> None:
        error = AmbiguousCardError("Mountain", ["b", "a"])

        assert error.oracle_ids == ["a", "b"]
        assert error.detail == "a, b"

    def test_transaction_error_keeps_both_errors(self) -> None:
        error = TransactionError("opening transfer", ValueError("bad"), RuntimeError("gone"))

        assert str(error) == "error opening transfer: bad, unable to rollback: gone"


class TestApiResponse:
    def test_known_failure_envelope(self) -> None:
        body = RequestNotFoundError(7).to_response().model_dump(mode="json")

        assert body == {
            "outcome": "known_failure",
            "data": None,
            "failure": {
                "kind": "not_found",
                "message": "request 7 does not exist",
                "detail": None,
            },
        }

    def test_unknown_failure_envelope(self) -> None:
        response = ApiResponse.unknown_failure("KeyError")

        assert response.outcome == OutcomeType.UNKNOWN_FAILURE
        assert response.failure is not None
        assert response.failure.detail == "KeyError"
