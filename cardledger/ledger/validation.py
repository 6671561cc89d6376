"""Batch checks applied before any ledger transaction opens."""

from collections.abc import Sequence

from cardledger.config import ROW_UPLOAD_LIMIT
from cardledger.models.failure import EmptyBatchError, TooManyRowsError, ZeroQuantityError
from cardledger.models.inventory import CardRow, RequestedCards, TransferredCards


def validate_rows(
    operation: str,
    rows: Sequence[CardRow] | Sequence[RequestedCards] | Sequence[TransferredCards],
) -> None:
    """
    Reject a submitted batch as a whole.

    Raises:
        EmptyBatchError: No rows were submitted
        TooManyRowsError: More than ROW_UPLOAD_LIMIT rows were submitted
        ZeroQuantityError: The first row with zero or fewer cards
    """
    if not rows:
        raise EmptyBatchError(operation)
    if len(rows) > ROW_UPLOAD_LIMIT:
        raise TooManyRowsError(len(rows), ROW_UPLOAD_LIMIT)
    for row in rows:
        if row.quantity <= 0:
            raise ZeroQuantityError(row)
