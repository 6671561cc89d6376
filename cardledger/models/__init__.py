from cardledger.models.failure import (
    AmbiguousCardError,
    ApiResponse,
    CardNotFoundError,
    CatalogFormatError,
    CatalogUnavailableError,
    DuplicateUserError,
    EmptyBatchError,
    FailureDetail,
    FailureKind,
    InsufficientStockError,
    LedgerError,
    NotFoundError,
    OutcomeType,
    RequestNotFoundError,
    StockEntryNotFoundError,
    StorageError,
    TooManyRowsError,
    TransactionError,
    TransferNotFoundError,
    UnimplementedError,
    UserNotFoundError,
    ValidationError,
    ZeroQuantityError,
)
from cardledger.models.inventory import (
    Card,
    CardRow,
    Request,
    RequestedCards,
    Transfer,
    TransferredCards,
    User,
)

__all__ = [
    # Inventory records
    "Card",
    "CardRow",
    "Request",
    "RequestedCards",
    "Transfer",
    "TransferredCards",
    "User",
    # Failure classification
    "ApiResponse",
    "FailureDetail",
    "FailureKind",
    "OutcomeType",
    "LedgerError",
    "NotFoundError",
    "UserNotFoundError",
    "RequestNotFoundError",
    "TransferNotFoundError",
    "StockEntryNotFoundError",
    "CardNotFoundError",
    "ValidationError",
    "EmptyBatchError",
    "TooManyRowsError",
    "ZeroQuantityError",
    "DuplicateUserError",
    "CatalogFormatError",
    "InsufficientStockError",
    "AmbiguousCardError",
    "UnimplementedError",
    "CatalogUnavailableError",
    "StorageError",
    "TransactionError",
]
