"""
Inventory Domain Models.

Plain values exchanged with the ledger. Users are referenced by handle
(username or chat-platform id); the ledger resolves handles to rows.

INVARIANTS:
- A Card names one exact printing (catalog_id + foil)
- Quantities on submitted lines are positive; zero rows never persist
- All models are frozen (immutable after construction)
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class User:
    """
    A registered member of the inventory community.

    Attributes:
        id: Database identifier
        handle: Stable external handle
        email: Optional display email
    """

    id: int
    handle: str
    email: str = ""


@dataclass(frozen=True, slots=True)
class Card:
    """
    An exact printing as recorded on stock and transfer rows.

    Attributes:
        name: Display name
        oracle_id: Logical card identity, shared by all printings
        catalog_id: Scryfall id of this printing
        foil: Whether the copies are foil
    """

    name: str
    oracle_id: str
    catalog_id: str
    foil: bool = False


@dataclass(frozen=True, slots=True)
class CardRow:
    """A stock entry: `quantity` copies of `card` owned by `owner`, held by `keeper`."""

    card: Card
    owner: str
    keeper: str
    quantity: int


@dataclass(frozen=True, slots=True)
class RequestedCards:
    """One line of a request: a logical card and how many copies are wanted."""

    oracle_id: str
    name: str
    quantity: int


@dataclass(frozen=True, slots=True)
class Request:
    """
    An open or closed solicitation for cards.

    `quantity` is the sum over all lines. `cards` is only populated by
    single-request reads, one page at a time.
    """

    id: int
    requestor: str
    opened: datetime
    closed: datetime | None = None
    quantity: int = 0
    cards: tuple[RequestedCards, ...] = field(default_factory=tuple)

    @property
    def is_open(self) -> bool:
        return self.closed is None


@dataclass(frozen=True, slots=True)
class TransferredCards:
    """One line of a transfer; `owner` is the owner of record and never changes."""

    card: Card
    owner: str
    quantity: int


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    A custody move from `from_user` to `to_user`.

    Custody moves when the transfer is opened; closing only stamps `closed`.
    """

    id: int
    to_user: str
    from_user: str
    opened: datetime
    request_id: int | None = None
    closed: datetime | None = None
    quantity: int = 0
    cards: tuple[TransferredCards, ...] = field(default_factory=tuple)

    @property
    def is_open(self) -> bool:
        return self.closed is None
