"""
SQLAlchemy ORM models for persistent storage.

Tables back the inventory dataclasses. Users are stored once and
referenced by id; every card row copies the printing's immutable fields.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator[datetime]):
    """
    A timezone-aware timestamp that reads back in UTC on every backend.

    SQLite has no timezone storage, so values are stored as UTC and naive
    results are tagged as UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> Any:
        if value is not None and value.tzinfo is not None:
            return value.astimezone(UTC)
        return value

    def process_result_value(self, value: Any, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class UserDB(Base):
    """A community member, addressed by a stable external handle."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    handle: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), default="")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), server_default=func.now())

    def __repr__(self) -> str:
        return f"<UserDB(id={self.id}, handle={self.handle})>"


class CardDB(Base):
    """
    Stock entry: copies of one printing owned by one user and kept by another.

    (catalog_id, foil, owner_id, keeper_id) is the natural key. Rows with
    quantity zero are deleted rather than stored.
    """

    __tablename__ = "cards"
    __table_args__ = (
        UniqueConstraint("catalog_id", "foil", "owner_id", "keeper_id", name="uq_card_stock"),
        CheckConstraint("quantity >= 0", name="ck_card_quantity"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    oracle_id: Mapped[str] = mapped_column(String(64), index=True)
    catalog_id: Mapped[str] = mapped_column(String(64))
    foil: Mapped[bool] = mapped_column(Boolean, default=False)
    owner_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    keeper_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    quantity: Mapped[int] = mapped_column(Integer)

    owner: Mapped["UserDB"] = relationship(foreign_keys=[owner_id], lazy="joined")
    keeper: Mapped["UserDB"] = relationship(foreign_keys=[keeper_id], lazy="joined")

    def __repr__(self) -> str:
        return f"<CardDB(card={self.name}, foil={self.foil}, qty={self.quantity})>"


class RequestDB(Base):
    """A solicitation for cards. `closed` is NULL while the request is open."""

    __tablename__ = "requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    requestor_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    opened: Mapped[datetime] = mapped_column(UTCDateTime())
    closed: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    requestor: Mapped["UserDB"] = relationship(lazy="joined")
    cards: Mapped[list["RequestedCardDB"]] = relationship(
        back_populates="request", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<RequestDB(id={self.id}, closed={self.closed})>"


class RequestedCardDB(Base):
    """One logical card wanted by a request."""

    __tablename__ = "requested_cards"
    __table_args__ = (UniqueConstraint("request_id", "oracle_id", name="uq_request_card"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    request_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("requests.id", ondelete="CASCADE"), index=True
    )
    oracle_id: Mapped[str] = mapped_column(String(64))
    name: Mapped[str] = mapped_column(String(255))
    quantity: Mapped[int] = mapped_column(Integer)

    request: Mapped["RequestDB"] = relationship(back_populates="cards")

    def __repr__(self) -> str:
        return f"<RequestedCardDB(card={self.name}, qty={self.quantity})>"


class TransferDB(Base):
    """A custody move between two users, optionally fulfilling a request."""

    __tablename__ = "transfers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    to_user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    from_user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    request_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("requests.id"), nullable=True, index=True
    )
    opened: Mapped[datetime] = mapped_column(UTCDateTime())
    closed: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    to_user: Mapped["UserDB"] = relationship(foreign_keys=[to_user_id], lazy="joined")
    from_user: Mapped["UserDB"] = relationship(foreign_keys=[from_user_id], lazy="joined")
    cards: Mapped[list["TransferredCardDB"]] = relationship(
        back_populates="transfer", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<TransferDB(id={self.id}, closed={self.closed})>"


class TransferredCardDB(Base):
    """One printing moved by a transfer. The owner of record is preserved."""

    __tablename__ = "transferred_cards"
    __table_args__ = (
        UniqueConstraint(
            "transfer_id", "catalog_id", "foil", "owner_id", name="uq_transferred_card"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transfer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("transfers.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    oracle_id: Mapped[str] = mapped_column(String(64))
    catalog_id: Mapped[str] = mapped_column(String(64))
    foil: Mapped[bool] = mapped_column(Boolean, default=False)
    owner_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    quantity: Mapped[int] = mapped_column(Integer)

    transfer: Mapped["TransferDB"] = relationship(back_populates="cards")
    owner: Mapped["UserDB"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<TransferredCardDB(card={self.name}, qty={self.quantity})>"
