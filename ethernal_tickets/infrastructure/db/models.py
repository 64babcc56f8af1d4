# ethernal_tickets/infrastructure/db/models.py

from sqlalchemy import (
    BigInteger,
    Boolean,
    String,
    Integer,
    DateTime,
    Enum,
    UniqueConstraint,
    CheckConstraint,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from uuid import uuid4

from ethernal_tickets.infrastructure.db.session import Base
from ethernal_tickets.domain.models import SeatStatus


class Account(Base):
    """
    A registered person and their Etherion balance.
    Balance is written only through the ledger store.
    """

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False)
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_account_email"),
        CheckConstraint("balance >= 0", name="ck_account_balance_nonnegative"),
    )


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("accounts.id"),
        nullable=False,
    )
    delta: Mapped[int] = mapped_column(BigInteger, nullable=False)
    balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_ledger_entries_account_id", "account_id"),
    )


class EventInventory(Base):
    """
    One row per event. Locking this row is the per-event
    critical section for seat status changes.
    """

    __tablename__ = "event_inventories"

    event_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class SeatRecord(Base):
    __tablename__ = "seat_records"

    event_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("event_inventories.event_id"),
        primary_key=True,
    )
    seat_identifier: Mapped[str] = mapped_column(String(128), primary_key=True)
    status: Mapped[SeatStatus] = mapped_column(
        Enum(SeatStatus, name="seat_status"),
        nullable=False,
        default=SeatStatus.AVAILABLE,
    )
    # Set while a purchase holds the seat; cleared once tickets are issued.
    reservation_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("accounts.id"),
        nullable=False,
    )
    event_id: Mapped[str] = mapped_column(String(128), nullable=False)
    seat_identifier: Mapped[str] = mapped_column(String(128), nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    purchased_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "event_id",
            "seat_identifier",
            name="uq_ticket_event_seat",
        ),
        CheckConstraint("price >= 0", name="ck_ticket_price_nonnegative"),
        Index("ix_tickets_account_id", "account_id"),
    )
