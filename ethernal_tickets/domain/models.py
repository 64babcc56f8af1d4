# ethernal_tickets/domain/models.py

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Sequence

from ethernal_tickets.domain.exceptions import InvalidRequestError


class SeatStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    SOLD = "SOLD"


@dataclass(frozen=True)
class PurchaseIntent:
    """
    Unit of work submitted to the reservation coordinator.
    Never persisted.
    """

    account_id: str
    event_id: str
    seat_identifiers: tuple[str, ...]
    total_price: int

    def __post_init__(self):
        # Sets carry no order; sorting keeps the price split deterministic.
        seats = self.seat_identifiers
        if seats is None:
            seats = ()
        elif isinstance(seats, str):
            seats = (seats,)
        elif isinstance(seats, (set, frozenset)):
            seats = tuple(sorted(seats, key=str))
        else:
            seats = tuple(seats)
        object.__setattr__(self, "seat_identifiers", seats)

    def validate(self) -> None:
        """
        Raises InvalidRequestError if the intent cannot be processed.
        """
        if not self.account_id:
            raise InvalidRequestError("account_id is required")
        if not self.event_id or not self.event_id.strip():
            raise InvalidRequestError("event_id is required")
        if not self.seat_identifiers:
            raise InvalidRequestError("At least one seat must be requested")
        if any(
            not isinstance(seat, str) or not seat.strip()
            for seat in self.seat_identifiers
        ):
            raise InvalidRequestError("Seat identifiers must be non-empty strings")

        duplicates = sorted(
            seat for seat, count in Counter(self.seat_identifiers).items() if count > 1
        )
        if duplicates:
            raise InvalidRequestError(
                f"Duplicate seats in request: {', '.join(duplicates)}"
            )

        if isinstance(self.total_price, bool) or not isinstance(self.total_price, int):
            raise InvalidRequestError("total_price must be an integer amount")
        if self.total_price < 0:
            raise InvalidRequestError("total_price must be non-negative")

    @property
    def seat_count(self) -> int:
        return len(self.seat_identifiers)


def split_price(total_price: int, seat_count: int) -> list[int]:
    """
    Splits a purchase total into one integer share per seat.

    Every share is total // n; the remainder goes to the first share,
    so the shares always add up to the total.
    """
    if seat_count <= 0:
        raise InvalidRequestError("seat_count must be positive")

    base, remainder = divmod(total_price, seat_count)
    shares = [base] * seat_count
    shares[0] += remainder
    return shares


@dataclass(frozen=True)
class IssuedTicket:
    id: int
    account_id: str
    event_id: str
    seat_identifier: str
    price: int
    purchased_at: datetime

    @property
    def display_id(self) -> str:
        return f"TK-{self.id}"


@dataclass(frozen=True)
class TicketBatch:
    event_id: str
    account_id: str
    balance_after: int
    tickets: Sequence[IssuedTicket] = field(default_factory=tuple)

    @property
    def ticket_ids(self) -> list[int]:
        return [ticket.id for ticket in self.tickets]

    @property
    def total_price(self) -> int:
        return sum(ticket.price for ticket in self.tickets)
