# ethernal_tickets/infrastructure/repositories/ticket_repository.py

from datetime import datetime, timezone
from typing import Iterable, Sequence

from sqlalchemy.orm import Session
from sqlalchemy import delete, select

from ethernal_tickets.infrastructure.db.models import Ticket


class TicketRepository:

    def __init__(self, db: Session):
        self.db = db

    def create_batch(
        self,
        account_id: str,
        event_id: str,
        seat_identifiers: Sequence[str],
        prices: Sequence[int],
    ) -> list[Ticket]:
        purchased_at = datetime.now(timezone.utc)
        tickets = [
            Ticket(
                account_id=account_id,
                event_id=event_id,
                seat_identifier=seat,
                price=price,
                purchased_at=purchased_at,
            )
            for seat, price in zip(seat_identifiers, prices)
        ]
        self.db.add_all(tickets)
        self.db.flush()
        return tickets

    def list_for_account(self, account_id: str) -> list[Ticket]:
        stmt = (
            select(Ticket)
            .where(Ticket.account_id == account_id)
            .order_by(Ticket.id.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_all(self) -> list[Ticket]:
        stmt = select(Ticket).order_by(Ticket.id.desc())
        return list(self.db.execute(stmt).scalars().all())

    def find_by_seats(
        self,
        seat_identifiers: Iterable[str],
        event_id: str | None = None,
    ) -> list[Ticket]:
        stmt = select(Ticket).where(Ticket.seat_identifier.in_(list(seat_identifiers)))
        if event_id is not None:
            stmt = stmt.where(Ticket.event_id == event_id)
        return list(self.db.execute(stmt).scalars().all())

    def find_by_event(self, event_id: str) -> list[Ticket]:
        stmt = select(Ticket).where(Ticket.event_id == event_id)
        return list(self.db.execute(stmt).scalars().all())

    def delete_ids(self, ticket_ids: Iterable[int]) -> int:
        ids = list(ticket_ids)
        if not ids:
            return 0
        result = self.db.execute(
            delete(Ticket)
            .where(Ticket.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_all(self) -> int:
        result = self.db.execute(
            delete(Ticket).execution_options(synchronize_session=False)
        )
        return result.rowcount
