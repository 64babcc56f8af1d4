import logging
from collections import defaultdict
from typing import Iterable

from ethernal_tickets.application.account_service import validate_password
from ethernal_tickets.application.ledger_store import LedgerStore
from ethernal_tickets.application.seat_inventory import SeatInventory
from ethernal_tickets.domain.exceptions import InvalidRequestError, NotFoundError
from ethernal_tickets.infrastructure.db.session import Store
from ethernal_tickets.infrastructure.password_hasher import BcryptPasswordHasher
from ethernal_tickets.infrastructure.repositories.account_repository import AccountRepository
from ethernal_tickets.infrastructure.repositories.seat_repository import SeatRepository
from ethernal_tickets.infrastructure.repositories.ticket_repository import TicketRepository


logger = logging.getLogger(__name__)


class AdminOverride:
    """
    Operator corrections. They skip the purchase checks but still go
    through the ledger and seat inventory, so balances stay
    non-negative and a seat never ends up with two owners.

    Ticket removal and seat release always share one transaction.
    """

    def __init__(
        self,
        store: Store,
        ledger: LedgerStore,
        seats: SeatInventory,
        hasher: BcryptPasswordHasher | None = None,
    ):
        self.store = store
        self.ledger = ledger
        self.seats = seats
        self.hasher = hasher or BcryptPasswordHasher()

    def grant_funds(self, account_id: str, amount: int) -> int:
        new_balance = self.ledger.clamped_credit(account_id, amount)
        logger.info(
            "Funds granted. account_id=%s amount=%s balance=%s",
            account_id,
            amount,
            new_balance,
        )
        return new_balance

    def set_password(self, account_id: str, new_password: str) -> None:
        validate_password(new_password)
        self.set_password_hash(account_id, self.hasher.hash_password(new_password))

    def set_password_hash(self, account_id: str, new_hash: str) -> None:
        if not new_hash:
            raise InvalidRequestError("Password hash is required")
        with self.store.transaction() as db:
            account = AccountRepository(db).get_by_id(account_id)
            if not account:
                raise NotFoundError(f"Account {account_id} not found")
            account.password_hash = new_hash
        logger.info("Password replaced by operator. account_id=%s", account_id)

    def set_admin_flag(self, account_id: str, is_admin: bool) -> None:
        with self.store.transaction() as db:
            account = AccountRepository(db).get_by_id(account_id)
            if not account:
                raise NotFoundError(f"Account {account_id} not found")
            account.is_admin = bool(is_admin)
        logger.info("Admin flag set. account_id=%s is_admin=%s", account_id, bool(is_admin))

    def revoke_tickets(
        self,
        seat_identifiers: Iterable[str],
        event_id: str | None = None,
    ) -> int:
        """
        Deletes tickets for the given seats (optionally within one event)
        and frees exactly the seats those tickets held. Named seats still
        held by a purchase that never issued its ticket are freed too.
        """
        seats = sorted(set(seat_identifiers))
        if not seats:
            raise InvalidRequestError("At least one seat must be given")

        with self.store.transaction() as db:
            seat_repo = SeatRepository(db)
            tickets = TicketRepository(db).find_by_seats(seats, event_id=event_id)
            by_event: dict[str, set[str]] = defaultdict(set)
            for ticket in tickets:
                by_event[ticket.event_id].add(ticket.seat_identifier)

            held: dict[str, set[str]] = defaultdict(set)
            for record in seat_repo.unticketed_holds(seats, event_id=event_id):
                held[record.event_id].add(record.seat_identifier)

            # Events are locked in a fixed order before any ticket row goes away.
            for event in sorted(set(by_event) | set(held)):
                seat_repo.lock_inventory(event)

            revoked = TicketRepository(db).delete_ids(ticket.id for ticket in tickets)
            for event in sorted(by_event):
                self.seats.release(event, by_event[event], session=db)
            # Re-checked under the lock; a hold finalized meanwhile is left alone.
            freed = sum(
                self.seats.release_holds(event, held[event], session=db)
                for event in sorted(held)
            )

        logger.info(
            "Tickets revoked. seats=%s event_id=%s count=%s holds_freed=%s",
            ",".join(seats),
            event_id,
            revoked,
            freed,
        )
        return revoked

    def reset_event(self, event_id: str) -> int:
        if not event_id or not event_id.strip():
            raise InvalidRequestError("event_id is required")

        with self.store.transaction() as db:
            SeatRepository(db).lock_inventory(event_id)
            repo = TicketRepository(db)
            tickets = repo.find_by_event(event_id)
            revoked = repo.delete_ids(ticket.id for ticket in tickets)
            self.seats.release_event(event_id, session=db)

        logger.info("Event reset. event_id=%s tickets_removed=%s", event_id, revoked)
        return revoked

    def reset_all_tickets(self) -> int:
        with self.store.transaction() as db:
            seat_repo = SeatRepository(db)
            for event in sorted(seat_repo.event_ids_with_sold_seats()):
                seat_repo.lock_inventory(event)
            revoked = TicketRepository(db).delete_all()
            self.seats.release_all(session=db)

        logger.info("All tickets reset. tickets_removed=%s", revoked)
        return revoked
