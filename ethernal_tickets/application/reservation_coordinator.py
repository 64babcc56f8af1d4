import logging
import time
from typing import Callable
from uuid import uuid4

from ethernal_tickets.application.ledger_store import LedgerStore
from ethernal_tickets.application.seat_inventory import SeatInventory
from ethernal_tickets.domain.exceptions import (
    SeatConflictError,
    SeatsUnavailableError,
    StoreUnavailableError,
)
from ethernal_tickets.domain.models import (
    IssuedTicket,
    PurchaseIntent,
    TicketBatch,
    split_price,
)
from ethernal_tickets.infrastructure.db.session import Store
from ethernal_tickets.infrastructure.repositories.ticket_repository import TicketRepository


logger = logging.getLogger(__name__)

# Keeps 2 ** attempt bounded on long outages.
_MAX_BACKOFF_EXPONENT = 16


class ReservationCoordinator:
    """
    The only entry point for buying seats.

    Order is fixed: reserve the seats, then debit the buyer and issue
    the tickets in one transaction. If the second step fails the held
    seats are released again before the error reaches the caller.
    """

    def __init__(
        self,
        store: Store,
        ledger: LedgerStore,
        seats: SeatInventory,
        retry_base_delay: float | None = None,
        retry_max_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.ledger = ledger
        self.seats = seats
        self.retry_base_delay = (
            retry_base_delay
            if retry_base_delay is not None
            else store.settings.compensation_retry_base_delay
        )
        self.retry_max_delay = (
            retry_max_delay
            if retry_max_delay is not None
            else store.settings.compensation_retry_max_delay
        )
        self._sleep = sleep

    def purchase(self, intent: PurchaseIntent) -> TicketBatch:
        intent.validate()

        reservation_id = str(uuid4())
        try:
            self.seats.reserve(
                intent.event_id,
                intent.seat_identifiers,
                reservation_id=reservation_id,
            )
        except SeatConflictError as exc:
            raise SeatsUnavailableError(intent.event_id, exc.seats) from exc
        except StoreUnavailableError:
            # The commit may have landed before the connection dropped.
            self._compensate(intent.event_id, reservation_id)
            raise

        try:
            batch = self._debit_and_issue(intent, reservation_id)
        except SeatConflictError as exc:
            self._compensate(intent.event_id, reservation_id)
            raise SeatsUnavailableError(intent.event_id, exc.seats) from exc
        except Exception:
            self._compensate(intent.event_id, reservation_id)
            raise

        logger.info(
            "Purchase committed. account_id=%s event_id=%s seats=%s total=%s balance=%s",
            intent.account_id,
            intent.event_id,
            ",".join(intent.seat_identifiers),
            intent.total_price,
            batch.balance_after,
        )
        return batch

    def _debit_and_issue(self, intent: PurchaseIntent, reservation_id: str) -> TicketBatch:
        prices = split_price(intent.total_price, intent.seat_count)

        with self.store.transaction() as db:
            held = self.seats.held_by(intent.event_id, reservation_id, session=db)
            lost = set(intent.seat_identifiers) - held
            if lost:
                # Released by an operator while the purchase was in flight.
                raise SeatConflictError(intent.event_id, lost)

            balance_after = self.ledger.adjust_balance(
                intent.account_id,
                -intent.total_price,
                f"purchase:{intent.event_id}",
                session=db,
            )
            tickets = TicketRepository(db).create_batch(
                account_id=intent.account_id,
                event_id=intent.event_id,
                seat_identifiers=intent.seat_identifiers,
                prices=prices,
            )
            self.seats.finalize(intent.event_id, reservation_id, session=db)

            issued = tuple(_issued(ticket) for ticket in tickets)

        return TicketBatch(
            event_id=intent.event_id,
            account_id=intent.account_id,
            balance_after=balance_after,
            tickets=issued,
        )

    def _compensate(self, event_id: str, reservation_id: str) -> int:
        """
        Releases the seats held by `reservation_id`.
        Retries with capped backoff until the store accepts it.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                released = self.seats.release_reservation(event_id, reservation_id)
            except StoreUnavailableError as exc:
                delay = min(
                    self.retry_base_delay * (2 ** min(attempt - 1, _MAX_BACKOFF_EXPONENT)),
                    self.retry_max_delay,
                )
                logger.warning(
                    "Compensating release failed. event_id=%s reservation_id=%s "
                    "attempt=%s retry_in=%.2fs error=%s",
                    event_id,
                    reservation_id,
                    attempt,
                    delay,
                    exc,
                )
                self._sleep(delay)
                continue

            if released:
                logger.info(
                    "Released %s held seats. event_id=%s reservation_id=%s",
                    released,
                    event_id,
                    reservation_id,
                )
            return released

    def tickets_for_account(self, account_id: str) -> list[IssuedTicket]:
        with self.store.transaction() as db:
            tickets = TicketRepository(db).list_for_account(account_id)
            return [_issued(ticket) for ticket in tickets]

    def all_tickets(self) -> list[IssuedTicket]:
        with self.store.transaction() as db:
            return [_issued(ticket) for ticket in TicketRepository(db).list_all()]


def _issued(ticket) -> IssuedTicket:
    return IssuedTicket(
        id=ticket.id,
        account_id=ticket.account_id,
        event_id=ticket.event_id,
        seat_identifier=ticket.seat_identifier,
        price=ticket.price,
        purchased_at=ticket.purchased_at,
    )
