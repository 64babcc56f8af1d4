import logging
from typing import Iterable
from uuid import uuid4

from sqlalchemy.orm import Session

from ethernal_tickets.domain.exceptions import InvalidRequestError, SeatConflictError
from ethernal_tickets.domain.models import SeatStatus
from ethernal_tickets.infrastructure.db.session import Store
from ethernal_tickets.infrastructure.repositories.seat_repository import SeatRepository


logger = logging.getLogger(__name__)


class SeatInventory:
    """
    Per-event seat availability with single ownership.

    Status checks and writes for one event happen while holding that
    event's inventory row lock, so overlapping reserve calls serialize
    and at most one of them can sell a given seat.
    """

    def __init__(self, store: Store):
        self.store = store

    def query_sold(self, event_id: str) -> set[str]:
        with self.store.transaction() as db:
            return SeatRepository(db).sold_identifiers(event_id)

    def query_sold_all(self) -> set[str]:
        with self.store.transaction() as db:
            return SeatRepository(db).sold_identifiers()

    def reserve(
        self,
        event_id: str,
        seat_identifiers: Iterable[str],
        reservation_id: str | None = None,
        session: Session | None = None,
    ) -> str:
        """
        Marks every seat sold in one step, or none of them.

        Returns the reservation id stamped on the seats. Raises
        SeatConflictError naming the seats that were already sold.
        """
        seats = _as_seat_set(seat_identifiers)
        if not seats:
            raise InvalidRequestError("At least one seat must be requested")

        reservation_id = reservation_id or str(uuid4())
        with self.store.transaction(session) as db:
            repo = SeatRepository(db)
            repo.lock_inventory(event_id)

            existing = repo.get_records(event_id, seats)
            taken = {
                seat
                for seat, record in existing.items()
                if record.status == SeatStatus.SOLD
            }
            if taken:
                raise SeatConflictError(event_id, taken)

            repo.mark_sold(event_id, sorted(seats), reservation_id, existing)

        return reservation_id

    def release(
        self,
        event_id: str,
        seat_identifiers: Iterable[str],
        session: Session | None = None,
    ) -> int:
        """
        Marks seats available regardless of their current state.
        Releasing an available or unknown seat is a no-op.
        """
        seats = _as_seat_set(seat_identifiers)
        if not seats:
            return 0

        with self.store.transaction(session) as db:
            repo = SeatRepository(db)
            repo.lock_inventory(event_id)
            return repo.release(event_id, seats)

    def release_event(self, event_id: str, session: Session | None = None) -> int:
        with self.store.transaction(session) as db:
            repo = SeatRepository(db)
            repo.lock_inventory(event_id)
            return repo.release(event_id)

    def release_all(self, session: Session | None = None) -> int:
        with self.store.transaction(session) as db:
            repo = SeatRepository(db)
            released = 0
            for event_id in sorted(repo.event_ids_with_sold_seats()):
                repo.lock_inventory(event_id)
                released += repo.release(event_id)
            return released

    def release_reservation(
        self,
        event_id: str,
        reservation_id: str,
        session: Session | None = None,
    ) -> int:
        """
        Undo for reserve(): frees only the seats still held by this
        reservation. Finalized or re-sold seats are left alone.
        """
        with self.store.transaction(session) as db:
            repo = SeatRepository(db)
            repo.lock_inventory(event_id)
            return repo.release(event_id, reservation_id=reservation_id)

    def release_holds(
        self,
        event_id: str,
        seat_identifiers: Iterable[str],
        session: Session | None = None,
    ) -> int:
        """
        Frees listed seats that are sold under a reservation but were never
        ticketed, e.g. left behind by a worker that died mid-purchase.
        """
        seats = _as_seat_set(seat_identifiers)
        if not seats:
            return 0

        with self.store.transaction(session) as db:
            repo = SeatRepository(db)
            repo.lock_inventory(event_id)
            released = repo.release_holds(event_id, seats)

        if released:
            logger.info(
                "Released %s unticketed holds. event_id=%s seats=%s",
                released,
                event_id,
                ",".join(sorted(seats)),
            )
        return released

    def held_by(
        self,
        event_id: str,
        reservation_id: str,
        session: Session | None = None,
    ) -> set[str]:
        with self.store.transaction(session) as db:
            repo = SeatRepository(db)
            repo.lock_inventory(event_id)
            return repo.held_by(event_id, reservation_id)

    def finalize(
        self,
        event_id: str,
        reservation_id: str,
        session: Session | None = None,
    ) -> int:
        with self.store.transaction(session) as db:
            return SeatRepository(db).finalize(event_id, reservation_id)


def _as_seat_set(seat_identifiers: Iterable[str]) -> set[str]:
    if isinstance(seat_identifiers, str):
        seat_identifiers = [seat_identifiers]
    return {seat for seat in seat_identifiers}
