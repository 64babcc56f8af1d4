# ethernal_tickets/infrastructure/repositories/seat_repository.py

from typing import Iterable

from sqlalchemy.orm import Session
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ethernal_tickets.domain.models import SeatStatus
from ethernal_tickets.infrastructure.db.models import EventInventory, SeatRecord


class SeatRepository:

    def __init__(self, db: Session):
        self.db = db

    def lock_inventory(self, event_id: str) -> EventInventory:
        """
        SELECT ... FOR UPDATE on the event row, creating it on first use.
        Prevents race conditions between reserve/release on one event.
        """
        inventory = self._select_for_update(event_id)
        if inventory:
            return inventory

        try:
            with self.db.begin_nested():
                self.db.add(EventInventory(event_id=event_id))
        except IntegrityError:
            # Another worker created the row first.
            pass

        return self._select_for_update(event_id)

    def _select_for_update(self, event_id: str) -> EventInventory | None:
        stmt = (
            select(EventInventory)
            .where(EventInventory.event_id == event_id)
            .with_for_update()
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_records(
        self,
        event_id: str,
        seat_identifiers: Iterable[str],
    ) -> dict[str, SeatRecord]:
        stmt = (
            select(SeatRecord)
            .where(SeatRecord.event_id == event_id)
            .where(SeatRecord.seat_identifier.in_(list(seat_identifiers)))
        )
        return {
            record.seat_identifier: record
            for record in self.db.execute(stmt).scalars().all()
        }

    def mark_sold(
        self,
        event_id: str,
        seat_identifiers: Iterable[str],
        reservation_id: str,
        existing: dict[str, SeatRecord],
    ) -> None:
        for seat in seat_identifiers:
            record = existing.get(seat)
            if record is None:
                self.db.add(
                    SeatRecord(
                        event_id=event_id,
                        seat_identifier=seat,
                        status=SeatStatus.SOLD,
                        reservation_id=reservation_id,
                    )
                )
            else:
                record.status = SeatStatus.SOLD
                record.reservation_id = reservation_id
        self.db.flush()

    def release(
        self,
        event_id: str,
        seat_identifiers: Iterable[str] | None = None,
        reservation_id: str | None = None,
    ) -> int:
        """
        Marks seats available. With no seat list, releases the whole event.
        With a reservation_id, only seats still held by it are touched.
        Returns the number of rows that changed state.
        """
        stmt = (
            update(SeatRecord)
            .where(SeatRecord.event_id == event_id)
            .where(SeatRecord.status == SeatStatus.SOLD)
        )
        if seat_identifiers is not None:
            stmt = stmt.where(SeatRecord.seat_identifier.in_(list(seat_identifiers)))
        if reservation_id is not None:
            stmt = stmt.where(SeatRecord.reservation_id == reservation_id)

        result = self.db.execute(
            stmt.values(status=SeatStatus.AVAILABLE, reservation_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def held_by(self, event_id: str, reservation_id: str) -> set[str]:
        stmt = (
            select(SeatRecord.seat_identifier)
            .where(SeatRecord.event_id == event_id)
            .where(SeatRecord.status == SeatStatus.SOLD)
            .where(SeatRecord.reservation_id == reservation_id)
        )
        return set(self.db.execute(stmt).scalars().all())

    def finalize(self, event_id: str, reservation_id: str) -> int:
        """Clears the hold marker once tickets exist for the seats."""
        result = self.db.execute(
            update(SeatRecord)
            .where(SeatRecord.event_id == event_id)
            .where(SeatRecord.reservation_id == reservation_id)
            .values(reservation_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def unticketed_holds(
        self,
        seat_identifiers: Iterable[str],
        event_id: str | None = None,
    ) -> list[SeatRecord]:
        """
        Sold seats that still carry a reservation id.
        Finalize clears the id in the ticket's own transaction, so these have no ticket.
        """
        stmt = (
            select(SeatRecord)
            .where(SeatRecord.status == SeatStatus.SOLD)
            .where(SeatRecord.reservation_id.is_not(None))
            .where(SeatRecord.seat_identifier.in_(list(seat_identifiers)))
        )
        if event_id is not None:
            stmt = stmt.where(SeatRecord.event_id == event_id)
        return list(self.db.execute(stmt).scalars().all())

    def release_holds(self, event_id: str, seat_identifiers: Iterable[str]) -> int:
        result = self.db.execute(
            update(SeatRecord)
            .where(SeatRecord.event_id == event_id)
            .where(SeatRecord.status == SeatStatus.SOLD)
            .where(SeatRecord.reservation_id.is_not(None))
            .where(SeatRecord.seat_identifier.in_(list(seat_identifiers)))
            .values(status=SeatStatus.AVAILABLE, reservation_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def sold_identifiers(self, event_id: str | None = None) -> set[str]:
        stmt = select(SeatRecord.seat_identifier).where(
            SeatRecord.status == SeatStatus.SOLD
        )
        if event_id is not None:
            stmt = stmt.where(SeatRecord.event_id == event_id)
        return set(self.db.execute(stmt).scalars().all())

    def event_ids_with_sold_seats(self) -> list[str]:
        stmt = (
            select(SeatRecord.event_id)
            .where(SeatRecord.status == SeatStatus.SOLD)
            .distinct()
        )
        return list(self.db.execute(stmt).scalars().all())
