# tests/unit/test_reservation_coordinator.py

from concurrent.futures import ThreadPoolExecutor

import pytest

from ethernal_tickets.application.reservation_coordinator import ReservationCoordinator
from ethernal_tickets.domain.exceptions import (
    InsufficientFundsError,
    InvalidRequestError,
    SeatsUnavailableError,
    StoreUnavailableError,
)
from ethernal_tickets.domain.models import PurchaseIntent
from ethernal_tickets.infrastructure.repositories.ticket_repository import TicketRepository


def _intent(account_id, seats, total_price, event_id="EventX"):
    return PurchaseIntent(
        account_id=account_id,
        event_id=event_id,
        seat_identifiers=tuple(seats),
        total_price=total_price,
    )


# ---------------------
# HAPPY PATH
# ---------------------

def test_purchase_debits_and_issues_ticket(coordinator, ledger, seats, make_account):
    account_id = make_account(balance=1000)

    batch = coordinator.purchase(_intent(account_id, ["seat-1"], 200))

    assert len(batch.tickets) == 1
    assert batch.tickets[0].price == 200
    assert batch.tickets[0].seat_identifier == "seat-1"
    assert batch.balance_after == 800
    assert ledger.get_balance(account_id) == 800
    assert "seat-1" in seats.query_sold("EventX")


def test_multi_seat_purchase_splits_price(coordinator, make_account):
    account_id = make_account(balance=1000)

    batch = coordinator.purchase(_intent(account_id, ["seat-1", "seat-2", "seat-3"], 100))

    assert [ticket.price for ticket in batch.tickets] == [34, 33, 33]
    assert batch.total_price == 100
    assert len(set(batch.ticket_ids)) == 3


def test_free_purchase_succeeds_with_zero_balance(coordinator, make_account):
    account_id = make_account(balance=0)

    batch = coordinator.purchase(_intent(account_id, ["seat-1"], 0))

    assert batch.balance_after == 0
    assert batch.tickets[0].price == 0


def test_tickets_listed_per_account(coordinator, make_account):
    first = make_account(balance=1000)
    second = make_account(balance=1000)
    coordinator.purchase(_intent(first, ["seat-1"], 100))
    coordinator.purchase(_intent(second, ["seat-2"], 100))

    assert [t.seat_identifier for t in coordinator.tickets_for_account(first)] == ["seat-1"]
    assert len(coordinator.all_tickets()) == 2


# ---------------------
# FAILURES AND COMPENSATION
# ---------------------

def test_insufficient_funds_releases_seats(coordinator, ledger, seats, make_account):
    account_id = make_account(balance=500)

    with pytest.raises(InsufficientFundsError) as exc_info:
        coordinator.purchase(_intent(account_id, ["seat-1", "seat-2"], 600))

    assert exc_info.value.shortfall == 100
    assert ledger.get_balance(account_id) == 500
    sold = seats.query_sold("EventX")
    assert "seat-1" not in sold
    assert "seat-2" not in sold
    assert coordinator.all_tickets() == []


def test_taken_seat_rejects_whole_request(coordinator, ledger, seats, make_account):
    first = make_account(balance=1000)
    second = make_account(balance=1000)
    coordinator.purchase(_intent(first, ["seat-2"], 100))

    with pytest.raises(SeatsUnavailableError) as exc_info:
        coordinator.purchase(_intent(second, ["seat-1", "seat-2"], 200))

    assert exc_info.value.seats == ["seat-2"]
    assert ledger.get_balance(second) == 1000
    assert seats.query_sold("EventX") == {"seat-2"}


def test_invalid_intent_touches_nothing(coordinator, seats, make_account):
    account_id = make_account(balance=1000)

    with pytest.raises(InvalidRequestError):
        coordinator.purchase(_intent(account_id, ["seat-1", "seat-1"], 100))

    assert seats.query_sold("EventX") == set()


def test_ticket_write_failure_rolls_back_debit(
    coordinator, ledger, seats, make_account, monkeypatch
):
    account_id = make_account(balance=1000)

    def boom(self, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(TicketRepository, "create_batch", boom)

    with pytest.raises(RuntimeError):
        coordinator.purchase(_intent(account_id, ["seat-1"], 200))

    assert ledger.get_balance(account_id) == 1000
    assert seats.query_sold("EventX") == set()


def test_compensation_retries_until_store_recovers(
    store, ledger, seats, make_account, monkeypatch
):
    delays = []
    coordinator = ReservationCoordinator(
        store,
        ledger,
        seats,
        retry_base_delay=0.1,
        retry_max_delay=0.15,
        sleep=delays.append,
    )
    account_id = make_account(balance=100)

    real_release = seats.release_reservation
    failures = {"left": 2}

    def flaky_release(event_id, reservation_id, session=None):
        if failures["left"]:
            failures["left"] -= 1
            raise StoreUnavailableError("connection reset")
        return real_release(event_id, reservation_id, session=session)

    monkeypatch.setattr(seats, "release_reservation", flaky_release)

    with pytest.raises(InsufficientFundsError):
        coordinator.purchase(_intent(account_id, ["seat-1"], 200))

    assert delays == [0.1, 0.15]
    assert seats.query_sold("EventX") == set()


def test_store_failure_after_reserve_still_releases(
    coordinator, ledger, seats, make_account, monkeypatch
):
    account_id = make_account(balance=1000)
    real_reserve = seats.reserve

    def reserve_then_drop(event_id, seat_identifiers, reservation_id=None, session=None):
        real_reserve(event_id, seat_identifiers, reservation_id=reservation_id, session=session)
        raise StoreUnavailableError("connection lost after commit")

    monkeypatch.setattr(seats, "reserve", reserve_then_drop)

    with pytest.raises(StoreUnavailableError):
        coordinator.purchase(_intent(account_id, ["seat-1"], 200))

    assert seats.query_sold("EventX") == set()
    assert ledger.get_balance(account_id) == 1000


def test_operator_release_mid_purchase_fails_cleanly(
    coordinator, ledger, seats, make_account, monkeypatch
):
    account_id = make_account(balance=1000)
    real_reserve = seats.reserve

    def reserve_then_operator_release(event_id, seat_identifiers, reservation_id=None, session=None):
        held = real_reserve(event_id, seat_identifiers, reservation_id=reservation_id, session=session)
        seats.release(event_id, seat_identifiers)
        return held

    monkeypatch.setattr(seats, "reserve", reserve_then_operator_release)

    with pytest.raises(SeatsUnavailableError) as exc_info:
        coordinator.purchase(_intent(account_id, ["seat-1"], 200))

    assert exc_info.value.seats == ["seat-1"]
    assert ledger.get_balance(account_id) == 1000
    assert coordinator.all_tickets() == []


# ---------------------
# CONCURRENCY
# ---------------------

def test_two_buyers_one_seat(coordinator, ledger, make_account):
    buyers = [make_account(balance=1000), make_account(balance=1000)]

    def attempt(account_id):
        try:
            return coordinator.purchase(_intent(account_id, ["seat-9"], 200))
        except SeatsUnavailableError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(attempt, buyers))

    winners = [r for r in results if not isinstance(r, SeatsUnavailableError)]
    losers = [r for r in results if isinstance(r, SeatsUnavailableError)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert losers[0].seats == ["seat-9"]
    assert sorted(ledger.get_balance(b) for b in buyers) == [800, 1000]


def test_overlapping_requests_never_double_sell(coordinator, seats, make_account):
    buyers = [make_account(balance=1000) for _ in range(8)]

    def attempt(indexed):
        index, account_id = indexed
        try:
            coordinator.purchase(
                _intent(account_id, ["seat-9", f"seat-{100 + index}"], 200)
            )
            return True
        except SeatsUnavailableError:
            return False

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, enumerate(buyers)))

    assert results.count(True) == 1
    tickets = coordinator.all_tickets()
    assert [t.seat_identifier for t in tickets].count("seat-9") == 1
    assert len(seats.query_sold("EventX")) == 2
