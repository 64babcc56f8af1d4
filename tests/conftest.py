# tests/conftest.py

import pytest
from fastapi.testclient import TestClient

from ethernal_tickets.application.account_service import AccountService
from ethernal_tickets.application.admin_override import AdminOverride
from ethernal_tickets.application.ledger_store import LedgerStore
from ethernal_tickets.application.reservation_coordinator import ReservationCoordinator
from ethernal_tickets.application.seat_inventory import SeatInventory
from ethernal_tickets.config import Settings
from ethernal_tickets.infrastructure.db.session import Store
from ethernal_tickets.infrastructure.repositories.account_repository import AccountRepository
from ethernal_tickets.main import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'ethernal_test.db'}",
        jwt_secret="test-secret",
        starting_balance=1000,
        db_connect_max_retries=1,
        db_connect_retry_delay=0.0,
        compensation_retry_base_delay=0.0,
        compensation_retry_max_delay=0.0,
        log_level="DEBUG",
    )


@pytest.fixture
def store(settings):
    store = Store(settings)
    store.create_schema()
    yield store
    store.close()


@pytest.fixture
def ledger(store):
    return LedgerStore(store)


@pytest.fixture
def seats(store):
    return SeatInventory(store)


@pytest.fixture
def coordinator(store, ledger, seats):
    return ReservationCoordinator(store, ledger, seats, sleep=lambda _: None)


@pytest.fixture
def admin(store, ledger, seats):
    return AdminOverride(store, ledger, seats)


@pytest.fixture
def accounts(store):
    return AccountService(store)


@pytest.fixture
def make_account(store):
    """
    Creates an account directly in storage, skipping bcrypt,
    and returns its id.
    """
    counter = {"n": 0}

    def _make(balance: int = 1000, is_admin: bool = False) -> str:
        counter["n"] += 1
        with store.transaction() as db:
            repo = AccountRepository(db)
            account = repo.create(
                email=f"buyer{counter['n']}@ethernal.test",
                password_hash="not-a-real-hash",
                display_name=f"buyer{counter['n']}",
                balance=balance,
                is_admin=is_admin,
            )
            repo.record_entry(account, balance, "registration")
            return account.id

    return _make


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as client:
        yield client
