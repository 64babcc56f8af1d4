import sys

from ethernal_tickets.application.account_service import AccountService
from ethernal_tickets.application.admin_override import AdminOverride
from ethernal_tickets.application.ledger_store import LedgerStore
from ethernal_tickets.application.seat_inventory import SeatInventory
from ethernal_tickets.config import Settings
from ethernal_tickets.domain.exceptions import NotFoundError
from ethernal_tickets.infrastructure.db.session import Store


def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print("usage: python scripts/make_admin.py <email>", file=sys.stderr)
        return 2

    store = Store(Settings.from_env())
    try:
        store.create_schema()
        accounts = AccountService(store)
        ledger = LedgerStore(store)
        admin = AdminOverride(store, ledger, SeatInventory(store), hasher=accounts.hasher)
        try:
            account = accounts.get_by_email(argv[1])
        except NotFoundError as exc:
            print(str(exc), file=sys.stderr)
            return 1
        admin.set_admin_flag(account.id, True)
        print(f"{account.email} is now an administrator.")
        return 0
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main(sys.argv))
