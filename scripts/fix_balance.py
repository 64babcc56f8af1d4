import sys

from ethernal_tickets.application.account_service import AccountService
from ethernal_tickets.application.ledger_store import LedgerStore
from ethernal_tickets.config import Settings
from ethernal_tickets.domain.exceptions import EthernalTicketsError
from ethernal_tickets.infrastructure.db.session import Store


# Well under the ceiling and small enough for external DB tools to display.
SAFE_BALANCE = 10**12


def fix_balance(ledger: LedgerStore, accounts: AccountService, email: str, amount: int) -> int:
    account = accounts.get_by_email(email)
    return ledger.set_balance(account.id, amount, reason_tag="operator-fix")


def main(argv: list[str]) -> int:
    if len(argv) not in (2, 3):
        print("usage: python scripts/fix_balance.py <email> [amount]", file=sys.stderr)
        return 2

    try:
        amount = int(argv[2]) if len(argv) == 3 else SAFE_BALANCE
    except ValueError:
        print(f"amount must be an integer, got {argv[2]!r}", file=sys.stderr)
        return 2

    store = Store(Settings.from_env())
    try:
        store.create_schema()
        try:
            balance = fix_balance(LedgerStore(store), AccountService(store), argv[1], amount)
        except EthernalTicketsError as exc:
            print(str(exc), file=sys.stderr)
            return 1
        print(f"Balance for {argv[1]} set to {balance}.")
        return 0
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main(sys.argv))
