import logging

from sqlalchemy.orm import Session

from ethernal_tickets.domain.exceptions import (
    InsufficientFundsError,
    InvalidRequestError,
    NotFoundError,
)
from ethernal_tickets.infrastructure.db.models import Account
from ethernal_tickets.infrastructure.db.session import Store
from ethernal_tickets.infrastructure.repositories.account_repository import AccountRepository


logger = logging.getLogger(__name__)


class LedgerStore:
    """
    Holds every account balance as an integer count of Etherions
    and applies changes under the account's row lock.

    Each call commits before returning. Passing `session` joins an
    open transaction instead, so the caller decides when it commits.
    """

    def __init__(self, store: Store, balance_ceiling: int | None = None):
        self.store = store
        self.balance_ceiling = (
            balance_ceiling
            if balance_ceiling is not None
            else store.settings.balance_ceiling
        )

    def get_balance(self, account_id: str) -> int:
        with self.store.transaction() as db:
            account = AccountRepository(db).get_by_id(account_id)
            if not account:
                raise NotFoundError(f"Account {account_id} not found")
            return account.balance

    def adjust_balance(
        self,
        account_id: str,
        delta: int,
        reason_tag: str,
        session: Session | None = None,
    ) -> int:
        _ensure_amount(delta, "delta")

        with self.store.transaction(session) as db:
            repo = AccountRepository(db)
            account = self._lock(repo, account_id)

            new_balance = account.balance + delta
            if delta < 0 and new_balance < 0:
                raise InsufficientFundsError(
                    account_id=account_id,
                    required=-delta,
                    available=account.balance,
                )
            if new_balance > self.balance_ceiling:
                raise InvalidRequestError(
                    f"Balance would exceed the maximum of {self.balance_ceiling}"
                )

            return self._apply(repo, account, new_balance, reason_tag)

    def clamped_credit(
        self,
        account_id: str,
        amount: int,
        ceiling: int | None = None,
        reason_tag: str = "admin-grant",
        session: Session | None = None,
    ) -> int:
        """
        Adds `amount` and clamps the result into [0, ceiling].
        Never rejects on range; returns the post-clamp balance.
        """
        _ensure_amount(amount, "amount")
        limit = self.balance_ceiling if ceiling is None else ceiling
        if limit < 0:
            raise InvalidRequestError("ceiling must be non-negative")

        with self.store.transaction(session) as db:
            repo = AccountRepository(db)
            account = self._lock(repo, account_id)

            new_balance = min(max(account.balance + amount, 0), limit)
            return self._apply(repo, account, new_balance, reason_tag)

    def set_balance(
        self,
        account_id: str,
        amount: int,
        reason_tag: str = "admin-set",
        session: Session | None = None,
    ) -> int:
        """Overwrites the balance with `amount` clamped into [0, ceiling]."""
        _ensure_amount(amount, "amount")

        with self.store.transaction(session) as db:
            repo = AccountRepository(db)
            account = self._lock(repo, account_id)

            new_balance = min(max(amount, 0), self.balance_ceiling)
            return self._apply(repo, account, new_balance, reason_tag)

    def history(self, account_id: str) -> list:
        with self.store.transaction() as db:
            repo = AccountRepository(db)
            if not repo.get_by_id(account_id):
                raise NotFoundError(f"Account {account_id} not found")
            return [
                {
                    "delta": entry.delta,
                    "balance_after": entry.balance_after,
                    "reason": entry.reason,
                    "created_at": entry.created_at,
                }
                for entry in repo.list_entries(account_id)
            ]

    @staticmethod
    def _lock(repo: AccountRepository, account_id: str) -> Account:
        account = repo.lock(account_id)
        if not account:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    @staticmethod
    def _apply(
        repo: AccountRepository,
        account: Account,
        new_balance: int,
        reason_tag: str,
    ) -> int:
        delta = new_balance - account.balance
        account.balance = new_balance
        repo.record_entry(account, delta, reason_tag)
        repo.db.flush()

        logger.debug(
            "Ledger adjusted. account_id=%s delta=%s balance=%s reason=%s",
            account.id,
            delta,
            new_balance,
            reason_tag,
        )
        return new_balance


def _ensure_amount(value, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRequestError(f"{name} must be an integer amount")
