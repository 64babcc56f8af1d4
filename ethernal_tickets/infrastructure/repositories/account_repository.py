# ethernal_tickets/infrastructure/repositories/account_repository.py

from sqlalchemy.orm import Session
from sqlalchemy import select

from ethernal_tickets.infrastructure.db.models import Account, LedgerEntry


class AccountRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, account_id: str) -> Account | None:
        stmt = select(Account).where(Account.id == account_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_email(self, email: str) -> Account | None:
        stmt = select(Account).where(Account.email == email)
        return self.db.execute(stmt).scalar_one_or_none()

    def lock(self, account_id: str) -> Account | None:
        """
        SELECT ... FOR UPDATE
        Serializes balance changes on one account.
        """
        stmt = (
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def list_all(self) -> list[Account]:
        stmt = select(Account).order_by(Account.created_at, Account.email)
        return list(self.db.execute(stmt).scalars().all())

    def create(
        self,
        email: str,
        password_hash: str,
        display_name: str,
        balance: int,
        is_admin: bool = False,
    ) -> Account:
        account = Account(
            email=email,
            password_hash=password_hash,
            display_name=display_name,
            balance=balance,
            is_admin=is_admin,
        )
        self.db.add(account)
        self.db.flush()
        return account

    def record_entry(
        self,
        account: Account,
        delta: int,
        reason: str,
    ) -> LedgerEntry:
        entry = LedgerEntry(
            account_id=account.id,
            delta=delta,
            balance_after=account.balance,
            reason=reason,
        )
        self.db.add(entry)
        return entry

    def list_entries(self, account_id: str) -> list[LedgerEntry]:
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.account_id == account_id)
            .order_by(LedgerEntry.id)
        )
        return list(self.db.execute(stmt).scalars().all())
