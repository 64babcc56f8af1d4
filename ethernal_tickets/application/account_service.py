import logging
import re

from sqlalchemy.exc import IntegrityError

from ethernal_tickets.domain.exceptions import (
    AuthenticationError,
    EmailAlreadyRegisteredError,
    InvalidRequestError,
    NotFoundError,
)
from ethernal_tickets.infrastructure.db.models import Account
from ethernal_tickets.infrastructure.db.session import Store
from ethernal_tickets.infrastructure.password_hasher import (
    MAX_PASSWORD_BYTES,
    BcryptPasswordHasher,
)
from ethernal_tickets.infrastructure.repositories.account_repository import AccountRepository


logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def is_valid_email(email: str | None) -> bool:
    if not email:
        return False
    return _EMAIL_RE.match(email) is not None


def validate_password(password: str | None) -> str:
    if not password:
        raise InvalidRequestError("Password is required")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidRequestError(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
        )
    return password


class AccountService:
    """Registration, login and account lookups."""

    def __init__(
        self,
        store: Store,
        hasher: BcryptPasswordHasher | None = None,
        starting_balance: int | None = None,
    ):
        self.store = store
        self.hasher = hasher or BcryptPasswordHasher()
        self.starting_balance = (
            starting_balance
            if starting_balance is not None
            else store.settings.starting_balance
        )

    def register(
        self,
        email: str,
        password: str,
        display_name: str | None = None,
    ) -> Account:
        email = normalize_email(email)
        if not is_valid_email(email):
            raise InvalidRequestError("A valid email is required")
        validate_password(password)

        name = (display_name or "").strip() or email.split("@")[0]
        password_hash = self.hasher.hash_password(password)

        try:
            with self.store.transaction() as db:
                repo = AccountRepository(db)
                if repo.get_by_email(email):
                    raise EmailAlreadyRegisteredError(f"{email} is already registered")
                account = repo.create(
                    email=email,
                    password_hash=password_hash,
                    display_name=name,
                    balance=self.starting_balance,
                )
                repo.record_entry(account, self.starting_balance, "registration")
        except IntegrityError as exc:
            # Concurrent registration of the same email.
            raise EmailAlreadyRegisteredError(f"{email} is already registered") from exc

        logger.info("Account registered. account_id=%s email=%s", account.id, email)
        return account

    def authenticate(self, email: str, password: str) -> Account:
        email = normalize_email(email)
        with self.store.transaction() as db:
            account = AccountRepository(db).get_by_email(email)

        if not account or not password:
            raise AuthenticationError("Invalid email or password")
        if not self.hasher.verify_password(password, account.password_hash):
            raise AuthenticationError("Invalid email or password")
        return account

    def get_account(self, account_id: str) -> Account:
        with self.store.transaction() as db:
            account = AccountRepository(db).get_by_id(account_id)
        if not account:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    def get_by_email(self, email: str) -> Account:
        email = normalize_email(email)
        with self.store.transaction() as db:
            account = AccountRepository(db).get_by_email(email)
        if not account:
            raise NotFoundError(f"No account registered for {email}")
        return account

    def list_accounts(self) -> list[Account]:
        with self.store.transaction() as db:
            return AccountRepository(db).list_all()
