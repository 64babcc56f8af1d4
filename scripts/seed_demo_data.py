import os

from ethernal_tickets.config import Settings
from ethernal_tickets.infrastructure.db.session import Store
from ethernal_tickets.infrastructure.password_hasher import BcryptPasswordHasher
from ethernal_tickets.infrastructure.repositories.account_repository import AccountRepository


DEMO_PASSWORD = os.getenv("DEMO_PASSWORD", "ethernal-demo")


def seed_accounts(db, hasher: BcryptPasswordHasher, starting_balance: int) -> list[str]:
    account_defs = [
        {
            "email": "admin@ethernal.test",
            "display_name": "Ethernal Admin",
            "balance": 0,
            "is_admin": True,
        },
        {
            "email": "buyer@ethernal.test",
            "display_name": "Demo Buyer",
            "balance": starting_balance,
            "is_admin": False,
        },
    ]

    created = []
    repo = AccountRepository(db)
    for item in account_defs:
        existing = repo.get_by_email(item["email"])
        if existing:
            existing.display_name = item["display_name"]
            existing.is_admin = item["is_admin"]
            continue

        account = repo.create(
            email=item["email"],
            password_hash=hasher.hash_password(DEMO_PASSWORD),
            display_name=item["display_name"],
            balance=item["balance"],
            is_admin=item["is_admin"],
        )
        repo.record_entry(account, item["balance"], "registration")
        created.append(item["email"])
    return created


def main() -> None:
    settings = Settings.from_env()
    store = Store(settings)
    try:
        store.wait_until_ready()
        store.create_schema()
        with store.transaction() as db:
            created = seed_accounts(db, BcryptPasswordHasher(), settings.starting_balance)
        print(f"Seed complete: {len(created)} demo accounts created ({', '.join(created) or 'none new'}).")
    finally:
        store.close()


if __name__ == "__main__":
    main()
