# ethernal_tickets/config.py

from dataclasses import dataclass
import os

from dotenv import load_dotenv


DEFAULT_DATABASE_URL = "sqlite:///./ethernal_tickets.db"
DEFAULT_BALANCE_CEILING = 10**15


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    jwt_secret: str = "ethernal-dev-secret"
    jwt_algorithm: str = "HS256"
    token_ttl_hours: int = 24
    starting_balance: int = 1000
    balance_ceiling: int = DEFAULT_BALANCE_CEILING
    db_connect_max_retries: int = 30
    db_connect_retry_delay: float = 1.5
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    compensation_retry_base_delay: float = 0.05
    compensation_retry_max_delay: float = 2.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Reads configuration once at process start.
        A .env file in the working directory is loaded first.
        """
        load_dotenv()
        return cls(
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            jwt_secret=os.getenv("JWT_SECRET", "ethernal-dev-secret"),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            token_ttl_hours=int(os.getenv("TOKEN_TTL_HOURS", "24")),
            starting_balance=int(os.getenv("STARTING_BALANCE", "1000")),
            balance_ceiling=int(
                os.getenv("BALANCE_CEILING", str(DEFAULT_BALANCE_CEILING))
            ),
            db_connect_max_retries=int(os.getenv("DB_CONNECT_MAX_RETRIES", "30")),
            db_connect_retry_delay=float(os.getenv("DB_CONNECT_RETRY_DELAY", "1.5")),
            db_pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
            db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),
            db_pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
            compensation_retry_base_delay=float(
                os.getenv("COMPENSATION_RETRY_BASE_DELAY", "0.05")
            ),
            compensation_retry_max_delay=float(
                os.getenv("COMPENSATION_RETRY_MAX_DELAY", "2.0")
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
