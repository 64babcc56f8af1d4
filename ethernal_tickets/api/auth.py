from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt

from ethernal_tickets.config import Settings
from ethernal_tickets.domain.exceptions import NotFoundError
from ethernal_tickets.infrastructure.db.models import Account


bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    account_id: str
    email: str
    is_admin: bool


def issue_token(account: Account, settings: Settings) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.token_ttl_hours)
    payload = {
        "sub": account.id,
        "email": account.email,
        "is_admin": bool(account.is_admin),
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> Principal:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired",
        ) from exc
    except jwt.PyJWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc

    account_id = payload.get("sub")
    if not account_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )
    return Principal(
        account_id=account_id,
        email=payload.get("email", ""),
        is_admin=bool(payload.get("is_admin", False)),
    )


def current_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> Principal:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return decode_token(credentials.credentials, request.app.state.settings)


def require_admin(
    request: Request,
    principal: Principal = Depends(current_principal),
) -> Principal:
    # The flag in the token may be stale; the account row decides.
    try:
        account = request.app.state.accounts.get_account(principal.account_id)
    except NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account no longer exists",
        ) from exc
    if not account.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator privileges required",
        )
    return Principal(account_id=account.id, email=account.email, is_admin=True)
