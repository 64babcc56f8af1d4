from fastapi import HTTPException, Request, status

from ethernal_tickets.application.account_service import AccountService
from ethernal_tickets.application.admin_override import AdminOverride
from ethernal_tickets.application.ledger_store import LedgerStore
from ethernal_tickets.application.reservation_coordinator import ReservationCoordinator
from ethernal_tickets.application.seat_inventory import SeatInventory
from ethernal_tickets.domain.exceptions import (
    AuthenticationError,
    EmailAlreadyRegisteredError,
    EthernalTicketsError,
    InsufficientFundsError,
    InvalidRequestError,
    NotFoundError,
    SeatsUnavailableError,
    StoreUnavailableError,
)


def get_accounts(request: Request) -> AccountService:
    return request.app.state.accounts


def get_ledger(request: Request) -> LedgerStore:
    return request.app.state.ledger


def get_seats(request: Request) -> SeatInventory:
    return request.app.state.seats


def get_coordinator(request: Request) -> ReservationCoordinator:
    return request.app.state.coordinator


def get_admin(request: Request) -> AdminOverride:
    return request.app.state.admin


def to_http_error(exc: EthernalTicketsError) -> HTTPException:
    """Maps a domain error onto the status code the client sees."""
    if isinstance(exc, InsufficientFundsError):
        return HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail={
                "error": "insufficient_funds",
                "message": str(exc),
                "required": exc.required,
                "available": exc.available,
                "shortfall": exc.shortfall,
            },
        )
    if isinstance(exc, SeatsUnavailableError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "seats_unavailable",
                "message": str(exc),
                "event_id": exc.event_id,
                "seats": exc.seats,
            },
        )
    if isinstance(exc, EmailAlreadyRegisteredError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, InvalidRequestError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, AuthenticationError):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    if isinstance(exc, StoreUnavailableError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage is temporarily unavailable. Please retry.",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal error",
    )
