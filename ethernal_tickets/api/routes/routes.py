import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ethernal_tickets.api.auth import Principal, current_principal, issue_token
from ethernal_tickets.api.dependencies import (
    get_accounts,
    get_coordinator,
    get_seats,
    to_http_error,
)
from ethernal_tickets.api.schemas.schemas import (
    AccountResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PurchaseRequest,
    PurchaseResponse,
    RegisterRequest,
    TicketResponse,
)
from ethernal_tickets.application.account_service import AccountService
from ethernal_tickets.application.reservation_coordinator import ReservationCoordinator
from ethernal_tickets.application.seat_inventory import SeatInventory
from ethernal_tickets.domain.exceptions import EthernalTicketsError, StoreUnavailableError
from ethernal_tickets.domain.models import IssuedTicket, PurchaseIntent
from ethernal_tickets.infrastructure.db.models import Account


router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


def account_response(account: Account) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        email=account.email,
        username=account.display_name,
        balance=account.balance,
        is_admin=account.is_admin,
    )


def ticket_response(ticket: IssuedTicket) -> TicketResponse:
    return TicketResponse(
        id=f"TK-{ticket.id}",
        ticket_id=ticket.id,
        event=ticket.event_id,
        seat=ticket.seat_identifier,
        price=ticket.price,
        purchased_at=ticket.purchased_at.isoformat(),
    )


@router.get("/health")
def health(request: Request):
    try:
        request.app.state.store.ping()
    except StoreUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "error", "database": "unreachable"},
        ) from exc
    return {"status": "active", "database": "connected"}


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    request: RegisterRequest,
    accounts: AccountService = Depends(get_accounts),
):
    try:
        account = accounts.register(
            email=request.email,
            password=request.password,
            display_name=request.username,
        )
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc

    return MessageResponse(message=f"Account created for {account.email}")


@router.post("/login", response_model=LoginResponse)
def login(
    request: LoginRequest,
    http_request: Request,
    accounts: AccountService = Depends(get_accounts),
):
    try:
        account = accounts.authenticate(request.email, request.password)
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc

    token = issue_token(account, http_request.app.state.settings)
    return LoginResponse(token=token, user=account_response(account))


@router.get("/me", response_model=AccountResponse)
def me(
    principal: Principal = Depends(current_principal),
    accounts: AccountService = Depends(get_accounts),
):
    try:
        account = accounts.get_account(principal.account_id)
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc
    return account_response(account)


@router.post("/tickets/purchase", response_model=PurchaseResponse)
def purchase_tickets(
    request: PurchaseRequest,
    principal: Principal = Depends(current_principal),
    coordinator: ReservationCoordinator = Depends(get_coordinator),
):
    intent = PurchaseIntent(
        account_id=principal.account_id,
        event_id=request.event_id,
        seat_identifiers=tuple(request.seats),
        total_price=request.total_price,
    )

    try:
        batch = coordinator.purchase(intent)
    except EthernalTicketsError as exc:
        logger.info(
            "Purchase rejected. account_id=%s event_id=%s reason=%s",
            principal.account_id,
            request.event_id,
            type(exc).__name__,
        )
        raise to_http_error(exc) from exc

    return PurchaseResponse(
        ticket_ids=batch.ticket_ids,
        tickets=[ticket_response(ticket) for ticket in batch.tickets],
        balance=batch.balance_after,
    )


@router.get("/tickets/sold", response_model=list[str])
def list_sold_seats(seats: SeatInventory = Depends(get_seats)):
    try:
        return sorted(seats.query_sold_all())
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc


@router.get("/tickets/sold/{event_id}", response_model=list[str])
def list_sold_seats_for_event(
    event_id: str,
    seats: SeatInventory = Depends(get_seats),
):
    try:
        return sorted(seats.query_sold(event_id))
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc


@router.get("/my-tickets", response_model=list[TicketResponse])
def my_tickets(
    principal: Principal = Depends(current_principal),
    coordinator: ReservationCoordinator = Depends(get_coordinator),
):
    try:
        tickets = coordinator.tickets_for_account(principal.account_id)
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc
    return [ticket_response(ticket) for ticket in tickets]
