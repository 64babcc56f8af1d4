import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ethernal_tickets.api.auth import Principal, current_principal, require_admin
from ethernal_tickets.api.dependencies import (
    get_accounts,
    get_admin,
    get_coordinator,
    get_ledger,
    to_http_error,
)
from ethernal_tickets.api.routes.routes import account_response, ticket_response
from ethernal_tickets.api.schemas.schemas import (
    AccountResponse,
    AddBalanceRequest,
    AdjustBalanceRequest,
    BalanceResponse,
    ChangePasswordRequest,
    MessageResponse,
    ResetEventRequest,
    ResetResponse,
    RevokeTicketsRequest,
    SetAdminRequest,
    TicketResponse,
)
from ethernal_tickets.application.account_service import AccountService, normalize_email
from ethernal_tickets.application.admin_override import AdminOverride
from ethernal_tickets.application.ledger_store import LedgerStore
from ethernal_tickets.application.reservation_coordinator import ReservationCoordinator
from ethernal_tickets.domain.exceptions import EthernalTicketsError


router = APIRouter(prefix="/api/admin")
logger = logging.getLogger(__name__)


@router.post("/add-balance", response_model=BalanceResponse)
def add_balance(
    request: AddBalanceRequest,
    principal: Principal = Depends(current_principal),
    accounts: AccountService = Depends(get_accounts),
    admin: AdminOverride = Depends(get_admin),
):
    # Store top-ups credit the caller; crediting anyone else needs admin.
    try:
        caller = accounts.get_account(principal.account_id)
        if not caller.is_admin and caller.email != normalize_email(request.email):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not allowed to change another account's balance",
            )
        target = accounts.get_by_email(request.email)
        new_balance = admin.grant_funds(target.id, request.amount)
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc

    return BalanceResponse(account_id=target.id, balance=new_balance)


@router.get("/balance/{account_id}", response_model=BalanceResponse)
def get_balance(
    account_id: str,
    _: Principal = Depends(require_admin),
    ledger: LedgerStore = Depends(get_ledger),
):
    try:
        balance = ledger.get_balance(account_id)
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc
    return BalanceResponse(account_id=account_id, balance=balance)


@router.post("/adjust-balance", response_model=BalanceResponse)
def adjust_balance(
    request: AdjustBalanceRequest,
    principal: Principal = Depends(require_admin),
    ledger: LedgerStore = Depends(get_ledger),
):
    try:
        balance = ledger.adjust_balance(request.account_id, request.delta, request.reason)
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc

    logger.info(
        "Balance adjusted by operator. operator=%s account_id=%s delta=%s balance=%s",
        principal.account_id,
        request.account_id,
        request.delta,
        balance,
    )
    return BalanceResponse(account_id=request.account_id, balance=balance)


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    request: ChangePasswordRequest,
    _: Principal = Depends(require_admin),
    accounts: AccountService = Depends(get_accounts),
    admin: AdminOverride = Depends(get_admin),
):
    try:
        target = accounts.get_by_email(request.email)
        admin.set_password(target.id, request.new_password)
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc
    return MessageResponse(message=f"Password for {target.email} updated")


@router.post("/set-admin", response_model=MessageResponse)
def set_admin(
    request: SetAdminRequest,
    _: Principal = Depends(require_admin),
    accounts: AccountService = Depends(get_accounts),
    admin: AdminOverride = Depends(get_admin),
):
    try:
        target = accounts.get_by_email(request.email)
        admin.set_admin_flag(target.id, request.is_admin)
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc
    return MessageResponse(message=f"Admin flag for {target.email} set to {request.is_admin}")


@router.get("/users", response_model=list[AccountResponse])
def list_users(
    _: Principal = Depends(require_admin),
    accounts: AccountService = Depends(get_accounts),
):
    try:
        return [account_response(account) for account in accounts.list_accounts()]
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc


@router.get("/tickets", response_model=list[TicketResponse])
def list_tickets(
    _: Principal = Depends(require_admin),
    coordinator: ReservationCoordinator = Depends(get_coordinator),
):
    try:
        return [ticket_response(ticket) for ticket in coordinator.all_tickets()]
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc


@router.post("/tickets/revoke", response_model=ResetResponse)
def revoke_tickets(
    request: RevokeTicketsRequest,
    _: Principal = Depends(require_admin),
    admin: AdminOverride = Depends(get_admin),
):
    try:
        removed = admin.revoke_tickets(request.seat_ids, event_id=request.event_id)
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc
    return ResetResponse(removed=removed, message=f"{removed} tickets revoked")


@router.post("/tickets/reset-event", response_model=ResetResponse)
def reset_event(
    request: ResetEventRequest,
    _: Principal = Depends(require_admin),
    admin: AdminOverride = Depends(get_admin),
):
    try:
        removed = admin.reset_event(request.event_id)
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc
    return ResetResponse(removed=removed, message=f"Event {request.event_id} reset")


@router.post("/tickets/reset", response_model=ResetResponse)
def reset_all_tickets(
    _: Principal = Depends(require_admin),
    admin: AdminOverride = Depends(get_admin),
):
    try:
        removed = admin.reset_all_tickets()
    except EthernalTicketsError as exc:
        raise to_http_error(exc) from exc
    return ResetResponse(removed=removed, message="All tickets reset")
