from typing import Annotated

from pydantic import BaseModel, Field


# Matches the seat_identifier column width.
SeatIdentifier = Annotated[str, Field(min_length=1, max_length=128)]


class RegisterRequest(BaseModel):
    email: str
    password: str
    username: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class AccountResponse(BaseModel):
    id: str
    email: str
    username: str
    balance: int
    is_admin: bool


class LoginResponse(BaseModel):
    token: str
    user: AccountResponse


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class PurchaseRequest(BaseModel):
    event_id: str = Field(min_length=1, max_length=128)
    seats: list[SeatIdentifier] = Field(min_length=1)
    total_price: int = Field(ge=0)


class TicketResponse(BaseModel):
    id: str
    ticket_id: int
    event: str
    seat: str
    price: int
    purchased_at: str


class PurchaseResponse(BaseModel):
    success: bool = True
    ticket_ids: list[int]
    tickets: list[TicketResponse]
    balance: int


class AddBalanceRequest(BaseModel):
    email: str
    amount: int


class AdjustBalanceRequest(BaseModel):
    account_id: str
    delta: int
    reason: str = Field(default="admin-adjust", min_length=1, max_length=128)


class BalanceResponse(BaseModel):
    account_id: str
    balance: int


class ChangePasswordRequest(BaseModel):
    email: str
    new_password: str


class SetAdminRequest(BaseModel):
    email: str
    is_admin: bool


class RevokeTicketsRequest(BaseModel):
    seat_ids: list[SeatIdentifier] = Field(min_length=1)
    event_id: str | None = Field(default=None, min_length=1, max_length=128)


class ResetEventRequest(BaseModel):
    event_id: str = Field(min_length=1, max_length=128)


class ResetResponse(BaseModel):
    success: bool = True
    removed: int
    message: str
