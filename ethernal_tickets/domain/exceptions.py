class EthernalTicketsError(Exception):
    """
    Base exception for all domain-level errors
    inside the Ethernal Tickets core.
    """


class InvalidRequestError(EthernalTicketsError):
    """Raised when caller input is malformed. Not retried."""


class NotFoundError(EthernalTicketsError):
    """Raised when a referenced account or ticket does not exist."""


class InsufficientFundsError(EthernalTicketsError):
    """
    Raised when a debit would drive a balance below zero.
    The balance is left unchanged.
    """

    def __init__(self, account_id: str, required: int, available: int):
        self.account_id = account_id
        self.required = required
        self.available = available
        self.shortfall = required - available

        message = (
            f"Insufficient balance: required {required}, "
            f"available {available}, short by {self.shortfall}"
        )
        super().__init__(message)


class SeatsUnavailableError(EthernalTicketsError):
    """Raised to the caller when requested seats were already taken."""

    def __init__(self, event_id: str, seats):
        self.event_id = event_id
        self.seats = sorted(seats)

        message = (
            f"Seats no longer available for {event_id}: "
            f"{', '.join(self.seats)}"
        )
        super().__init__(message)


class SeatConflictError(EthernalTicketsError):
    """
    Internal signal from the seat inventory: some seats in a reserve
    request are already sold. Translated to SeatsUnavailableError.
    """

    def __init__(self, event_id: str, seats):
        self.event_id = event_id
        self.seats = frozenset(seats)
        super().__init__(f"Seat conflict on {event_id}: {sorted(self.seats)}")


class StoreUnavailableError(EthernalTicketsError):
    """Transient storage failure. Safe to retry with backoff."""


class EmailAlreadyRegisteredError(EthernalTicketsError):
    """Raised when registering an email that already has an account."""


class AuthenticationError(EthernalTicketsError):
    """Raised when credentials do not match an account."""
