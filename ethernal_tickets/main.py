import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ethernal_tickets.api.routes import admin as admin_routes
from ethernal_tickets.api.routes.routes import router
from ethernal_tickets.application.account_service import AccountService
from ethernal_tickets.application.admin_override import AdminOverride
from ethernal_tickets.application.ledger_store import LedgerStore
from ethernal_tickets.application.reservation_coordinator import ReservationCoordinator
from ethernal_tickets.application.seat_inventory import SeatInventory
from ethernal_tickets.config import Settings
from ethernal_tickets.infrastructure.db.session import Store


logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Ethernal Tickets")

    store = Store(settings)
    ledger = LedgerStore(store)
    seats = SeatInventory(store)
    accounts = AccountService(store)

    app.state.settings = settings
    app.state.store = store
    app.state.ledger = ledger
    app.state.seats = seats
    app.state.accounts = accounts
    app.state.coordinator = ReservationCoordinator(store, ledger, seats)
    app.state.admin = AdminOverride(store, ledger, seats, hasher=accounts.hasher)

    app.include_router(router)
    app.include_router(admin_routes.router)

    @app.exception_handler(RequestValidationError)
    async def on_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.on_event("startup")
    def on_startup() -> None:
        store.wait_until_ready()
        store.create_schema()
        logger.info("Ethernal Tickets ready. database=%s", store.engine.url.get_backend_name())

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        store.close()

    return app


app = create_app()
