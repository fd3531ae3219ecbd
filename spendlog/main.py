from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core import errors
from .core.config import Settings, get_settings
from .core.logging import init_logging, request_context_middleware
from .db.backend import SubscribableBackend
from .routers import categories, expenses, health, ledger, rates, trips
from .services.notifications import Notifier
from .services.quick_expense import ExpenseInference
from .services.rates.base import RateSource
from .services.session import build_session


def create_app(
    settings_override: Settings | None = None,
    *,
    remote: Optional[SubscribableBackend] = None,
    rate_source: Optional[RateSource] = None,
    inference: Optional[ExpenseInference] = None,
    notifier: Optional[Notifier] = None,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., temp data dir, origin). ``remote``,
    ``rate_source``, ``inference`` and ``notifier`` replace the collaborators
    the settings would otherwise select.
    """
    settings = settings_override or get_settings()
    init_logging(debug=settings.debug)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        session = build_session(
            settings, notifier=notifier, remote=remote, rate_source=rate_source
        )
        await session.start()
        app.state.session = session
        try:
            yield
        finally:
            app.state.session = None
            await session.close()

    app = FastAPI(
        title=settings.app_name, debug=settings.debug, version=settings.version, lifespan=lifespan
    )
    app.state.settings = settings
    app.state.inference = inference

    app.middleware("http")(request_context_middleware)

    app.add_exception_handler(StarletteHTTPException, errors.not_found_handler)
    app.add_exception_handler(errors.NotFoundError, errors.not_found_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(errors.LedgerValidationError, errors.ledger_validation_handler)
    app.add_exception_handler(errors.ExternalCollaboratorError, errors.collaborator_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    app.include_router(health.router)
    app.include_router(ledger.router)
    app.include_router(trips.router)
    app.include_router(expenses.router)
    app.include_router(categories.router)
    app.include_router(rates.router)

    @app.get("/")
    async def root():
        return {"message": "SpendLog API", "version": settings.version}

    return app


app = create_app()
